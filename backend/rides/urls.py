from django.urls import path
from . import views

app_name = 'rides'

urlpatterns = [
    # Rider APIs
    path('', views.RideCreateView.as_view(), name='create-ride'),
    path('<int:ride_id>/', views.RideDetailView.as_view(), name='ride-detail'),
    path('<int:ride_id>/status/', views.RideStatusView.as_view(), name='ride-status'),
    path('<int:ride_id>/history/', views.RideHistoryView.as_view(), name='ride-history'),
    path('<int:ride_id>/cancel/', views.RideCancelView.as_view(), name='cancel-ride'),

    # Driver APIs
    path('searching/', views.SearchingRidesView.as_view(), name='searching-rides'),
    path('<int:ride_id>/claim/', views.RideClaimView.as_view(), name='claim-ride'),
    path('<int:ride_id>/complete/', views.RideCompleteView.as_view(), name='complete-ride'),
]
