"""Tells what to show in the Django admin interface for rides app"""

from django.contrib import admin
from .models import Ride, RideStatusChange


class ReadOnlyAdminMixin:
    """Rides change only through the ride store; the admin is for inspection."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Ride)
class RideAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Ride admin"""
    list_display = ['id', 'rider', 'driver', 'status', 'created_at', 'updated_at']
    list_filter = ['status', 'created_at']
    search_fields = ['rider__username', 'driver__username']
    date_hierarchy = 'created_at'


@admin.register(RideStatusChange)
class RideStatusChangeAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("ride", "from_status", "to_status", "actor", "changed_at")
    list_filter = ("to_status",)
    search_fields = ("ride__id", "actor__username")
