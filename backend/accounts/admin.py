from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count

from accounts.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Users with their role and how many rides they posted or drove."""

    list_display = [
        "username",
        "role",
        "phone_number",
        "rides_posted",
        "rides_driven",
        "is_active",
    ]
    list_filter = ["role", "is_active", "is_staff"]
    search_fields = ["username", "email", "phone_number"]
    ordering = ("username",)

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Ride role", {"fields": ("role", "phone_number")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Ride role", {"fields": ("role", "phone_number")}),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(
            _rides_posted=Count("rides", distinct=True),
            _rides_driven=Count("assigned_rides", distinct=True),
        )

    @admin.display(ordering="_rides_posted", description="Posted")
    def rides_posted(self, obj):
        return obj._rides_posted

    @admin.display(ordering="_rides_driven", description="Driven")
    def rides_driven(self, obj):
        return obj._rides_driven
