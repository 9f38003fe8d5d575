from django.db import models
from django.conf import settings


class RideStatus(models.TextChoices):
    SEARCHING = 'SEARCHING', 'Searching'
    IN_PROGRESS = 'IN_PROGRESS', 'In Progress'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELED = 'CANCELED', 'Canceled'


# Statuses in which a driver must be assigned
ASSIGNED_STATUSES = (RideStatus.IN_PROGRESS, RideStatus.COMPLETED)


class Ride(models.Model):
    """A rider's request to travel from origin to destination."""

    # Foreign keys
    rider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='rides'
    )

    # Set exactly once, by a successful claim
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='assigned_rides'
    )

    status = models.CharField(
        max_length=20,
        choices=RideStatus.choices,
        default=RideStatus.SEARCHING,
        db_index=True,
    )

    # Origin / destination
    origin_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    origin_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    destination_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    destination_longitude = models.DecimalField(max_digits=9, decimal_places=6)

    # Precomputed path (GeoJSON geometry), opaque to the core
    route = models.JSONField(default=dict)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    # Written explicitly by the store on every transition
    updated_at = models.DateTimeField()

    class Meta:
        db_table = 'rides'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(status__in=ASSIGNED_STATUSES, driver__isnull=False)
                    | (~models.Q(status__in=ASSIGNED_STATUSES) & models.Q(driver__isnull=True))
                ),
                name='ride_driver_matches_status',
            )
        ]

    @property
    def origin(self):
        return (self.origin_latitude, self.origin_longitude)

    @property
    def destination(self):
        return (self.destination_latitude, self.destination_longitude)

    def __str__(self):
        return f"Ride #{self.id} - {self.rider} - {self.status}"


class RideStatusChange(models.Model):
    """Append-only audit trail of applied ride transitions."""

    ride = models.ForeignKey(
        Ride,
        on_delete=models.PROTECT,
        related_name='status_changes'
    )

    # Null for the creation entry
    from_status = models.CharField(
        max_length=20,
        choices=RideStatus.choices,
        null=True,
        blank=True,
    )
    to_status = models.CharField(max_length=20, choices=RideStatus.choices)

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='ride_status_changes'
    )

    changed_at = models.DateTimeField()

    class Meta:
        db_table = 'ride_status_changes'
        ordering = ['changed_at', 'id']
        constraints = [
            # A ride can enter each status at most once
            models.UniqueConstraint(
                fields=['ride', 'to_status'],
                name='unique_ride_status_entry'
            )
        ]

    def __str__(self):
        return f"Ride #{self.ride_id}: {self.from_status} -> {self.to_status}"
