from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Extended user model with role selection"""

    class Role(models.TextChoices):
        RIDER = 'rider', 'Rider'
        DRIVER = 'driver', 'Driver'

    # Role & basic info
    role = models.CharField(max_length=10, choices=Role.choices)
    phone_number = models.CharField(max_length=15, blank=True)

    class Meta:
        db_table = 'users'

    @property
    def is_rider(self):
        return self.role == self.Role.RIDER

    @property
    def is_driver(self):
        return self.role == self.Role.DRIVER

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
