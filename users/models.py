# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    ROLE_CLIENT = "client"
    ROLE_PROFESSIONAL = "professional"
    ROLE_ADMIN = "admin"

    ROLE_CHOICES = (
        (ROLE_CLIENT, 'Client'),
        (ROLE_PROFESSIONAL, 'Professional'),
        (ROLE_ADMIN, 'Admin'),
    )

    VERIFICATION_PENDING = "pending"
    VERIFICATION_VERIFIED = "verified"
    VERIFICATION_REJECTED = "rejected"

    VERIFICATION_CHOICES = (
        (VERIFICATION_PENDING, "Pending"),
        (VERIFICATION_VERIFIED, "Verified"),
        (VERIFICATION_REJECTED, "Rejected"),
    )

    role = models.CharField(
        max_length=30,
        choices=ROLE_CHOICES,
        default=ROLE_CLIENT
    )

    phone = models.CharField(max_length=20, blank=True, null=True)
    bio = models.TextField(blank=True, null=True)
    location = models.CharField(max_length=255, blank=True, null=True)
    profile_picture = models.CharField(max_length=1024, blank=True, null=True)

    # Professional profile
    skills = models.JSONField(default=list, blank=True, help_text="List of trade skills")
    certifications = models.JSONField(default=list, blank=True)
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    years_experience = models.PositiveIntegerField(blank=True, null=True)
    is_available = models.BooleanField(default=True)
    verification_status = models.CharField(
        max_length=20,
        choices=VERIFICATION_CHOICES,
        default=VERIFICATION_PENDING,
    )

    @property
    def is_client(self):
        return self.role == self.ROLE_CLIENT

    @property
    def is_professional(self):
        return self.role == self.ROLE_PROFESSIONAL

    def __str__(self):
        return self.username
