"""
Authentication models.

This module defines the User model used to authenticate API callers.
Every marketplace participant is a User with exactly one role; the
brand or creator profile behind a user lives in the marketplace app.

Related files:
    - managers.py: Custom user manager for email-based creation
    - permissions.py: DRF permission classes keyed on role
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """Marketplace role resolved for every authenticated request."""

    BRAND = "brand", "Brand"
    CREATOR = "creator", "Creator"
    ADMIN = "admin", "Admin"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        role: Marketplace role (brand, creator or admin)
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        brand_user = User.objects.create_user(
            email="brand@example.com",
            password="securepassword",
            role=UserRole.BRAND,
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CREATOR,
        db_index=True,
        help_text="Marketplace role of this user",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    @property
    def is_brand(self) -> bool:
        return self.role == UserRole.BRAND

    @property
    def is_creator(self) -> bool:
        return self.role == UserRole.CREATOR

    @property
    def is_platform_admin(self) -> bool:
        """Admin role or Django staff; both may run operator actions."""
        return self.role == UserRole.ADMIN or self.is_staff
