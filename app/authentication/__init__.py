"""
Authentication application.

Provides the email-based User model, the marketplace role every request
is resolved to, and JWT token endpoints.

Key components:
    - User model: Email login with a brand, creator or admin role
    - Role permissions: IsBrand, IsCreator, IsPlatformAdmin
    - Token endpoints: simplejwt obtain/refresh views

Usage:
    from authentication.models import User, UserRole
    from authentication.permissions import IsBrand
"""
