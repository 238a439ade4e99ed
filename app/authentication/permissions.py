"""
Role-based DRF permission classes.

These gate endpoints by marketplace role only. Whether the caller is a
party to a particular contract is decided in the service layer, which
raises AuthorizationError.

Usage:
    class ContractListCreateView(APIView):
        permission_classes = [IsAuthenticated, IsBrand]
"""

from rest_framework.permissions import BasePermission

from authentication.models import UserRole


class IsBrand(BasePermission):
    """Allow only users with the brand role."""

    message = "Only brand accounts can perform this action."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.role == UserRole.BRAND)


class IsCreator(BasePermission):
    """Allow only users with the creator role."""

    message = "Only creator accounts can perform this action."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.role == UserRole.CREATOR)


class IsPlatformAdmin(BasePermission):
    """Allow admin-role users and Django staff."""

    message = "Only platform administrators can perform this action."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_platform_admin)
