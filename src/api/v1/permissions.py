"""Custom DRF permissions for the commerce API."""
from rest_framework.permissions import BasePermission


class IsStaff(BasePermission):
    """Allow operators (``is_staff``) only."""

    message = "Operator access required."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_staff)


class IsActiveAccount(BasePermission):
    """Deactivated accounts keep their tokens but may not place orders."""

    message = "Account is deactivated."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_active)
