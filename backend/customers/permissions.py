# customers/permissions.py
from rest_framework.permissions import BasePermission


class _RolePermission(BasePermission):
    role = None

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return getattr(user, "role", None) == self.role


class IsCustomer(_RolePermission):
    """
    Allows access only to users with role == 'customer'.
    Keeps role check logic centralized.
    """
    role = "customer"


class IsProvider(_RolePermission):
    """Allows access only to users with role == 'provider'."""
    role = "provider"
