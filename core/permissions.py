"""
Custom permission classes for role based access control.

Role checks live here, at the API boundary, so the service layer only
receives already-authorized callers.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS


class HasRole(BasePermission):
    """Allow access only to authenticated users whose role is in ``roles``."""
    roles: frozenset[str] = frozenset()
    message = 'You do not have the role required for this action.'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) in self.roles)


class IsPatient(HasRole):
    roles = frozenset({"patient"})
    message = 'Only patients can perform this action.'


class IsDoctor(HasRole):
    roles = frozenset({"doctor"})
    message = 'Only doctors can perform this action.'


class IsDonor(HasRole):
    roles = frozenset({"donor"})
    message = 'Only donors can make donations.'


class IsNGO(HasRole):
    roles = frozenset({"ngo"})
    message = 'Only NGOs can perform this action.'


class IsAdminRole(HasRole):
    roles = frozenset({"admin"})
    message = 'Only admins can perform this action.'


class IsNGOOrAdmin(HasRole):
    roles = frozenset({"ngo", "admin"})
    message = 'Only NGOs or admins can perform this action.'


class IsStockProvider(HasRole):
    """Users allowed to list medicine or equipment stock."""
    roles = frozenset({"ngo", "donor", "admin"})
    message = 'Only NGOs, donors or admins can provide stock.'


class ReadOnly(BasePermission):
    """Allow read-only access (GET, HEAD, OPTIONS)."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return request.method in SAFE_METHODS
