"""
Role based permission classes.
"""
from rest_framework.permissions import BasePermission

CLINICAL_ROLES = {"nurse", "doctor", "admin"}


class IsClinicalStaff(BasePermission):
    """Nurses, doctors and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) in CLINICAL_ROLES)
