"""Custom permissions for REST API v1."""
from __future__ import annotations

from rest_framework.permissions import BasePermission, SAFE_METHODS


class IsAuthenticatedOrReadOnly(BasePermission):
    """Reads are public; every ledger mutation needs a caller identity."""

    message = "Authentication is required to change the ledger."

    def has_permission(self, request, view):  # noqa: D401
        if request.method in SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated)
