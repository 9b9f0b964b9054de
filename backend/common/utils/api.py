"""Helpers shared by the REST views."""

from rest_framework.response import Response
from rest_framework import status


def error_response(exc):
    """Translate a CoordinatorError into ``{"error": ..., "code": ...}``."""
    return Response(exc.as_dict(), status=exc.http_status)


def role_required(user, role):
    """Return an error Response when ``user`` does not have ``role``, else None."""
    if getattr(user, "role", None) != role:
        return Response(
            {"error": f"Only {role}s can access this endpoint", "code": "forbidden"},
            status=status.HTTP_403_FORBIDDEN,
        )
    return None
