"""
Access rules for API views.
"""
from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.utils.decorators import method_decorator
from rest_framework.permissions import BasePermission, SAFE_METHODS


class IsAdminUser(BasePermission):
    message = 'Admin access required'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_admin)


class IsAdminOrReadOnly(IsAdminUser):
    """Anyone may read; only admins may write."""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return super().has_permission(request, view)


def session_required(view_class):
    """Redirect anonymous requests to the login page instead of returning 401/403."""
    decorator = login_required(login_url=settings.LOGIN_URL, redirect_field_name=None)
    return method_decorator(decorator, name='dispatch')(view_class)
