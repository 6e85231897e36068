# backoffice/access.py
from functools import wraps

from cardify.utils.http import json_error
from .models import AdminUser


def admin_status(user):
    """(caller is an admin, any admin exists)."""
    is_admin = AdminUser.objects.filter(user_id=user.pk).exists()
    any_admins = is_admin or AdminUser.objects.exists()
    return is_admin, any_admins


def admin_required(bootstrap=False):
    """
    401 for anonymous callers, 403 for non-admins. With bootstrap=True a
    non-admin is let through while no admin exists yet.
    """
    def decorator(view):
        @wraps(view)
        def inner(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return json_error("Authentication required", "AUTH_REQUIRED", status=401)
            is_admin, any_admins = admin_status(request.user)
            if not is_admin and (any_admins or not bootstrap):
                return json_error("Admin access required", "ADMIN_REQUIRED", status=403)
            return view(request, *args, **kwargs)
        return inner
    return decorator
