# cardify/utils/http.py
import json
from functools import wraps

from django.conf import settings
from django.http import JsonResponse


def json_error(message, code=None, status=400, **extra):
    """Uniform error body: {"error": ..., "code": ...} plus any extra keys."""
    payload = {"error": message}
    if code:
        payload["code"] = code
    payload.update(extra)
    return JsonResponse(payload, status=status)


class InvalidJSON(ValueError):
    pass


def parse_json_body(request):
    """
    Decode a JSON object body. Empty bodies decode to {}.
    Raises InvalidJSON for anything that isn't a JSON object.
    """
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidJSON(str(exc)) from exc
    if not isinstance(data, dict):
        raise InvalidJSON("Expected a JSON object")
    return data


def require_json_methods(methods):
    """Like django's require_http_methods, but answers 405 with a JSON body."""
    allowed = [m.upper() for m in methods]

    def decorator(view):
        @wraps(view)
        def inner(request, *args, **kwargs):
            if request.method not in allowed:
                resp = json_error("Method not allowed", "METHOD_NOT_ALLOWED", status=405)
                resp["Allow"] = ", ".join(allowed)
                return resp
            return view(request, *args, **kwargs)
        return inner
    return decorator


def json_login_required(view):
    """login_required for API views: 401 JSON instead of a redirect."""
    @wraps(view)
    def inner(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return json_error("Authentication required", "AUTH_REQUIRED", status=401)
        return view(request, *args, **kwargs)
    return inner


def client_ip(request) -> str:
    """First hop of X-Forwarded-For, else the socket address, else 'unknown'."""
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or "unknown"
    return request.META.get("REMOTE_ADDR") or "unknown"


def request_origin(request) -> str:
    return (request.headers.get("Origin") or settings.SITE_URL).rstrip("/")
