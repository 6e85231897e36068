# userprofile/views.py
import logging

from django.contrib.auth import login, logout
from django.http import JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.csrf import ensure_csrf_cookie

from cardify.utils.csrf import CSRF_COOKIE, new_token
from cardify.utils.http import (
    InvalidJSON, json_error, json_login_required, parse_json_body, require_json_methods,
)
from .forms import RegistrationForm, EmailAuthenticationForm
from .models import Profile

logger = logging.getLogger(__name__)


def _form_errors(form):
    return {field: [str(e) for e in errs] for field, errs in form.errors.items()}


@ensure_csrf_cookie
@require_json_methods(["GET"])
def csrf_token(request):
    """
    Issue both tokens the API expects: Django's csrftoken (X-CSRFToken) for
    ordinary POSTs, and the double-submit csrf_token used by checkout.
    """
    token = request.COOKIES.get(CSRF_COOKIE) or new_token()
    resp = JsonResponse({"csrfToken": token, "djangoCsrfToken": get_token(request)})
    resp.set_cookie(CSRF_COOKIE, token, samesite="Strict", secure=request.is_secure())
    return resp


@require_json_methods(["POST"])
def register(request):
    try:
        data = parse_json_body(request)
    except InvalidJSON:
        return json_error("Invalid JSON in request body", "INVALID_JSON")

    password = data.get("password") or ""
    form = RegistrationForm({
        "email": data.get("email") or "",
        "display_name": data.get("displayName") or "",
        "password1": password,
        "password2": password,
    })
    if not form.is_valid():
        return json_error("Registration failed", "INVALID_REGISTRATION", fields=_form_errors(form))

    user = form.save()
    login(request, user, backend="django.contrib.auth.backends.ModelBackend")
    logger.info("Registered user %s", user.pk)
    return JsonResponse({"user": user.profile.as_dict()}, status=201)


@require_json_methods(["POST"])
def login_view(request):
    try:
        data = parse_json_body(request)
    except InvalidJSON:
        return json_error("Invalid JSON in request body", "INVALID_JSON")

    form = EmailAuthenticationForm(request, data={
        "username": data.get("email") or "",
        "password": data.get("password") or "",
    })
    if not form.is_valid():
        return json_error("Invalid email or password", "INVALID_CREDENTIALS", status=401)

    user = form.get_user()
    login(request, user)
    profile, _ = Profile.objects.get_or_create(user=user)
    return JsonResponse({"user": profile.as_dict()})


@require_json_methods(["POST"])
def logout_view(request):
    logout(request)
    return JsonResponse({"success": True})


@require_json_methods(["GET"])
def session(request):
    if not request.user.is_authenticated:
        return JsonResponse({"user": None})
    profile, _ = Profile.objects.get_or_create(user=request.user)
    return JsonResponse({"user": profile.as_dict()})


@json_login_required
@require_json_methods(["GET", "POST"])
def profile(request):
    profile, _ = Profile.objects.get_or_create(user=request.user)
    if request.method == "POST":
        try:
            data = parse_json_body(request)
        except InvalidJSON:
            return json_error("Invalid JSON in request body", "INVALID_JSON")

        if "displayName" in data:
            profile.display_name = str(data["displayName"] or "").strip()[:80]
        if "avatarUrl" in data:
            profile.avatar_url = str(data["avatarUrl"] or "").strip()
        profile.save(update_fields=["display_name", "avatar_url"])
    return JsonResponse({"user": profile.as_dict()})
