# credits/views.py
import logging

import stripe
from django.conf import settings
from django.http import JsonResponse

from cardify.utils.http import (
    InvalidJSON, json_error, json_login_required, parse_json_body, request_origin, require_json_methods,
)
from userprofile.models import Profile
from .packs import CREDITS_PER_USD, MIN_PURCHASE_USD, PACKS, credits_for
from .services import CREDITS_KIND

stripe.api_key = settings.STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)


@json_login_required
@require_json_methods(["GET"])
def balance(request):
    profile, _ = Profile.objects.get_or_create(user=request.user)
    return JsonResponse({
        "credits": profile.credits,
        "creditsPerUsd": CREDITS_PER_USD,
        "minimumUsd": MIN_PURCHASE_USD,
        "packs": PACKS,
    })


@json_login_required
@require_json_methods(["POST"])
def credits_checkout(request):
    try:
        data = parse_json_body(request)
    except InvalidJSON:
        return json_error("Invalid JSON in request body", "INVALID_JSON")

    usd = data.get("usd")
    if isinstance(usd, bool) or not isinstance(usd, int) or usd < MIN_PURCHASE_USD:
        return json_error(f"Minimum purchase is ${MIN_PURCHASE_USD}", "INVALID_AMOUNT")

    credits = credits_for(usd)
    origin = request_origin(request)
    try:
        session = stripe.checkout.Session.create(
            mode="payment",
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": "usd",
                    "unit_amount": usd * 100,
                    "product_data": {"name": f"{credits:,} Cardify credits"},
                },
                "quantity": 1,
            }],
            customer_email=request.user.email or None,
            success_url=f"{origin}/credits?success=1&session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{origin}/credits?canceled=1",
            metadata={"kind": CREDITS_KIND, "userId": str(request.user.pk), "credits": str(credits)},
        )
    except stripe.StripeError as exc:
        logger.error("Credits checkout failed for user %s: %s", request.user.pk, exc)
        return json_error("Payment processing error", "STRIPE_ERROR", status=500, details=str(exc))

    return JsonResponse({"url": session["url"], "id": session["id"]})
