# marketplace/views.py
import logging

import stripe
from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.http import JsonResponse

from cardify.utils.http import (
    InvalidJSON, json_error, json_login_required, parse_json_body, require_json_methods,
)
from .models import Listing, Transaction, UserAsset

stripe.api_key = settings.STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)


# -----------------------
# Listings
# -----------------------
@require_json_methods(["GET", "POST"])
def listings(request):
    if request.method == "POST":
        return _create_listing(request)

    qs = Listing.objects.filter(status="active").select_related("asset", "seller", "seller__profile")
    query = (request.GET.get("q") or "").strip()
    if query:
        qs = qs.filter(Q(title__icontains=query) | Q(description__icontains=query))
    rows = [listing.as_dict() for listing in qs.order_by("-created_at")]
    return JsonResponse({"listings": rows, "count": len(rows)})


@json_login_required
def _create_listing(request):
    try:
        data = parse_json_body(request)
    except InvalidJSON:
        return json_error("Invalid JSON in request body", "INVALID_JSON")

    asset = UserAsset.objects.filter(pk=data.get("assetId"), owner=request.user).first() \
        if str(data.get("assetId") or "").isdigit() else None
    if asset is None:
        return json_error("Asset not found", "ASSET_NOT_FOUND", status=404)

    price = data.get("priceCents")
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        return json_error("priceCents must be a positive integer", "INVALID_PRICE")

    currency = str(data.get("currency") or "USD").upper()[:3]
    title = str(data.get("title") or asset.title or "Untitled card").strip()[:200]

    with transaction.atomic():
        if Listing.objects.select_for_update().filter(asset=asset, status="active").exists():
            return json_error("This asset is already listed", "ALREADY_LISTED", status=409)
        listing = Listing.objects.create(
            seller=request.user,
            asset=asset,
            title=title,
            description=str(data.get("description") or "").strip(),
            price_cents=price,
            currency=currency,
        )
    logger.info("User %s listed asset %s at %s %s", request.user.pk, asset.pk, price, currency)
    return JsonResponse({"listing": listing.as_dict()}, status=201)


@json_login_required
@require_json_methods(["POST"])
def cancel_listing(request, listing_id):
    listing = Listing.objects.filter(pk=listing_id).select_related("asset", "seller").first()
    if listing is None:
        return json_error("Listing not found", "LISTING_NOT_FOUND", status=404)
    if listing.seller_id != request.user.pk:
        return json_error("Only the seller can cancel this listing", "NOT_SELLER", status=403)
    if listing.status != "active":
        return json_error("Listing is not active", "LISTING_NOT_ACTIVE", status=409)

    listing.status = "inactive"
    listing.save(update_fields=["status", "updated_at"])
    return JsonResponse({"listing": listing.as_dict()})


# -----------------------
# Payment intents
# -----------------------
def _make_intent(listing, buyer_id):
    return stripe.PaymentIntent.create(
        amount=listing.price_cents,
        currency=(listing.currency or "USD").lower(),
        metadata={
            "marketplace_listing_id": str(listing.pk),
            "marketplace_buyer_id": str(buyer_id) if buyer_id else "anonymous",
            "marketplace_seller_id": str(listing.seller_id),
        },
    )


@require_json_methods(["POST"])
def create_payment_intent(request):
    try:
        data = parse_json_body(request)
    except InvalidJSON:
        return json_error("Invalid JSON in request body", "INVALID_JSON")

    listing_id = data.get("listingId")
    if not listing_id:
        return json_error("Missing listingId")

    # anonymous purchases are allowed
    buyer_id = request.user.pk if request.user.is_authenticated else None

    try:
        listing = Listing.objects.filter(pk=listing_id).first() if str(listing_id).isdigit() else None
        if listing is None or listing.status != "active":
            return json_error("Listing unavailable", status=409)

        currency = (listing.currency or "USD").upper()
        open_tx = None
        if buyer_id:
            open_tx = Transaction.objects.filter(
                listing=listing, buyer_id=buyer_id, status="pending",
            ).order_by("-created_at").first()

        if open_tx:
            intent = stripe.PaymentIntent.retrieve(open_tx.stripe_payment_intent_id)
            if intent["status"] != "requires_payment_method":
                intent = _make_intent(listing, buyer_id)
                open_tx.stripe_payment_intent_id = intent["id"]
                open_tx.platform_fee_cents = 0
                open_tx.amount_cents = listing.price_cents
                open_tx.currency = currency
                open_tx.save(update_fields=[
                    "stripe_payment_intent_id", "platform_fee_cents", "amount_cents", "currency", "updated_at",
                ])
        else:
            intent = _make_intent(listing, buyer_id)
            Transaction.objects.create(
                buyer_id=buyer_id,
                seller_id=listing.seller_id,
                listing=listing,
                amount_cents=listing.price_cents,
                currency=currency,
                stripe_payment_intent_id=intent["id"],
                status="pending",
                platform_fee_cents=0,
            )
    except Exception:
        logger.exception("Payment intent creation failed for listing %s", listing_id)
        return json_error("Payment intent creation failed", status=500)

    return JsonResponse({
        "clientSecret": intent["client_secret"],
        "paymentIntentId": intent["id"],
        "stripeAccount": None,
    })
