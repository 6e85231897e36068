# cart/views.py
import logging

import stripe
from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone

from cardify.utils.csrf import double_submit_csrf
from cardify.utils.http import InvalidJSON, json_error, parse_json_body, request_origin, require_json_methods
from cardify.utils.throttle import CHECKOUT, throttle
from shop.inventory import InventoryUnavailable, load_inventory
from shop.models import Product
from shop.pricing import (
    ALLOWED_SHIPPING_COUNTRIES, CURRENCY, custom_card_description, custom_card_name,
    finish_surcharge, money, normalize_finish, parse_quantity, shipping_option_for_country, to_cents,
)
from . import utils as cart_utils

stripe.api_key = settings.STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)

REQUIRED_ADDRESS_FIELDS = ("email", "name", "line1", "city", "state", "postal_code", "country")
TERMS_MESSAGE = "By completing this purchase, you agree to our terms of service and privacy policy."


# -----------------------
# Cart endpoints
# -----------------------
@require_json_methods(["GET"])
def view_cart(request):
    return JsonResponse(cart_utils.summary(request.session))


@require_json_methods(["POST"])
def add_to_cart(request):
    try:
        data = parse_json_body(request)
    except InvalidJSON:
        return json_error("Invalid JSON in request body", "INVALID_JSON")
    try:
        item = cart_utils.add_item(request.session, data)
    except cart_utils.InvalidCartItem as exc:
        return json_error(str(exc), "INVALID_CART_ITEM")
    return JsonResponse({"item": item, **cart_utils.summary(request.session)}, status=201)


@require_json_methods(["POST", "PATCH", "DELETE"])
def cart_item(request, item_id):
    if request.method == "DELETE":
        if not cart_utils.remove_item(request.session, item_id):
            return json_error("Cart item not found", "CART_ITEM_NOT_FOUND", status=404)
        return JsonResponse(cart_utils.summary(request.session))

    try:
        data = parse_json_body(request)
    except InvalidJSON:
        return json_error("Invalid JSON in request body", "INVALID_JSON")
    try:
        item = cart_utils.update_item(request.session, item_id, data)
    except cart_utils.InvalidCartItem as exc:
        return json_error(str(exc), "INVALID_CART_ITEM")
    if item is None:
        return json_error("Cart item not found", "CART_ITEM_NOT_FOUND", status=404)
    return JsonResponse({"item": item, **cart_utils.summary(request.session)})


@require_json_methods(["POST"])
def clear_cart(request):
    cart_utils.clear_cart(request.session)
    return JsonResponse(cart_utils.summary(request.session))


# -----------------------
# Stripe helpers
# -----------------------
def _existing_or_new_price(product_data, price_per_unit, nickname):
    """First active price on the product, or a new one at the current unit price."""
    existing = stripe.Price.list(product=product_data["id"], active=True, limit=1)
    if existing["data"]:
        return existing["data"][0]["id"]
    price = stripe.Price.create(
        currency=CURRENCY,
        unit_amount=to_cents(price_per_unit),
        product=product_data["id"],
        nickname=nickname,
    )
    return price["id"]


def _custom_card_line(base_price, finish, image_url, quantity, product_id=None):
    finish = normalize_finish(finish)
    product_meta = {"card_finish": finish, "custom_image_url": image_url or ""}
    if product_id:
        product_meta["product_id"] = product_id
    return {
        "price_data": {
            "currency": CURRENCY,
            "unit_amount": to_cents(money(base_price) + finish_surcharge(finish)),
            "product_data": {
                "name": custom_card_name(finish),
                "description": custom_card_description(finish, image_url),
                "metadata": product_meta,
            },
        },
        "quantity": quantity,
        "adjustable_quantity": {"enabled": True, "minimum": 1, "maximum": 100},
    }


def _create_customer(address, source):
    """Best effort; checkout proceeds without a customer if this fails."""
    try:
        customer = stripe.Customer.create(
            email=address["email"],
            name=address["name"],
            shipping={
                "name": address["name"],
                "address": {
                    "line1": address["line1"],
                    "line2": address.get("line2") or None,
                    "city": address["city"],
                    "state": address["state"],
                    "postal_code": address["postal_code"],
                    "country": address["country"],
                },
            },
            metadata={"source": source, "timestamp": timezone.now().isoformat()},
        )
        return customer["id"]
    except stripe.StripeError as exc:
        logger.warning("Stripe customer creation failed, continuing without one: %s", exc)
        return None


def _session_kwargs(origin, cancel_url, address, customer_id, custom_card):
    kwargs = {
        "payment_method_types": ["card"],
        "mode": "payment",
        "success_url": f"{origin}/success?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": cancel_url,
        "billing_address_collection": "required" if custom_card else "auto",
        "shipping_address_collection": {"allowed_countries": ALLOWED_SHIPPING_COUNTRIES},
        "shipping_options": [shipping_option_for_country(address["country"]).as_stripe()],
        "phone_number_collection": {"enabled": True},
        "consent_collection": {"promotions": "auto", "terms_of_service": "required"},
    }
    if customer_id:
        kwargs["customer"] = customer_id
    return kwargs


def _validate_address(address):
    if not isinstance(address, dict):
        return json_error("Shipping address is required", "MISSING_SHIPPING_ADDRESS")
    for field in REQUIRED_ADDRESS_FIELDS:
        value = address.get(field)
        if not isinstance(value, str) or not value.strip():
            return json_error(f"Invalid shipping address: {field} is required", "INVALID_SHIPPING_ADDRESS")
    return None


# -----------------------
# Checkout
# -----------------------
@throttle(CHECKOUT)
@double_submit_csrf
@require_json_methods(["POST"])
def create_checkout_session(request):
    try:
        data = parse_json_body(request)
    except InvalidJSON:
        return json_error("Invalid JSON in request body", "INVALID_JSON")

    address = data.get("shippingAddress")
    bad_address = _validate_address(address)
    if bad_address:
        return bad_address

    origin = request_origin(request)
    owner = {"userId": str(request.user.pk)} if request.user.is_authenticated else {}

    if data.get("isCartCheckout"):
        items = data.get("cartItems")
        if items is None:
            items = cart_utils.checkout_items(cart_utils.get_cart(request.session))
        if not isinstance(items, list) or not items:
            return json_error("Cart is empty", "EMPTY_CART")
        return _cart_checkout(origin, items, address, owner)

    try:
        return _single_checkout(origin, data, address, owner)
    except stripe.StripeError as exc:
        logger.exception("Stripe error creating checkout session")
        return json_error("Payment processing error", "STRIPE_ERROR", status=500, details=str(exc))
    except Exception:
        logger.exception("Checkout session creation failed")
        return json_error("Failed to create checkout session", "SESSION_CREATION_FAILED", status=500)


def _cart_checkout(origin, items, address, owner):
    try:
        inventory = load_inventory()
        line_items = []
        metadata = {
            "kind": "product_order",
            "isCartCheckout": "true",
            "shippingCountry": address["country"],
            "timestamp": timezone.now().isoformat(),
            **owner,
        }
        total_qty = 0

        for item in items:
            if not isinstance(item, dict):
                continue
            product_id = item.get("productId")
            qty = parse_quantity(item.get("quantity", 1))
            if qty is None:
                continue
            prefix = f"item{len(line_items)}"

            if product_id == Product.LIMITED_EDITION:
                price_id = _existing_or_new_price(
                    inventory["product"], inventory["pricePerUnit"], "Limited Edition Card",
                )
                line_items.append({
                    "price": price_id,
                    "quantity": qty,
                    "adjustable_quantity": {
                        "enabled": True, "minimum": 1, "maximum": max(1, min(100, inventory["inventory"])),
                    },
                })
                metadata[f"{prefix}_type"] = "limited-edition"
            elif product_id == Product.CUSTOM_CARD:
                finish = normalize_finish(item.get("cardFinish"))
                image_url = item.get("customImageUrl") or ""
                line_items.append(_custom_card_line(
                    inventory["customCard"]["pricePerUnit"], finish, image_url, qty,
                ))
                metadata[f"{prefix}_type"] = "custom-card"
                metadata[f"{prefix}_finish"] = finish
                metadata[f"{prefix}_imageUrl"] = image_url
                if item.get("uploadId"):
                    metadata[f"{prefix}_uploadId"] = str(item["uploadId"])
            elif product_id == Product.DISPLAY_CASE:
                cases = inventory["displayCases"]
                price_id = _existing_or_new_price(cases["product"], cases["pricePerUnit"], "Acrylic Display Case")
                line_items.append({"price": price_id, "quantity": qty})
                metadata[f"{prefix}_type"] = "display-case"
            else:
                logger.info("Skipping unknown cart product %r", product_id)
                continue

            metadata[f"{prefix}_quantity"] = str(qty)
            total_qty += qty

        if not line_items:
            return json_error("No valid items in cart", "INVALID_CART_ITEMS")

        metadata["quantity"] = str(total_qty)
        customer_id = _create_customer(address, "cart_checkout")
        session = stripe.checkout.Session.create(
            line_items=line_items,
            custom_text={
                "submit": {"message": TERMS_MESSAGE},
                "terms_of_service_acceptance": {"message": TERMS_MESSAGE},
            },
            metadata=metadata,
            **_session_kwargs(origin, origin, address, customer_id, custom_card=False),
        )
    except stripe.StripeError as exc:
        logger.exception("Cart checkout failed")
        return json_error(str(exc) or "Failed to create checkout session", exc.code or "CHECKOUT_ERROR", status=500)
    except Exception as exc:
        logger.exception("Cart checkout failed")
        return json_error(str(exc) or "Failed to create checkout session", "CHECKOUT_ERROR", status=500)

    logger.info("Cart checkout session %s created (%s units)", session["id"], total_qty)
    return JsonResponse({
        "success": True,
        "id": session["id"],
        "url": session["url"],
        "message": "Cart checkout session created successfully",
    })


def _single_checkout(origin, data, address, owner):
    is_custom = bool(data.get("isCustomCard"))
    upload_id = data.get("uploadId")
    image_url = data.get("customImageUrl")
    raw_finish = data.get("cardFinish")
    include_case = bool(data.get("includeDisplayCase"))

    if is_custom and not upload_id and not image_url:
        return json_error("Upload ID or custom image URL is required for custom cards", "MISSING_UPLOAD_ID")

    qty = parse_quantity(data.get("quantity"))
    if qty is None:
        return json_error("Invalid quantity. Must be between 1 and 100.", "INVALID_QUANTITY")

    case_qty = 0
    if include_case:
        case_qty = parse_quantity(data.get("displayCaseQuantity"))
        if case_qty is None:
            return json_error(
                "Invalid display case quantity. Must be between 1 and 100.", "INVALID_DISPLAY_CASE_QUANTITY",
            )

    try:
        inventory = load_inventory()
    except InventoryUnavailable as exc:
        logger.error("Inventory check failed: %s", exc)
        return json_error("Unable to verify inventory availability", "INVENTORY_CHECK_FAILED", status=503)

    stock = inventory["inventory"]
    if not is_custom and stock < qty:
        return json_error(
            "Product is currently sold out" if stock <= 0 else f"Only {stock} item(s) available",
            "INSUFFICIENT_INVENTORY",
            availableInventory=stock,
        )

    case_stock = inventory["displayCases"]["inventory"]
    if include_case and case_stock < case_qty:
        return json_error(
            "Display cases are currently sold out" if case_stock <= 0
            else f"Only {case_stock} display case(s) available",
            "INSUFFICIENT_DISPLAY_CASE_INVENTORY",
            availableDisplayCaseInventory=case_stock,
        )

    finish = normalize_finish(raw_finish)
    line_items = []
    if is_custom:
        custom = inventory["customCard"]
        line_items.append(_custom_card_line(
            custom["pricePerUnit"], finish, image_url, qty, product_id=custom["product"]["id"],
        ))
    else:
        try:
            price = stripe.Price.create(
                currency=CURRENCY,
                unit_amount=to_cents(inventory["pricePerUnit"]),
                product=inventory["product"]["id"],
                nickname="Limited Edition Card",
                metadata={"basePrice": str(inventory["pricePerUnit"])},
            )
        except stripe.StripeError as exc:
            logger.error("Price creation failed: %s", exc)
            return json_error(
                "Failed to create price for product", "PRICE_CREATION_FAILED", status=500, details=str(exc),
            )
        line_items.append({
            "price": price["id"],
            "quantity": qty,
            "adjustable_quantity": {"enabled": True, "minimum": 1, "maximum": 100},
        })

    if include_case:
        cases = inventory["displayCases"]
        try:
            case_price = stripe.Price.create(
                currency=CURRENCY,
                unit_amount=to_cents(cases["pricePerUnit"]),
                product=cases["product"]["id"],
            )
        except stripe.StripeError as exc:
            logger.error("Display case price creation failed: %s", exc)
            return json_error(
                "Failed to create price for display case", "DISPLAY_CASE_PRICE_CREATION_FAILED", status=500,
            )
        line_items.append({"price": case_price["id"], "quantity": case_qty})

    metadata = {
        "kind": "product_order",
        "quantity": str(qty),
        "includeDisplayCase": "true" if include_case else "false",
        "displayCaseQuantity": str(case_qty),
        "shippingCountry": address["country"],
        "timestamp": timezone.now().isoformat(),
        "isCustomCard": "true" if is_custom else "false",
        **owner,
    }
    if upload_id:
        metadata["uploadId"] = str(upload_id)
    if image_url:
        metadata["customImageUrl"] = image_url
    if raw_finish:
        metadata["cardFinish"] = finish

    customer_id = _create_customer(address, "custom_card_checkout" if is_custom else "limited_edition_checkout")
    extra = {}
    if is_custom:
        extra["payment_intent_data"] = {
            "statement_descriptor": "CARDIFY CUSTOM",
            "metadata": {"custom_image_url": image_url or "", "card_finish": finish},
        }
    submit_message = (
        f"We'll create your custom {finish} cards and ship within 7-10 business days" if is_custom
        else "We will ship your limited edition cards within 5-7 business days"
    )

    session = stripe.checkout.Session.create(
        line_items=line_items,
        allow_promotion_codes=True,
        custom_text={
            "submit": {"message": submit_message},
            "terms_of_service_acceptance": {"message": TERMS_MESSAGE},
        },
        metadata=metadata,
        **extra,
        **_session_kwargs(
            origin, f"{origin}/upload" if is_custom else origin, address, customer_id, custom_card=is_custom,
        ),
    )

    # inventory is debited by the webhook once payment completes
    logger.info("Checkout session %s created (%s cards, %s cases)", session["id"], qty, case_qty)
    return JsonResponse({
        "success": True,
        "id": session["id"],
        "url": session["url"],
        "message": "Checkout session created successfully",
        "items": {"cards": qty, "displayCases": case_qty if include_case else 0},
    })


@require_json_methods(["GET"])
def checkout_session_detail(request, session_id):
    try:
        sess = stripe.checkout.Session.retrieve(session_id, expand=["line_items"]).to_dict()
    except stripe.InvalidRequestError as exc:
        logger.info("Checkout session %s not found: %s", session_id, exc)
        return json_error("Checkout session not found", "SESSION_NOT_FOUND", status=404)
    except stripe.StripeError as exc:
        logger.error("Could not retrieve checkout session %s: %s", session_id, exc)
        return json_error("Could not retrieve checkout session", "STRIPE_ERROR", status=502)

    line_items = []
    for li in (sess.get("line_items") or {}).get("data", []):
        line_items.append({
            "description": li.get("description"),
            "quantity": li.get("quantity"),
            "amountTotal": li.get("amount_total"),
        })

    customer = sess.get("customer_details") or {}
    return JsonResponse({
        "id": sess.get("id"),
        "status": sess.get("status"),
        "paymentStatus": sess.get("payment_status"),
        "customerEmail": customer.get("email") or sess.get("customer_email"),
        "amountSubtotal": sess.get("amount_subtotal"),
        "amountTotal": sess.get("amount_total"),
        "currency": sess.get("currency"),
        "shippingDetails": sess.get("shipping_details"),
        "metadata": dict(sess.get("metadata") or {}),
        "lineItems": line_items,
    })
