# orders/services.py
import logging
import re

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from shop.models import Product
from .emails import send_order_emails
from .models import Order, OrderItem, Payment

logger = logging.getLogger(__name__)

# cart metadata item types -> product codes
ITEM_KINDS = {
    "limited-edition": Product.LIMITED_EDITION,
    "custom-card": Product.CUSTOM_CARD,
    "display-case": Product.DISPLAY_CASE,
}
CART_ITEM_KEY = re.compile(r"^item(\d+)_type$")


def _int(value, default=0):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _intent_id(session):
    pi = session.get("payment_intent")
    if isinstance(pi, str):
        return pi
    if pi:
        return pi.get("id") or ""
    return ""


def items_from_metadata(md) -> list:
    """Order lines encoded in checkout session metadata, single or cart form."""
    lines = []
    if md.get("isCartCheckout") == "true":
        # numeric order, tolerating gaps in the numbering
        found = sorted((m for m in map(CART_ITEM_KEY.match, md) if m), key=lambda m: int(m.group(1)))
        for match in found:
            i = match.group(1)
            kind = ITEM_KINDS.get(md[match.group(0)])
            qty = _int(md.get(f"item{i}_quantity"))
            if kind and qty > 0:
                lines.append({
                    "kind": kind,
                    "quantity": qty,
                    "finish": md.get(f"item{i}_finish", ""),
                    "image_url": md.get(f"item{i}_imageUrl", ""),
                    "upload_id": md.get(f"item{i}_uploadId", ""),
                })
        return lines

    is_custom = md.get("isCustomCard") == "true"
    qty = _int(md.get("quantity"))
    if qty > 0:
        lines.append({
            "kind": Product.CUSTOM_CARD if is_custom else Product.LIMITED_EDITION,
            "quantity": qty,
            "finish": md.get("cardFinish", "matte") if is_custom else "",
            "image_url": md.get("customImageUrl", ""),
            "upload_id": md.get("uploadId", ""),
        })
    case_qty = _int(md.get("displayCaseQuantity"))
    if md.get("includeDisplayCase") == "true" and case_qty > 0:
        lines.append({"kind": Product.DISPLAY_CASE, "quantity": case_qty})
    return lines


def _apply_shipping(order, session):
    details = session.get("shipping_details") or (session.get("collected_information") or {}).get("shipping_details") or {}
    address = details.get("address") or {}
    customer = session.get("customer_details") or {}
    order.shipping_name = (details.get("name") or customer.get("name") or "")[:120]
    order.shipping_phone = (customer.get("phone") or "")[:30]
    order.shipping_line1 = address.get("line1") or ""
    order.shipping_line2 = address.get("line2") or ""
    order.shipping_city = address.get("city") or ""
    order.shipping_state = address.get("state") or ""
    order.shipping_postal_code = address.get("postal_code") or ""
    order.shipping_country = (address.get("country") or "")[:2]


def record_paid_session(session):
    """
    Turn a completed product checkout session into a paid Order.
    Idempotent on the session id: a replayed event returns the existing order
    and neither re-debits stock nor re-sends email.
    """
    session_id = session["id"]
    md = dict(session.get("metadata") or {})
    customer = session.get("customer_details") or {}
    email = customer.get("email") or session.get("customer_email") or ""

    with transaction.atomic():
        order, created = Order.objects.select_for_update().get_or_create(
            stripe_session_id=session_id,
            defaults={"email": email},
        )

        if not created and Payment.objects.filter(order=order).exists():
            logger.info("Session %s already recorded as order %s", session_id, order.pk)
            return order

        if created:
            for line in items_from_metadata(md):
                OrderItem.objects.create(order=order, **line)

        order.email = order.email or email
        order.payment_intent_id = _intent_id(session)
        order.currency = (session.get("currency") or "usd").upper()
        order.amount_total_cents = session.get("amount_total") or 0
        order.shipping_cents = (session.get("total_details") or {}).get("amount_shipping") or 0
        order.is_custom = md.get("isCustomCard") == "true" or any(
            k.endswith("_type") and v == "custom-card" for k, v in md.items()
        )
        if md.get("userId"):
            order.user = get_user_model().objects.filter(pk=_int(md["userId"], None)).first()
        _apply_shipping(order, session)
        order.status = "paid"
        order.paid_at = timezone.now()
        order.save()

        # post_save on Payment debits stock
        Payment.objects.create(
            order=order,
            gateway="stripe",
            gateway_ref=order.payment_intent_id,
            amount_cents=order.amount_total_cents,
            raw=dict(session),
        )

    logger.info("Order %s paid via session %s (%s cents)", order.pk, session_id, order.amount_total_cents)
    if order.email:
        send_order_emails(order)
    return order

