# orders/emails.py
import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def _context(order):
    return {
        "order": order,
        "items": order.items.all(),
        "total": f"{order.amount_total_cents / 100:.2f}",
        "shipping": f"{order.shipping_cents / 100:.2f}",
        "site_url": settings.SITE_URL,
    }


def send_order_emails(order):
    """
    Customer confirmation plus an alert to ORDER_ALERT_RECIPIENTS.
    Mail failures are logged; the order is already paid.
    """
    if not order.email:
        logger.info("Skipping order email for order %s: no email", order.pk)
        return

    ctx = _context(order)
    from_email = settings.DEFAULT_FROM_EMAIL

    try:
        subject = render_to_string("orders/order_confirmation_subject.txt", ctx).strip()
        body = render_to_string("orders/order_confirmation.txt", ctx)
        EmailMultiAlternatives(subject, body, from_email, [order.email]).send(fail_silently=False)
        logger.info("Order confirmation sent for order %s", order.pk)
    except Exception:
        logger.exception("Order confirmation email failed for order %s", order.pk)

    rcpts = list(settings.ORDER_ALERT_RECIPIENTS)
    if not rcpts:
        return
    try:
        EmailMultiAlternatives(
            subject=f"[Order #{order.pk}] Paid - {order.email}",
            body=render_to_string("orders/order_alert.txt", ctx),
            from_email=from_email,
            to=rcpts,
        ).send(fail_silently=False)
        logger.info("Order alert for order %s sent to %s", order.pk, rcpts)
    except Exception:
        logger.exception("Order alert email failed for order %s", order.pk)
