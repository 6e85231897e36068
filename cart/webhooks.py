# cart/webhooks.py
import logging

import stripe
from django.conf import settings
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from credits.services import CREDITS_KIND, grant_purchased_credits
from marketplace.services import complete_transaction_for_intent
from orders.services import record_paid_session

stripe.api_key = settings.STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)


def _checkout_completed(session):
    kind = (session.get("metadata") or {}).get("kind")
    if kind == CREDITS_KIND:
        grant_purchased_credits(session)
    elif kind == "product_order":
        record_paid_session(session)
    else:
        logger.info("Ignoring checkout session %s with kind %r", session.get("id"), kind)


def _charge_succeeded(charge):
    pi = charge.get("payment_intent")
    pi_id = pi if isinstance(pi, str) else (pi or {}).get("id")
    if not pi_id:
        return
    complete_transaction_for_intent(stripe.PaymentIntent.retrieve(pi_id).to_dict())


HANDLERS = {
    "checkout.session.completed": _checkout_completed,
    "payment_intent.succeeded": complete_transaction_for_intent,
    "charge.succeeded": _charge_succeeded,
}


@csrf_exempt
@require_POST
def stripe_webhook(request):
    secret = settings.STRIPE_WEBHOOK_SECRET
    if not secret:
        logger.error("STRIPE_WEBHOOK_SECRET is not configured")
        return HttpResponse("webhook secret missing", status=500)

    payload = request.body
    sig = request.META.get("HTTP_STRIPE_SIGNATURE", "")
    try:
        event = stripe.Webhook.construct_event(payload, sig, secret)
    except (ValueError, stripe.SignatureVerificationError) as exc:
        logger.warning("Stripe webhook bad signature: %s", exc)
        return HttpResponse("bad sig", status=400)

    # handlers and services work on plain dicts
    event = event.to_dict()

    handler = HANDLERS.get(event["type"])
    if handler is None:
        return JsonResponse({"received": True})

    try:
        handler(event["data"]["object"])
    except Exception:
        # a 5xx makes Stripe redeliver
        logger.exception("Stripe webhook handler failed for %s %s", event["type"], event.get("id"))
        return HttpResponse("error", status=500)

    # ack only after the work is done
    return JsonResponse({"received": True})
