# credits/services.py
import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F

from userprofile.models import Profile
from .models import CreditsLedger

logger = logging.getLogger(__name__)

CREDITS_KIND = "credits_purchase"


def increment_profile_credits(user, delta: int) -> None:
    """Atomic balance bump; creates the profile when it is missing."""
    updated = Profile.objects.filter(user=user).update(credits=F("credits") + delta)
    if not updated:
        profile, created = Profile.objects.get_or_create(user=user, defaults={"credits": delta})
        if not created:
            Profile.objects.filter(pk=profile.pk).update(credits=F("credits") + delta)


def grant_purchased_credits(session) -> bool:
    """
    Credit the buyer of a completed credits checkout session.
    The ledger row is keyed by payment intent, so a replayed event inserts
    nothing and grants nothing. Returns whether credits were granted.
    """
    md = dict(session.get("metadata") or {})
    if md.get("kind") != CREDITS_KIND:
        return False

    user_id = md.get("userId")
    try:
        credits = int(md.get("credits") or 0)
    except (TypeError, ValueError):
        credits = 0
    if not user_id or credits <= 0:
        logger.warning("credits_purchase session %s missing metadata: %s", session.get("id"), md)
        return False

    user = get_user_model().objects.filter(pk=user_id).first() if str(user_id).isdigit() else None
    if user is None:
        logger.warning("credits_purchase session %s names unknown user %s", session.get("id"), user_id)
        return False

    pi = session.get("payment_intent")
    pi_id = pi if isinstance(pi, str) else ((pi or {}).get("id") or session["id"])

    try:
        with transaction.atomic():
            CreditsLedger.objects.create(
                user=user,
                payment_intent=pi_id,
                amount_cents=session.get("amount_total") or 0,
                credits=credits,
                reason="purchase",
            )
            increment_profile_credits(user, credits)
    except IntegrityError:
        logger.info("Credits for %s already granted; ignoring replay", pi_id)
        return False

    logger.info("Granted %s credits to user %s (%s)", credits, user.pk, pi_id)
    return True
