# marketplace/services.py
import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from .models import AssetBuyer, Listing, Transaction

logger = logging.getLogger(__name__)


def _complete(intent) -> bool:
    """Lock the transaction row, mark it paid, sell the listing and grant ownership."""
    with transaction.atomic():
        tx = (
            Transaction.objects.select_for_update()
            .select_related("listing")
            .filter(stripe_payment_intent_id=intent["id"])
            .first()
        )
        if tx is None:
            return False

        amount = intent.get("amount_received") or intent.get("amount") or tx.amount_cents
        tx.status = "completed"
        tx.payment_status = "succeeded"
        tx.amount_cents = amount
        if intent.get("currency"):
            tx.currency = intent["currency"].upper()
        tx.save(update_fields=["status", "payment_status", "amount_cents", "currency", "updated_at"])

        listing = Listing.objects.select_for_update().get(pk=tx.listing_id)
        if listing.status == "sold" and AssetBuyer.objects.filter(listing=listing).exclude(transaction=tx).exists():
            logger.warning(
                "Listing %s already sold; payment %s (transaction %s) needs a refund",
                listing.pk, intent["id"], tx.pk,
            )
            return True

        listing.status = "sold"
        listing.buyer_id = tx.buyer_id
        listing.save(update_fields=["status", "buyer", "updated_at"])

        AssetBuyer.objects.get_or_create(
            transaction=tx,
            defaults={
                "asset_id": listing.asset_id,
                "buyer_id": tx.buyer_id,
                "listing": listing,
                "purchase_amount_cents": amount,
            },
        )
    return True


def complete_transaction_for_intent(intent) -> bool:
    """
    Settle the marketplace transaction behind a succeeded payment intent.
    Falls back to a bare status update when the full path finds nothing or fails.
    Returns whether any transaction row was updated.
    """
    try:
        if _complete(intent):
            logger.info("Transaction for %s completed (%s %s)", intent["id"], intent.get("amount"), intent.get("currency"))
            return True
        logger.warning("No transaction found for payment intent %s", intent["id"])
    except DatabaseError:
        logger.exception("Completing transaction for %s failed, trying direct update", intent["id"])

    updated = Transaction.objects.filter(stripe_payment_intent_id=intent["id"]).update(
        status="completed", payment_status="succeeded", updated_at=timezone.now(),
    )
    if updated:
        logger.info("Direct update marked %s transaction(s) completed for %s", updated, intent["id"])
        return True
    logger.warning("No transaction found with stripe_payment_intent_id %s", intent["id"])
    return False
