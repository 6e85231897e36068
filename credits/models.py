from django.conf import settings
from django.db import models


class CreditsLedger(models.Model):
    """One row per credit grant; payment_intent is the replay guard."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="credit_entries")
    payment_intent = models.CharField(max_length=255, unique=True)
    amount_cents = models.PositiveIntegerField(default=0)
    credits = models.PositiveIntegerField()
    reason = models.CharField(max_length=40, default="purchase")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "credits ledger"

    def __str__(self):
        return f"+{self.credits} for user {self.user_id} ({self.reason})"
