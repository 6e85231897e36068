from django.contrib import admin
from .models import CreditsLedger


@admin.register(CreditsLedger)
class CreditsLedgerAdmin(admin.ModelAdmin):
    list_display = ("user", "credits", "amount_cents", "reason", "payment_intent", "created_at")
    list_filter = ("reason",)
    search_fields = ("payment_intent", "user__email")
