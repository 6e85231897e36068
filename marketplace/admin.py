from django.contrib import admin
from .models import AssetBuyer, Listing, Transaction, UserAsset


@admin.register(UserAsset)
class UserAssetAdmin(admin.ModelAdmin):
    list_display = ("id", "owner", "title", "source", "created_at")
    list_filter = ("source",)
    search_fields = ("title", "owner__email")


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "seller", "price_cents", "currency", "status", "created_at")
    list_filter = ("status", "currency")
    search_fields = ("title", "description", "seller__email")


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("stripe_payment_intent_id", "listing", "buyer", "seller", "amount_cents", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("stripe_payment_intent_id",)


@admin.register(AssetBuyer)
class AssetBuyerAdmin(admin.ModelAdmin):
    list_display = ("asset", "buyer", "listing", "purchase_amount_cents", "purchased_at")
