from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class UserAsset(models.Model):
    SOURCE_CHOICES = [
        ("generated", "AI generated"),
        ("uploaded", "Uploaded"),
    ]

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="assets")
    title = models.CharField(max_length=200, blank=True)
    image_url = models.TextField()  # storage URL or data: URL
    source = models.CharField(max_length=12, choices=SOURCE_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.title or f"Asset #{self.pk}"


class Listing(models.Model):
    STATUS_CHOICES = [
        ("active", "Active"),
        ("sold", "Sold"),
        ("inactive", "Inactive"),
    ]

    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="listings")
    asset = models.ForeignKey(UserAsset, on_delete=models.CASCADE, related_name="listings")
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="purchases",
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price_cents = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="active")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.title} ({self.status})"

    def as_dict(self):
        profile = getattr(self.seller, "profile", None)
        return {
            "id": self.pk,
            "title": self.title,
            "description": self.description,
            "price_cents": self.price_cents,
            "currency": self.currency,
            "status": self.status,
            "image_url": self.asset.image_url,
            "asset_id": self.asset_id,
            "seller_id": self.seller_id,
            "seller": {
                "display_name": (profile.display_name if profile else "") or self.seller.username,
                "avatar_url": (profile.avatar_url if profile else "") or None,
            },
            "created_at": self.created_at.isoformat(),
        }


class Transaction(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("completed", "Completed"),
        ("failed", "Failed"),
    ]

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL,
        related_name="marketplace_purchases",
    )  # null = anonymous buyer
    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="marketplace_sales")
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="transactions")
    amount_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default="USD")
    platform_fee_cents = models.PositiveIntegerField(default=0)
    stripe_payment_intent_id = models.CharField(max_length=255, unique=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="pending")
    payment_status = models.CharField(max_length=40, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Tx {self.stripe_payment_intent_id} ({self.status})"


class AssetBuyer(models.Model):
    """Ownership granted to a buyer once their payment succeeds."""
    asset = models.ForeignKey(UserAsset, on_delete=models.CASCADE, related_name="buyers")
    buyer = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL)
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE)
    transaction = models.OneToOneField(Transaction, on_delete=models.CASCADE, related_name="grant")
    purchase_amount_cents = models.PositiveIntegerField()
    purchased_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.buyer_id or 'anonymous'} owns asset {self.asset_id}"
