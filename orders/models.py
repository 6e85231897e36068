import logging

from django.conf import settings
from django.db import models, transaction
from django.db.models import F
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils import timezone

from shop.models import Product

logger = logging.getLogger(__name__)


# -------------------------------
# Orders / Items / Payments
# -------------------------------
class Order(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("paid", "Paid"),
        ("failed", "Failed"),
        ("refunded", "Refunded"),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL)
    stripe_session_id = models.CharField(max_length=255, unique=True)
    payment_intent_id = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default="pending")
    currency = models.CharField(max_length=10, default="USD")
    amount_total_cents = models.PositiveIntegerField(default=0)
    shipping_cents = models.PositiveIntegerField(default=0)
    is_custom = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    # --- shipping address snapshot ---
    shipping_name = models.CharField(max_length=120, blank=True)
    shipping_phone = models.CharField(max_length=30, blank=True)
    shipping_line1 = models.CharField(max_length=255, blank=True)
    shipping_line2 = models.CharField(max_length=255, blank=True)
    shipping_city = models.CharField(max_length=120, blank=True)
    shipping_state = models.CharField(max_length=120, blank=True)
    shipping_postal_code = models.CharField(max_length=20, blank=True)
    shipping_country = models.CharField(max_length=2, blank=True)

    # --- fulfillment ---
    FULFILL_CHOICES = [
        ("new", "New"),
        ("processing", "Processing"),
        ("printed", "Printed"),
        ("shipped", "Shipped"),
        ("delivered", "Delivered"),
        ("cancelled", "Cancelled"),
    ]
    fulfillment_status = models.CharField(max_length=20, choices=FULFILL_CHOICES, default="new")
    tracking_number = models.CharField(max_length=100, blank=True)
    carrier = models.CharField(max_length=100, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    admin_note = models.TextField(blank=True)

    # prevents a second stock decrement on webhook replays
    stock_debited = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Order #{self.id} - {self.status}"

    def mark_shipped(self):
        self.fulfillment_status = "shipped"
        self.shipped_at = timezone.now()
        self.save(update_fields=["fulfillment_status", "shipped_at"])

    @property
    def total(self):
        return self.amount_total_cents / 100

    @property
    def card_count(self):
        return sum(i.quantity for i in self.items.all() if i.kind != Product.DISPLAY_CASE)


class OrderItem(models.Model):
    KIND_CHOICES = Product.CODE_CHOICES

    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    kind = models.CharField(max_length=40, choices=KIND_CHOICES)
    quantity = models.PositiveIntegerField(default=1)
    finish = models.CharField(max_length=20, blank=True)
    image_url = models.URLField(max_length=1000, blank=True)
    upload_id = models.CharField(max_length=64, blank=True)

    def __str__(self):
        return f"{self.quantity} × {self.get_kind_display()} (Order #{self.order_id})"


class Payment(models.Model):
    """
    Creating a Payment row is treated as a successful charge.
    The stock decrement logic is hooked on post_save(created=True).
    """
    order = models.OneToOneField(Order, related_name="payment", on_delete=models.CASCADE)
    gateway = models.CharField(max_length=20, default="stripe")
    gateway_ref = models.CharField(max_length=255, blank=True)  # payment intent id
    amount_cents = models.PositiveIntegerField(default=0)
    raw = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.gateway} {self.amount_cents}c for Order #{self.order_id}"


# -------------------------------
# Stock decrement on successful payment
# -------------------------------
def debit_stock(order: Order) -> None:
    """
    Decrement product inventory for each item exactly once per order.
    Made-to-order products (inventory NULL) are skipped. A product without
    enough stock is clamped to zero; the sale already happened.
    """
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        if order.stock_debited:
            return

        for it in order.items.all():
            updated = Product.objects.filter(
                code=it.kind,
                inventory__isnull=False,
                inventory__gte=it.quantity,
            ).update(inventory=F("inventory") - it.quantity)

            if not updated:
                clamped = Product.objects.filter(code=it.kind, inventory__isnull=False).update(inventory=0)
                if clamped:
                    logger.warning(
                        "Insufficient stock for %s on order %s (requested %s); clamped to 0",
                        it.kind, order.pk, it.quantity,
                    )

        order.stock_debited = True
        if order.status != "paid":
            order.status = "paid"
            order.paid_at = timezone.now()
            order.save(update_fields=["stock_debited", "status", "paid_at"])
        else:
            order.save(update_fields=["stock_debited"])


@receiver(post_save, sender=Payment)
def reduce_stock_on_success(sender, instance: Payment, created, **kwargs):
    if created:
        debit_stock(instance.order)
