from decimal import Decimal

from django.db import models


class Product(models.Model):
    LIMITED_EDITION = "limited-edition-card"
    DISPLAY_CASE = "display-case"
    CUSTOM_CARD = "custom-card"
    CODE_CHOICES = [
        (LIMITED_EDITION, "Limited Edition Card"),
        (DISPLAY_CASE, "Acrylic Display Case"),
        (CUSTOM_CARD, "Custom Card"),
    ]

    code = models.SlugField(max_length=40, unique=True, choices=CODE_CHOICES)
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    image = models.CharField(max_length=255, blank=True)
    price = models.DecimalField(max_digits=8, decimal_places=2)     # USD per unit
    inventory = models.PositiveIntegerField(null=True, blank=True)  # null = made to order
    stripe_product_id = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.name} ({self.code})"

    @property
    def made_to_order(self) -> bool:
        return self.inventory is None

    def as_dict(self):
        return {
            "id": self.stripe_product_id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "image": self.image,
        }

    def price_per_unit(self) -> Decimal:
        return self.price or Decimal("0.00")
