# shop/pricing.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

CURRENCY = "usd"

MIN_QUANTITY = 1
MAX_QUANTITY = 100

# ----- Card finishes -----
MATTE, RAINBOW, GLOSS = "matte", "rainbow", "gloss"
FINISHES = (MATTE, RAINBOW, GLOSS)
FINISH_SURCHARGE = {
    MATTE: Decimal("0.00"),
    RAINBOW: Decimal("4.00"),
    GLOSS: Decimal("4.00"),
}


def money(x) -> Decimal:
    """Round to 2dp, HALF_UP."""
    return (Decimal(str(x)) if x is not None else Decimal("0.00")).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )


def to_cents(x) -> int:
    return int(money(x) * 100)


def normalize_finish(finish) -> str:
    finish = (finish or MATTE).strip().lower() if isinstance(finish, str) else MATTE
    return finish if finish in FINISHES else MATTE


def finish_surcharge(finish) -> Decimal:
    return FINISH_SURCHARGE[normalize_finish(finish)]


def custom_card_name(finish) -> str:
    return f"Custom Card - {normalize_finish(finish).capitalize()} Finish"


def custom_card_description(finish, image_url) -> str:
    finish = normalize_finish(finish)
    extra = {
        RAINBOW: " and holographic rainbow finish",
        GLOSS: " and high-gloss finish",
    }.get(finish, "")
    return f"Custom trading card with your uploaded artwork{extra}. Image: {image_url or 'Not provided'}"


def parse_quantity(raw):
    """Whole number in [1, 100], else None."""
    if isinstance(raw, bool):
        return None
    try:
        qty = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    if qty < MIN_QUANTITY or qty > MAX_QUANTITY:
        return None
    return qty


# ----- Shipping -----
@dataclass(frozen=True)
class ShippingOption:
    name: str
    amount_cents: int
    min_days: int
    max_days: int

    def as_stripe(self):
        return {
            "shipping_rate_data": {
                "type": "fixed_amount",
                "fixed_amount": {"amount": self.amount_cents, "currency": CURRENCY},
                "display_name": self.name,
                "delivery_estimate": {
                    "minimum": {"unit": "business_day", "value": self.min_days},
                    "maximum": {"unit": "business_day", "value": self.max_days},
                },
                "tax_behavior": "exclusive",
            }
        }


SHIPPING_BY_COUNTRY = {
    "US": ShippingOption("Standard Shipping", 499, 5, 7),
    "CA": ShippingOption("Standard Shipping", 1199, 7, 14),
}
INTERNATIONAL_SHIPPING = ShippingOption("International Shipping", 1699, 10, 21)

ALLOWED_SHIPPING_COUNTRIES = [
    "US", "CA", "MX", "GB", "DE", "FR", "IT", "ES", "NL", "BE",
    "AT", "CH", "SE", "NO", "DK", "FI", "IE", "PT", "PL", "CZ",
    "HU", "RO", "BG", "HR", "SI", "SK", "LT", "LV", "EE", "GR",
    "CY", "MT", "LU", "AU", "NZ", "JP", "SG", "HK", "KR", "TW",
    "MY", "TH", "PH", "ID", "VN", "IN", "AE", "SA", "IL", "TR",
    "ZA", "BR", "AR", "CL", "PE", "CO",
]


def shipping_option_for_country(country) -> ShippingOption:
    return SHIPPING_BY_COUNTRY.get((country or "").strip().upper(), INTERNATIONAL_SHIPPING)
