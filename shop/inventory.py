# shop/inventory.py
from .models import Product


class InventoryUnavailable(Exception):
    """A product the storefront depends on is missing or switched off."""


def _active(code):
    return Product.objects.filter(code=code, is_active=True).first()


def _stock(product):
    # made-to-order products never run out
    return product.inventory if product.inventory is not None else 10**6


def load_inventory():
    """
    Snapshot of everything checkout needs to price and stock-check an order.
    Prices are floats in dollars, matching what the storefront renders.
    """
    card = _active(Product.LIMITED_EDITION)
    case = _active(Product.DISPLAY_CASE)
    custom = _active(Product.CUSTOM_CARD)

    missing = [code for code, p in (
        (Product.LIMITED_EDITION, card),
        (Product.DISPLAY_CASE, case),
        (Product.CUSTOM_CARD, custom),
    ) if p is None]
    if missing:
        raise InventoryUnavailable(f"Inactive or missing products: {', '.join(missing)}")

    return {
        "product": card.as_dict(),
        "pricePerUnit": float(card.price_per_unit()),
        "inventory": _stock(card),
        "displayCases": {
            "product": case.as_dict(),
            "pricePerUnit": float(case.price_per_unit()),
            "inventory": _stock(case),
        },
        "customCard": {
            "product": custom.as_dict(),
            "pricePerUnit": float(custom.price_per_unit()),
        },
    }
