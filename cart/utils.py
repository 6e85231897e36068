# cart/utils.py
import secrets
from decimal import Decimal
from typing import Dict, List

from shop.models import Product
from shop.pricing import MATTE, money, normalize_finish, parse_quantity

LIMITED_EDITION = "limited-edition"
CUSTOM_CARD = "custom-card"
ITEM_TYPES = (LIMITED_EDITION, CUSTOM_CARD)

# fields a client may change on an existing line
UPDATABLE_FIELDS = {
    "quantity", "includeDisplayCase", "displayCaseQuantity", "cardFinish", "name", "image",
}


class InvalidCartItem(ValueError):
    pass


def get_cart(session) -> List[dict]:
    cart = session.get("cart")
    if not isinstance(cart, list):
        cart = []
        session["cart"] = cart
    return cart


def _save(session, cart):
    session["cart"] = cart
    session.modified = True


def _price(raw, field):
    try:
        value = money(raw)
    except (ArithmeticError, ValueError):
        raise InvalidCartItem(f"{field} must be a number")
    if value < 0:
        raise InvalidCartItem(f"{field} must not be negative")
    return float(value)


def clean_item(data: dict) -> dict:
    """Validate a client payload into a cart line (without id)."""
    item_type = data.get("type")
    if item_type not in ITEM_TYPES:
        raise InvalidCartItem("type must be 'limited-edition' or 'custom-card'")

    qty = parse_quantity(data.get("quantity", 1))
    if qty is None:
        raise InvalidCartItem("quantity must be between 1 and 100")

    include_case = bool(data.get("includeDisplayCase", False))
    case_qty = 0
    if include_case:
        case_qty = parse_quantity(data.get("displayCaseQuantity", 1))
        if case_qty is None:
            raise InvalidCartItem("displayCaseQuantity must be between 1 and 100")

    item = {
        "type": item_type,
        "name": str(data.get("name") or ""),
        "image": str(data.get("image") or ""),
        "quantity": qty,
        "includeDisplayCase": include_case,
        "displayCaseQuantity": case_qty,
        "pricePerUnit": _price(data.get("pricePerUnit", 0), "pricePerUnit"),
        "displayCasePricePerUnit": _price(data.get("displayCasePricePerUnit", 0), "displayCasePricePerUnit"),
    }
    if item_type == CUSTOM_CARD:
        item["cardFinish"] = normalize_finish(data.get("cardFinish") or MATTE)
        item["uploadId"] = data.get("uploadId")
    return item


def add_item(session, data: dict) -> dict:
    """
    Limited-edition lines merge into an existing limited-edition line with the
    same includeDisplayCase; everything else is appended as a new line.
    """
    cart = get_cart(session)
    item = clean_item(data)

    if item["type"] == LIMITED_EDITION:
        for existing in cart:
            if existing["type"] == LIMITED_EDITION and existing["includeDisplayCase"] == item["includeDisplayCase"]:
                existing["quantity"] += item["quantity"]
                if item["includeDisplayCase"]:
                    existing["displayCaseQuantity"] = existing.get("displayCaseQuantity", 0) + item["displayCaseQuantity"]
                else:
                    existing["displayCaseQuantity"] = 0
                _save(session, cart)
                return existing

    item["id"] = f"{item['type']}-{secrets.token_hex(6)}"
    cart.append(item)
    _save(session, cart)
    return item


def find_item(session, item_id):
    return next((i for i in get_cart(session) if i.get("id") == item_id), None)


def remove_item(session, item_id) -> bool:
    cart = get_cart(session)
    kept = [i for i in cart if i.get("id") != item_id]
    if len(kept) == len(cart):
        return False
    _save(session, kept)
    return True


def update_item(session, item_id, changes: dict):
    cart = get_cart(session)
    item = next((i for i in cart if i.get("id") == item_id), None)
    if item is None:
        return None

    merged = dict(item)
    merged.update({k: v for k, v in changes.items() if k in UPDATABLE_FIELDS})
    cleaned = clean_item(merged)
    cleaned["id"] = item["id"]
    item.clear()
    item.update(cleaned)
    _save(session, cart)
    return item


def clear_cart(session) -> None:
    _save(session, [])


def item_count(cart) -> int:
    return sum(int(i.get("quantity", 0)) for i in cart)


def line_total(item) -> Decimal:
    total = money(item.get("pricePerUnit", 0)) * int(item.get("quantity", 0))
    if item.get("includeDisplayCase"):
        total += money(item.get("displayCasePricePerUnit", 0)) * int(item.get("displayCaseQuantity", 0))
    return money(total)


def subtotal(cart) -> Decimal:
    return money(sum((line_total(i) for i in cart), Decimal("0.00")))


def summary(session) -> Dict:
    cart = get_cart(session)
    return {
        "items": cart,
        "itemCount": item_count(cart),
        "subtotal": float(subtotal(cart)),
    }


def checkout_items(cart) -> List[dict]:
    """Flatten cart lines into checkout lines keyed by product code."""
    lines = []
    for item in cart:
        if item.get("type") == CUSTOM_CARD:
            lines.append({
                "productId": Product.CUSTOM_CARD,
                "quantity": int(item.get("quantity", 1)),
                "cardFinish": item.get("cardFinish") or MATTE,
                "customImageUrl": item.get("image") or "",
                "uploadId": item.get("uploadId"),
            })
        else:
            lines.append({
                "productId": Product.LIMITED_EDITION,
                "quantity": int(item.get("quantity", 1)),
            })
        if item.get("includeDisplayCase") and int(item.get("displayCaseQuantity", 0)) > 0:
            lines.append({
                "productId": Product.DISPLAY_CASE,
                "quantity": int(item["displayCaseQuantity"]),
            })
    return lines
