import pytest
from helpers import post_json

from cart import utils as cart_utils

pytestmark = pytest.mark.django_db


class Session(dict):
    modified = False


def _card(**overrides):
    item = {"type": "limited-edition", "quantity": 1, "pricePerUnit": 9, "displayCasePricePerUnit": 19}
    item.update(overrides)
    return item


# ---------- session helpers ----------
def test_limited_edition_lines_merge():
    session = Session()
    first = cart_utils.add_item(session, _card(quantity=2))
    cart_utils.add_item(session, _card(quantity=3))
    assert len(session["cart"]) == 1
    assert first["quantity"] == 5


def test_merge_respects_display_case_choice():
    session = Session()
    cart_utils.add_item(session, _card(quantity=1))
    cart_utils.add_item(session, _card(quantity=1, includeDisplayCase=True, displayCaseQuantity=1))
    cart_utils.add_item(session, _card(quantity=2, includeDisplayCase=True, displayCaseQuantity=2))
    cart = session["cart"]
    assert len(cart) == 2
    with_case = [i for i in cart if i["includeDisplayCase"]][0]
    assert with_case["quantity"] == 3
    assert with_case["displayCaseQuantity"] == 3


def test_custom_cards_never_merge():
    session = Session()
    cart_utils.add_item(session, {"type": "custom-card", "quantity": 1, "pricePerUnit": 13, "cardFinish": "gloss"})
    cart_utils.add_item(session, {"type": "custom-card", "quantity": 1, "pricePerUnit": 13, "cardFinish": "gloss"})
    assert len(session["cart"]) == 2
    assert session["cart"][0]["id"] != session["cart"][1]["id"]
    assert session["cart"][0]["id"].startswith("custom-card-")


def test_subtotal_includes_display_cases():
    session = Session()
    cart_utils.add_item(session, _card(quantity=2, includeDisplayCase=True, displayCaseQuantity=1))
    cart_utils.add_item(session, {"type": "custom-card", "quantity": 1, "pricePerUnit": "13.00"})
    summary = cart_utils.summary(session)
    assert summary["itemCount"] == 3
    assert summary["subtotal"] == 2 * 9 + 19 + 13


def test_invalid_items_are_rejected():
    with pytest.raises(cart_utils.InvalidCartItem):
        cart_utils.clean_item({"type": "booster-box"})
    with pytest.raises(cart_utils.InvalidCartItem):
        cart_utils.clean_item(_card(quantity=0))
    with pytest.raises(cart_utils.InvalidCartItem):
        cart_utils.clean_item(_card(pricePerUnit="free"))
    with pytest.raises(cart_utils.InvalidCartItem):
        cart_utils.clean_item(_card(includeDisplayCase=True, displayCaseQuantity=500))


def test_update_only_touches_known_fields():
    session = Session()
    item = cart_utils.add_item(session, _card(quantity=1))
    updated = cart_utils.update_item(session, item["id"], {"quantity": 4, "pricePerUnit": 0.01, "id": "x"})
    assert updated["quantity"] == 4
    assert updated["pricePerUnit"] == 9.0
    assert updated["id"] == item["id"]
    assert cart_utils.update_item(session, "missing", {"quantity": 2}) is None


def test_checkout_items_split_display_cases():
    session = Session()
    cart_utils.add_item(session, _card(quantity=2, includeDisplayCase=True, displayCaseQuantity=1))
    cart_utils.add_item(session, {
        "type": "custom-card", "quantity": 3, "cardFinish": "rainbow",
        "image": "https://cdn.test/art.png", "uploadId": 7,
    })
    lines = cart_utils.checkout_items(session["cart"])
    assert lines == [
        {"productId": "limited-edition-card", "quantity": 2},
        {"productId": "display-case", "quantity": 1},
        {
            "productId": "custom-card", "quantity": 3, "cardFinish": "rainbow",
            "customImageUrl": "https://cdn.test/art.png", "uploadId": 7,
        },
    ]


# ---------- endpoints ----------
def test_cart_endpoints_round_trip(client):
    assert client.get("/api/cart/").json() == {"items": [], "itemCount": 0, "subtotal": 0.0}

    resp = post_json(client, "/api/cart/items/", _card(quantity=2))
    assert resp.status_code == 201
    item_id = resp.json()["item"]["id"]
    assert resp.json()["itemCount"] == 2

    resp = client.patch(f"/api/cart/items/{item_id}/", '{"quantity": 5}', content_type="application/json")
    assert resp.status_code == 200
    assert resp.json()["subtotal"] == 45.0

    resp = client.delete(f"/api/cart/items/{item_id}/")
    assert resp.json()["itemCount"] == 0

    resp = client.delete(f"/api/cart/items/{item_id}/")
    assert resp.status_code == 404
    assert resp.json()["code"] == "CART_ITEM_NOT_FOUND"


def test_add_invalid_item(client):
    resp = post_json(client, "/api/cart/items/", {"type": "limited-edition", "quantity": 101})
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_CART_ITEM"

    resp = post_json(client, "/api/cart/items/", "[1, 2]")
    assert resp.json()["code"] == "INVALID_JSON"


def test_clear_cart(client):
    post_json(client, "/api/cart/items/", _card())
    resp = client.post("/api/cart/clear/")
    assert resp.json()["items"] == []
