import pytest
import stripe
from django.contrib.auth.models import User
from django.db import DatabaseError
from helpers import post_json

from marketplace import services
from marketplace.models import AssetBuyer, Listing, Transaction, UserAsset


@pytest.fixture
def asset(user):
    return UserAsset.objects.create(owner=user, title="Sky Whale", image_url="https://cdn.test/whale.png")


@pytest.fixture
def listing(asset, user):
    return Listing.objects.create(seller=user, asset=asset, title="Sky Whale", price_cents=1200)


@pytest.fixture
def intents(monkeypatch):
    """Fake PaymentIntent.create/retrieve; retrieve reports `status` from the dict."""
    state = {"created": [], "status": "requires_payment_method"}

    def create(**kwargs):
        n = len(state["created"]) + 1
        state["created"].append(kwargs)
        return stripe.PaymentIntent.construct_from({"id": f"pi_new_{n}", "client_secret": f"pi_new_{n}_secret"}, "sk_test")

    def retrieve(pi_id):
        return stripe.PaymentIntent.construct_from(
            {"id": pi_id, "client_secret": f"{pi_id}_secret", "status": state["status"]}, "sk_test",
        )

    monkeypatch.setattr(stripe.PaymentIntent, "create", create)
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", retrieve)
    return state


# ---------- listings ----------
def test_browse_active_listings(client, listing, asset, user):
    Listing.objects.create(seller=user, asset=asset, title="Old whale", price_cents=100, status="sold")
    body = client.get("/api/marketplace/listings/").json()
    assert body["count"] == 1
    row = body["listings"][0]
    assert row["title"] == "Sky Whale"
    assert row["image_url"] == "https://cdn.test/whale.png"
    assert row["seller"]["display_name"] == "alice"


def test_search_listings(client, listing):
    assert client.get("/api/marketplace/listings/?q=whale").json()["count"] == 1
    assert client.get("/api/marketplace/listings/?q=goblin").json()["count"] == 0


def test_create_listing(auth_client, asset):
    resp = post_json(auth_client, "/api/marketplace/listings/", {
        "assetId": asset.pk, "priceCents": 750, "description": "One of one",
    })
    assert resp.status_code == 201
    listing = resp.json()["listing"]
    assert listing["price_cents"] == 750
    assert listing["title"] == "Sky Whale"
    assert listing["status"] == "active"

    resp = post_json(auth_client, "/api/marketplace/listings/", {"assetId": asset.pk, "priceCents": 900})
    assert resp.status_code == 409
    assert resp.json()["code"] == "ALREADY_LISTED"


def test_create_listing_requires_login(client, asset):
    resp = post_json(client, "/api/marketplace/listings/", {"assetId": asset.pk, "priceCents": 750})
    assert resp.status_code == 401


def test_cannot_list_someone_elses_asset(client, asset, other_user):
    client.force_login(other_user)
    resp = post_json(client, "/api/marketplace/listings/", {"assetId": asset.pk, "priceCents": 750})
    assert resp.status_code == 404
    assert resp.json()["code"] == "ASSET_NOT_FOUND"


@pytest.mark.parametrize("price", [0, -5, "12", 9.5, True])
def test_listing_price_must_be_positive_int(auth_client, asset, price):
    resp = post_json(auth_client, "/api/marketplace/listings/", {"assetId": asset.pk, "priceCents": price})
    assert resp.json()["code"] == "INVALID_PRICE"


def test_cancel_listing(auth_client, listing):
    resp = auth_client.post(f"/api/marketplace/listings/{listing.pk}/cancel/")
    assert resp.json()["listing"]["status"] == "inactive"

    resp = auth_client.post(f"/api/marketplace/listings/{listing.pk}/cancel/")
    assert resp.status_code == 409
    assert resp.json()["code"] == "LISTING_NOT_ACTIVE"


def test_only_seller_cancels(client, listing, other_user):
    client.force_login(other_user)
    resp = client.post(f"/api/marketplace/listings/{listing.pk}/cancel/")
    assert resp.status_code == 403
    assert resp.json()["code"] == "NOT_SELLER"

    resp = client.post("/api/marketplace/listings/9999/cancel/")
    assert resp.status_code == 404


# ---------- payment intents ----------
def test_anonymous_payment_intent(client, listing, intents):
    resp = post_json(client, "/api/create-payment-intent/", {"listingId": listing.pk})
    assert resp.status_code == 200
    assert resp.json() == {"clientSecret": "pi_new_1_secret", "paymentIntentId": "pi_new_1", "stripeAccount": None}

    created = intents["created"][0]
    assert created["amount"] == 1200
    assert created["currency"] == "usd"
    assert created["metadata"]["marketplace_buyer_id"] == "anonymous"
    assert created["metadata"]["marketplace_listing_id"] == str(listing.pk)

    tx = Transaction.objects.get()
    assert tx.buyer is None
    assert tx.status == "pending"
    assert tx.amount_cents == 1200

    # anonymous buyers never reuse a pending transaction
    post_json(client, "/api/create-payment-intent/", {"listingId": listing.pk})
    assert Transaction.objects.count() == 2


def test_buyer_reuses_open_intent(client, listing, intents, other_user):
    client.force_login(other_user)
    first = post_json(client, "/api/create-payment-intent/", {"listingId": listing.pk}).json()
    second = post_json(client, "/api/create-payment-intent/", {"listingId": listing.pk}).json()
    assert first["paymentIntentId"] == second["paymentIntentId"] == "pi_new_1"
    assert len(intents["created"]) == 1
    assert Transaction.objects.get().buyer == other_user


def test_stale_intent_is_replaced(client, listing, intents, other_user):
    client.force_login(other_user)
    post_json(client, "/api/create-payment-intent/", {"listingId": listing.pk})
    intents["status"] = "canceled"
    body = post_json(client, "/api/create-payment-intent/", {"listingId": listing.pk}).json()
    assert body["paymentIntentId"] == "pi_new_2"
    assert Transaction.objects.get().stripe_payment_intent_id == "pi_new_2"


def test_payment_intent_errors(client, listing, intents):
    resp = post_json(client, "/api/create-payment-intent/", {})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing listingId"

    listing.status = "sold"
    listing.save()
    resp = post_json(client, "/api/create-payment-intent/", {"listingId": listing.pk})
    assert resp.status_code == 409
    assert resp.json()["error"] == "Listing unavailable"


def test_payment_intent_stripe_failure(client, listing, monkeypatch):
    def fail(**kwargs):
        raise stripe.StripeError("card network down")
    monkeypatch.setattr(stripe.PaymentIntent, "create", fail)

    resp = post_json(client, "/api/create-payment-intent/", {"listingId": listing.pk})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Payment intent creation failed"
    assert not Transaction.objects.exists()


# ---------- completion ----------
def test_completion_without_transaction(db):
    assert services.complete_transaction_for_intent({"id": "pi_unknown"}) is False


def test_completion_falls_back_to_direct_update(listing, other_user, monkeypatch):
    tx = Transaction.objects.create(
        buyer=other_user, seller=listing.seller, listing=listing, amount_cents=1200,
        stripe_payment_intent_id="pi_fallback",
    )

    def broken(intent):
        raise DatabaseError("deadlock")
    monkeypatch.setattr(services, "_complete", broken)

    assert services.complete_transaction_for_intent({"id": "pi_fallback"}) is True
    tx.refresh_from_db()
    assert (tx.status, tx.payment_status) == ("completed", "succeeded")
    listing.refresh_from_db()
    assert listing.status == "active"


def test_second_payment_for_sold_listing_keeps_first_buyer(listing, user, other_user, caplog):
    third = User.objects.create_user("carol", "carol@example.com", "s3cret-Passw0rd")
    first = Transaction.objects.create(
        buyer=other_user, seller=user, listing=listing, amount_cents=1200, stripe_payment_intent_id="pi_first",
    )
    second = Transaction.objects.create(
        buyer=third, seller=user, listing=listing, amount_cents=1200, stripe_payment_intent_id="pi_second",
    )

    assert services.complete_transaction_for_intent({"id": "pi_first", "amount": 1200}) is True
    assert services.complete_transaction_for_intent({"id": "pi_second", "amount": 1200}) is True

    listing.refresh_from_db()
    assert listing.buyer == other_user
    assert AssetBuyer.objects.get().transaction == first
    second.refresh_from_db()
    assert second.status == "completed"
    assert "already sold" in caplog.text
