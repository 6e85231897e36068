import pytest
import stripe
from helpers import post_json

from credits.packs import credits_for
from credits.services import grant_purchased_credits, increment_profile_credits
from userprofile.models import Profile


def test_credit_rate():
    assert credits_for(10) == 4000
    assert credits_for(25) == 10000


def test_balance(auth_client, user):
    Profile.objects.filter(user=user).update(credits=120)
    body = auth_client.get("/api/credits/").json()
    assert body["credits"] == 120
    assert body["creditsPerUsd"] == 400
    assert body["minimumUsd"] == 10
    assert [p["usd"] for p in body["packs"]] == [10, 25, 50]


@pytest.mark.django_db
def test_balance_requires_login(client):
    resp = client.get("/api/credits/")
    assert resp.status_code == 401
    assert resp.json()["code"] == "AUTH_REQUIRED"


@pytest.mark.parametrize("usd", [5, 0, "10", 12.5, None])
def test_checkout_rejects_bad_amounts(auth_client, usd):
    resp = post_json(auth_client, "/api/credits/checkout/", {"usd": usd})
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_AMOUNT"


def test_checkout_session(auth_client, user, fake_stripe):
    resp = post_json(auth_client, "/api/credits/checkout/", {"usd": 25}, HTTP_ORIGIN="https://shop.test")
    assert resp.json() == {"url": "https://checkout.stripe.test/cs_test_1", "id": "cs_test_1"}

    kwargs = fake_stripe.last("Session.create")
    assert kwargs["metadata"] == {"kind": "credits_purchase", "userId": str(user.pk), "credits": "10000"}
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 2500
    assert kwargs["customer_email"] == "alice@example.com"
    assert kwargs["success_url"].startswith("https://shop.test/credits?success=1")


def test_checkout_stripe_failure(auth_client, monkeypatch):
    def fail(**kwargs):
        raise stripe.StripeError("down")
    monkeypatch.setattr(stripe.checkout.Session, "create", fail)

    resp = post_json(auth_client, "/api/credits/checkout/", {"usd": 10})
    assert resp.status_code == 500
    assert resp.json()["code"] == "STRIPE_ERROR"


def test_increment_creates_missing_profile(user):
    Profile.objects.filter(user=user).delete()
    increment_profile_credits(user, 50)
    increment_profile_credits(user, 25)
    assert Profile.objects.get(user=user).credits == 75


def test_grant_ignores_other_kinds(user):
    session = {"id": "cs_1", "metadata": {"kind": "product_order", "userId": str(user.pk), "credits": "10"}}
    assert grant_purchased_credits(session) is False


def test_grant_unknown_user(db):
    session = {"id": "cs_1", "metadata": {"kind": "credits_purchase", "userId": "999", "credits": "10"}}
    assert grant_purchased_credits(session) is False


def test_grant_falls_back_to_session_id(user):
    session = {"id": "cs_no_pi", "payment_intent": None,
               "metadata": {"kind": "credits_purchase", "userId": str(user.pk), "credits": "400"}}
    assert grant_purchased_credits(session) is True
    assert grant_purchased_credits(session) is False
    assert user.credit_entries.get().payment_intent == "cs_no_pi"
