from decimal import Decimal

import pytest
from django.contrib.auth.models import User
from django.core.cache import cache
from helpers import CSRF
from shop.models import Product


@pytest.fixture(autouse=True)
def _isolated(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path / "media"
    settings.STRIPE_WEBHOOK_SECRET = "whsec_test"
    settings.OPENAI_API_KEY = "sk-test"
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.ORDER_ALERT_RECIPIENTS = ["ops@cardify.test"]
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def products(db):
    return {
        "card": Product.objects.create(
            code=Product.LIMITED_EDITION, name="Limited Edition Card", price=Decimal("9.00"),
            inventory=50, stripe_product_id="prod_card",
        ),
        "case": Product.objects.create(
            code=Product.DISPLAY_CASE, name="Acrylic Display Case", price=Decimal("19.00"),
            inventory=10, stripe_product_id="prod_case",
        ),
        "custom": Product.objects.create(
            code=Product.CUSTOM_CARD, name="Custom Card", price=Decimal("9.00"),
            inventory=None, stripe_product_id="prod_custom",
        ),
    }


@pytest.fixture
def user(db):
    return User.objects.create_user("alice", "alice@example.com", "s3cret-Passw0rd")


@pytest.fixture
def other_user(db):
    return User.objects.create_user("bob", "bob@example.com", "s3cret-Passw0rd")


@pytest.fixture
def auth_client(client, user):
    client.force_login(user)
    return client


@pytest.fixture
def csrf_client(client):
    """Client carrying a matching double-submit cookie and header."""
    client.cookies["csrf_token"] = CSRF
    client.defaults["HTTP_X_CSRF_TOKEN"] = CSRF
    return client


class StripeRecorder:
    """Stands in for the stripe resources the views call and records kwargs."""

    def __init__(self, monkeypatch):
        import stripe

        self.calls = {}
        self.existing_prices = []
        self.price_error = None
        self.customer_error = None

        def record(name, result):
            def fake(*args, **kwargs):
                self.calls.setdefault(name, []).append(kwargs or args)
                if callable(result):
                    return result(*args, **kwargs)
                return result
            return fake

        def price_create(**kwargs):
            if self.price_error:
                raise self.price_error
            return stripe.Price.construct_from({"id": f"price_{len(self.calls['Price.create'])}"}, "sk_test")

        def customer_create(**kwargs):
            if self.customer_error:
                raise self.customer_error
            return stripe.Customer.construct_from({"id": "cus_123"}, "sk_test")

        def price_list(**kwargs):
            return stripe.ListObject.construct_from({"data": self.existing_prices}, "sk_test")

        monkeypatch.setattr(stripe.Price, "list", record("Price.list", price_list))
        monkeypatch.setattr(stripe.Price, "create", record("Price.create", price_create))
        monkeypatch.setattr(stripe.Customer, "create", record("Customer.create", customer_create))
        monkeypatch.setattr(
            stripe.checkout.Session, "create",
            record("Session.create", lambda **kw: stripe.checkout.Session.construct_from(
                {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}, "sk_test",
            )),
        )

    def last(self, name):
        return self.calls[name][-1]


@pytest.fixture
def fake_stripe(monkeypatch):
    return StripeRecorder(monkeypatch)
