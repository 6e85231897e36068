import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from helpers import png_bytes, post_json

from backoffice.models import AdminUser, DuplicateDetection
from generation.models import UploadedImage
from marketplace.models import Listing, UserAsset
from orders.models import Order


@pytest.fixture
def admin_client(client, user):
    AdminUser.objects.create(user=user, email=user.email)
    client.force_login(user)
    return client


def make_upload(owner, sha="f" * 64):
    asset = UserAsset.objects.create(owner=owner, title="art", image_url="/media/art.png", source="uploaded")
    return UploadedImage.objects.create(
        owner=owner, image=SimpleUploadedFile("art.png", png_bytes(), content_type="image/png"),
        sha256=sha, content_type="image/png", size=100, asset=asset,
    )


@pytest.fixture
def duplicate(user, other_user):
    original = make_upload(user)
    copy = make_upload(other_user)
    Listing.objects.create(seller=other_user, asset=copy.asset, title="Totally mine", price_cents=999)
    return DuplicateDetection.objects.create(upload=copy, original=original)


# ---------- access ----------
@pytest.mark.django_db
def test_anonymous_is_401(client):
    resp = client.get("/api/admin/stats/")
    assert resp.status_code == 401


def test_first_user_can_bootstrap_admins(auth_client, user, other_user):
    assert auth_client.get("/api/admin/manage/").json() == {"success": True, "adminUsers": []}

    resp = post_json(auth_client, "/api/admin/manage/", {"email": "ALICE@example.com"})
    assert resp.json()["success"] is True
    assert AdminUser.objects.filter(user=user).exists()

    # once an admin exists, the door closes
    auth_client.force_login(other_user)
    resp = auth_client.get("/api/admin/manage/")
    assert resp.status_code == 403
    assert resp.json()["code"] == "ADMIN_REQUIRED"


def test_bootstrap_only_applies_to_manage(auth_client):
    assert auth_client.get("/api/admin/stats/").status_code == 403


def test_grant_admin(admin_client, other_user):
    resp = post_json(admin_client, "/api/admin/manage/", {"email": "bob@example.com"})
    assert resp.json()["admin"]["user_id"] == other_user.pk

    resp = post_json(admin_client, "/api/admin/manage/", {"email": "bob@example.com"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "User is already an admin"

    resp = post_json(admin_client, "/api/admin/manage/", {"email": "nobody@example.com"})
    assert resp.status_code == 404

    resp = post_json(admin_client, "/api/admin/manage/", {})
    assert resp.json()["error"] == "Missing email"


# ---------- stats ----------
def test_stats(admin_client, duplicate):
    body = admin_client.get("/api/admin/stats/").json()
    assert body["users"] == 2
    assert body["marketplaceListings"] == 1
    assert body["duplicateStats"] == {"pending": 1, "approved": 0, "rejected": 0, "total": 1}
    assert body["assetStats"]["uploads"] == 2
    assert body["totalRevenue"] == 0


# ---------- duplicates ----------
def test_list_duplicates(admin_client, duplicate):
    assert admin_client.get("/api/admin/duplicates/").json()["count"] == 1
    assert admin_client.get("/api/admin/duplicates/?status=approved").json()["count"] == 0


def test_reject_duplicate_blocks_upload(admin_client, user, duplicate):
    resp = post_json(admin_client, f"/api/admin/duplicates/{duplicate.pk}/review/", {"decision": "reject"})
    assert resp.json()["duplicate"]["status"] == "rejected"
    assert resp.json()["duplicate"]["reviewed_by"] == user.pk

    duplicate.upload.refresh_from_db()
    assert duplicate.upload.status == "blocked"
    assert Listing.objects.get().status == "inactive"

    resp = post_json(admin_client, f"/api/admin/duplicates/{duplicate.pk}/review/", {"decision": "approve"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "ALREADY_REVIEWED"


def test_approve_duplicate_leaves_listing(admin_client, duplicate):
    post_json(admin_client, f"/api/admin/duplicates/{duplicate.pk}/review/", {"decision": "approve"})
    duplicate.upload.refresh_from_db()
    assert duplicate.upload.status == "active"
    assert Listing.objects.get().status == "active"


def test_review_validation(admin_client, duplicate):
    resp = post_json(admin_client, f"/api/admin/duplicates/{duplicate.pk}/review/", {"decision": "maybe"})
    assert resp.json()["code"] == "INVALID_DECISION"
    resp = post_json(admin_client, "/api/admin/duplicates/9999/review/", {"decision": "approve"})
    assert resp.status_code == 404


# ---------- orders export ----------
def test_orders_csv(admin_client):
    Order.objects.create(stripe_session_id="cs_a", email="buyer@example.com", status="paid",
                         amount_total_cents=2299, shipping_country="US")
    Order.objects.create(stripe_session_id="cs_b", email="other@example.com", status="pending")

    resp = admin_client.get("/api/admin/orders/export.csv?paid=yes")
    assert resp["Content-Type"] == "text/csv"
    text = resp.content.decode()
    header, *rows = [line for line in text.splitlines() if line]
    assert header.startswith("ID,Created,Email,Total")
    assert len(rows) == 1
    assert "buyer@example.com" in rows[0]
    assert "22.99" in rows[0]

    resp = admin_client.get("/api/admin/orders/export.csv?q=other")
    assert "other@example.com" in resp.content.decode()
