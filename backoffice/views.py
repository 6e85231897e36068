# backoffice/views.py
import csv
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.http import HttpResponse, JsonResponse
from django.utils import timezone

from cardify.utils.http import InvalidJSON, json_error, parse_json_body, require_json_methods
from generation.models import GeneratedImage, UploadedImage
from marketplace.models import AssetBuyer, Listing
from orders.models import Order
from .access import admin_required
from .models import AdminUser, DuplicateDetection, RevenueRequest

logger = logging.getLogger(__name__)


# ---------- admin management ----------
@require_json_methods(["GET", "POST"])
@admin_required(bootstrap=True)
def manage(request):
    if request.method == "GET":
        admins = [a.as_dict() for a in AdminUser.objects.order_by("-created_at")]
        return JsonResponse({"success": True, "adminUsers": admins})

    try:
        data = parse_json_body(request)
    except InvalidJSON:
        return json_error("Invalid JSON in request body", "INVALID_JSON")

    email = str(data.get("email") or "").strip()
    if not email:
        return json_error("Missing email")

    user = get_user_model().objects.filter(email__iexact=email).first()
    if user is None:
        return json_error("User not found. Please ensure the user has an account.", status=404)

    with transaction.atomic():
        if AdminUser.objects.select_for_update().filter(user=user).exists():
            return json_error("User is already an admin")
        admin = AdminUser.objects.create(user=user, email=user.email)

    logger.info("User %s granted admin access to %s", request.user.pk, user.pk)
    return JsonResponse({
        "success": True,
        "message": f"{email} has been granted admin access",
        "admin": admin.as_dict(),
    })


# ---------- analytics ----------
@require_json_methods(["GET"])
@admin_required()
def stats(request):
    dupes = DuplicateDetection.objects.aggregate(
        pending=Count("id", filter=Q(status="pending")),
        approved=Count("id", filter=Q(status="approved")),
        rejected=Count("id", filter=Q(status="rejected")),
        total=Count("id"),
    )
    return JsonResponse({
        "users": get_user_model().objects.count(),
        "revenueRequests": RevenueRequest.objects.count(),
        "marketplaceListings": Listing.objects.count(),
        "totalRevenue": RevenueRequest.objects.aggregate(total=Sum("amount_cents"))["total"] or 0,
        "duplicateStats": dupes,
        "assetStats": {
            "aiGenerations": GeneratedImage.objects.count(),
            "uploads": UploadedImage.objects.count(),
            "purchases": AssetBuyer.objects.count(),
        },
    })


# ---------- duplicate moderation ----------
@require_json_methods(["GET"])
@admin_required()
def duplicates(request):
    qs = DuplicateDetection.objects.select_related("upload", "original").order_by("-created_at")
    status = request.GET.get("status", "")
    if status:
        qs = qs.filter(status=status)
    rows = [d.as_dict() for d in qs]
    return JsonResponse({"success": True, "duplicates": rows, "count": len(rows)})


@require_json_methods(["POST"])
@admin_required()
def review_duplicate(request, pk):
    try:
        data = parse_json_body(request)
    except InvalidJSON:
        return json_error("Invalid JSON in request body", "INVALID_JSON")

    decision = data.get("decision")
    if decision not in ("approve", "reject"):
        return json_error("decision must be 'approve' or 'reject'", "INVALID_DECISION")

    with transaction.atomic():
        det = DuplicateDetection.objects.select_for_update().filter(pk=pk).first()
        if det is None:
            return json_error("Duplicate report not found", "NOT_FOUND", status=404)
        if det.status != "pending":
            return json_error("Already reviewed", "ALREADY_REVIEWED", status=409)

        det.status = "approved" if decision == "approve" else "rejected"
        det.reviewed_by = request.user
        det.reviewed_at = timezone.now()
        det.save(update_fields=["status", "reviewed_by", "reviewed_at"])

        if decision == "reject":
            upload = det.upload
            upload.status = "blocked"
            upload.save(update_fields=["status"])
            if upload.asset_id:
                pulled = Listing.objects.filter(asset_id=upload.asset_id, status="active").update(
                    status="inactive", updated_at=timezone.now(),
                )
                logger.info("Rejected upload %s; %s listing(s) deactivated", upload.pk, pulled)

    return JsonResponse({"success": True, "duplicate": det.as_dict()})


# ---------- orders export ----------
def _filtered_orders(request):
    qs = Order.objects.select_related("user").order_by("-created_at")
    q       = request.GET.get("q", "").strip()
    status  = request.GET.get("status", "")
    fulfill = request.GET.get("fulfillment", "")
    paid    = request.GET.get("paid", "")  # yes/no

    if q:
        id_match = Q(id=int(q)) if q.isdigit() else Q()
        qs = qs.filter(
            id_match |
            Q(email__icontains=q) |
            Q(shipping_name__icontains=q) |
            Q(stripe_session_id__icontains=q)
        )
    if status:
        qs = qs.filter(status=status)
    if fulfill:
        qs = qs.filter(fulfillment_status=fulfill)
    if paid == "yes":
        qs = qs.filter(status="paid")
    elif paid == "no":
        qs = qs.exclude(status="paid")

    return qs


@require_json_methods(["GET"])
@admin_required()
def orders_export_csv(request):
    qs = _filtered_orders(request)
    resp = HttpResponse(content_type="text/csv")
    resp["Content-Disposition"] = 'attachment; filename="orders.csv"'
    w = csv.writer(resp)
    w.writerow(["ID", "Created", "Email", "Total", "Currency", "Status", "Fulfillment",
                "Stripe session", "Paid at", "Shipped at", "Tracking", "Carrier", "Country"])
    for o in qs:
        w.writerow([
            o.id, o.created_at, o.email, f"{o.total:.2f}", o.currency, o.status,
            o.fulfillment_status, o.stripe_session_id, o.paid_at or "",
            o.shipped_at or "", o.tracking_number, o.carrier, o.shipping_country,
        ])
    return resp
