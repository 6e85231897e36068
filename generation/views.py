# generation/views.py
import base64
import logging
import os
import uuid

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import transaction
from django.http import JsonResponse

from backoffice.models import DuplicateDetection
from cardify.utils import throttle
from cardify.utils.http import InvalidJSON, client_ip, json_error, parse_json_body, require_json_methods
from marketplace.models import UserAsset
from .forms import UploadForm, sha256_of
from .models import GeneratedImage, UploadedImage
from .openai_client import GenerationError, generate_card_image

logger = logging.getLogger(__name__)

TEMP_REFERENCE_DIR = "temp-references/"


def _delete_temp_reference(path):
    if not path:
        return
    path = str(path)
    if not path.startswith(TEMP_REFERENCE_DIR) or ".." in path:
        logger.warning("Refusing to delete non-temporary reference %r", path)
        return
    try:
        default_storage.delete(path)
    except OSError as exc:
        logger.warning("Failed to clean up temp reference %s: %s", path, exc)


def _record(request, prompt, result, used_reference):
    user = request.user if request.user.is_authenticated else None
    generated = GeneratedImage(
        user=user,
        prompt=prompt,
        revised_prompt=result.revised_prompt,
        quality=result.quality,
        used_reference=used_reference,
    )
    if result.b64_data:
        b64 = result.b64_data.split(",", 1)[1] if result.b64_data.startswith("data:") else result.b64_data
        generated.image.save(f"{uuid.uuid4().hex}.png", ContentFile(base64.b64decode(b64)), save=False)
    else:
        generated.source_url = result.image_url
    generated.save()

    if user is None:
        return None
    asset = UserAsset.objects.create(
        owner=user,
        title=prompt[:200],
        image_url=generated.url,
        source="generated",
    )
    return asset.pk


@require_json_methods(["POST"])
def generate_image(request):
    if not settings.OPENAI_API_KEY:
        logger.error("OPENAI_API_KEY is not configured")
        return json_error("Image generation service not configured", "SERVICE_UNAVAILABLE", status=503)

    try:
        data = parse_json_body(request)
    except InvalidJSON:
        return json_error("Invalid JSON in request body", "INVALID_JSON")

    prompt = data.get("prompt")
    if not prompt or not isinstance(prompt, str) or not prompt.strip():
        return json_error("Invalid prompt provided", "INVALID_PROMPT")

    # anonymous callers get a few free generations; signed-in users are unlimited
    remaining = -1
    if not request.user.is_authenticated:
        ident = client_ip(request)
        if data.get("devReset"):
            throttle.reset(throttle.FREE_GENERATIONS, ident)
        result = throttle.hit(throttle.FREE_GENERATIONS, ident)
        remaining = result.remaining
        if not result.allowed:
            return json_error(
                "Rate limit exceeded. You have used all your free generations. Please sign in to continue.",
                "RATE_LIMIT_EXCEEDED",
                status=429,
                remaining=0,
            )

    reference_image = data.get("referenceImage")
    reference_url = data.get("referenceImageUrl")
    maintain_likeness = data.get("maintainLikeness", True) is not False

    try:
        result = generate_card_image(
            prompt,
            reference_image=reference_image if isinstance(reference_image, str) else None,
            reference_url=reference_url if isinstance(reference_url, str) else None,
            maintain_likeness=maintain_likeness,
        )
    except GenerationError as exc:
        extra = {"details": exc.details} if exc.details else {}
        return json_error(exc.message, exc.code, status=exc.status, **extra)

    _delete_temp_reference(data.get("referenceImagePath"))

    try:
        with transaction.atomic():
            asset_id = _record(request, prompt, result, bool(reference_image or reference_url))
    except Exception:
        # bookkeeping only; the response still carries the image
        logger.exception("Failed to record generated image")
        asset_id = None

    payload = {
        "success": True,
        "imageUrl": result.image_url,
        "remaining": remaining,
        "revisedPrompt": result.revised_prompt,
    }
    if result.quality_note:
        payload["qualityNote"] = result.quality_note
    if asset_id:
        payload["assetId"] = asset_id
    return JsonResponse(payload)


@require_json_methods(["POST"])
def upload(request):
    form = UploadForm(request.POST, request.FILES)
    if not form.is_valid():
        errors = form.errors.get("image") or form.errors.get("temporary") or ["Invalid upload"]
        return json_error(str(errors[0]), "INVALID_IMAGE")

    img = form.cleaned_data["image"]
    ext = os.path.splitext(img.name)[1].lower() or ".jpg"

    if form.cleaned_data["temporary"]:
        path = default_storage.save(f"{TEMP_REFERENCE_DIR}{uuid.uuid4().hex}{ext}", img)
        return JsonResponse({
            "path": path,
            "url": request.build_absolute_uri(default_storage.url(path)),
        }, status=201)

    if not request.user.is_authenticated:
        return json_error("Authentication required", "AUTH_REQUIRED", status=401)

    digest = sha256_of(img)
    with transaction.atomic():
        uploaded = UploadedImage.objects.create(
            owner=request.user,
            image=img,
            sha256=digest,
            content_type=getattr(img, "content_type", "") or "",
            size=img.size,
        )
        asset = UserAsset.objects.create(
            owner=request.user,
            title=os.path.splitext(os.path.basename(img.name))[0][:200],
            image_url=uploaded.image.url,
            source="uploaded",
        )
        uploaded.asset = asset
        uploaded.save(update_fields=["asset"])

        original = (
            UploadedImage.objects.filter(sha256=digest)
            .exclude(owner=request.user)
            .order_by("created_at")
            .first()
        )
        if original:
            DuplicateDetection.objects.create(upload=uploaded, original=original)
            logger.warning("Upload %s duplicates upload %s by another user", uploaded.pk, original.pk)

    return JsonResponse({
        "success": True,
        "upload": uploaded.as_dict(),
        "assetId": asset.pk,
        "duplicate": original is not None,
    }, status=201)
