# generation/openai_client.py
from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

import openai
import requests
from django.conf import settings
from openai import OpenAI

logger = logging.getLogger(__name__)

# =========================
# Config
# =========================
IMAGE_SIZE = "1024x1536"  # portrait, closest to the 2.5:3.5 card ratio
FIRST_QUALITY = "high"
RETRY_QUALITY = "medium"
QUALITY_NOTE = "Generated with medium quality due to timeout on high quality attempt"
REFERENCE_FETCH_TIMEOUT = 30

_DATA_URL_RE = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)

Reference = Tuple[str, bytes, str]  # (filename, content, mime) as the SDK takes files


@lru_cache(maxsize=1)
def get_client() -> OpenAI:
    # the SDK's own retries would duplicate expensive image requests
    return OpenAI(
        api_key=settings.OPENAI_API_KEY,
        timeout=settings.OPENAI_IMAGE_TIMEOUT,
        max_retries=0,
    )


class GenerationError(Exception):
    """A failure with the HTTP status and error code the API reports to callers."""

    def __init__(self, message: str, code: str, status: int, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.details = details


class ReferenceImageError(Exception):
    pass


@dataclass
class GenerationResult:
    image_url: str
    revised_prompt: str
    quality: str
    b64_data: Optional[str] = None
    quality_note: Optional[str] = None


# =========================
# Reference images
# =========================
def load_reference(reference_image: Optional[str] = None, reference_url: Optional[str] = None) -> Optional[Reference]:
    """Decode a data: URL or download a URL into an uploadable file tuple."""
    if reference_url and not reference_image:
        try:
            resp = requests.get(reference_url, timeout=REFERENCE_FETCH_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Failed to fetch reference image %s: %s", reference_url, exc)
            raise ReferenceImageError("Failed to retrieve reference image from storage") from exc
        mime = resp.headers.get("Content-Type", "image/jpeg").split(";")[0] or "image/jpeg"
        return ("reference.jpg", resp.content, mime)

    if reference_image:
        match = _DATA_URL_RE.match(reference_image)
        if not match:
            raise ReferenceImageError("Invalid image data format")
        try:
            content = base64.b64decode(match.group(2), validate=False)
        except (ValueError, TypeError) as exc:
            raise ReferenceImageError("Invalid image data format") from exc
        return ("reference.jpg", content, match.group(1))

    return None


def edit_prompt(prompt: str, maintain_likeness: bool) -> str:
    if maintain_likeness:
        return (
            "Use this image as a reference, preserving the exact facial features and likeness "
            f"of the person while adapting to this style: {prompt}"
        )
    return f"Use this image as inspiration for the following prompt: {prompt}"


# =========================
# Generation
# =========================
def _attempt(prompt: str, reference: Optional[Reference], maintain_likeness: bool, quality: str):
    client = get_client()
    if reference:
        return client.images.edit(
            model=settings.OPENAI_IMAGE_MODEL,
            image=reference,
            prompt=edit_prompt(prompt, maintain_likeness),
            size=IMAGE_SIZE,
            quality=quality,
            input_fidelity="high" if maintain_likeness and quality == "high" else "low",
        )
    return client.images.generate(
        model=settings.OPENAI_IMAGE_MODEL,
        prompt=prompt,
        size=IMAGE_SIZE,
        quality=quality,
    )


def _to_result(response, prompt: str, quality: str) -> GenerationResult:
    data = getattr(response, "data", None) or []
    if not data:
        raise GenerationError("Failed to generate image. Please try again.", "GENERATION_FAILED", 500,
                              details="No image generated")
    first = data[0]
    url = getattr(first, "url", None)
    b64 = getattr(first, "b64_json", None)
    if not url and not b64:
        raise GenerationError("Failed to generate image. Please try again.", "GENERATION_FAILED", 500,
                              details="No image URL or base64 data returned")
    image_url = url or (b64 if b64.startswith("data:") else f"data:image/png;base64,{b64}")
    return GenerationResult(
        image_url=image_url,
        revised_prompt=getattr(first, "revised_prompt", None) or prompt,
        quality=quality,
        b64_data=None if url else b64,
    )


def generate_card_image(prompt: str, reference_image: Optional[str] = None,
                        reference_url: Optional[str] = None, maintain_likeness: bool = True) -> GenerationResult:
    """
    One attempt at high quality; on a timeout, exactly one more at medium.
    Every failure comes out as a GenerationError.
    """
    has_reference = bool(reference_image or reference_url)
    try:
        reference = load_reference(reference_image, reference_url)
        return _to_result(_attempt(prompt, reference, maintain_likeness, FIRST_QUALITY), prompt, FIRST_QUALITY)
    except GenerationError:
        raise
    except openai.APITimeoutError:
        logger.warning("Image generation timed out at %s quality; retrying at %s", FIRST_QUALITY, RETRY_QUALITY)
    except Exception as exc:
        raise map_error(exc, has_reference) from exc

    try:
        result = _to_result(_attempt(prompt, reference, maintain_likeness, RETRY_QUALITY), prompt, RETRY_QUALITY)
    except GenerationError:
        raise
    except openai.APITimeoutError as exc:
        logger.error("Image generation timed out at both qualities")
        raise GenerationError(
            "Image generation is taking too long. This may be due to server load or connection speed. "
            "Please try again later or use a simpler prompt.",
            "TIMEOUT_ERROR",
            504,
            details="Both high and medium quality attempts timed out.",
        ) from exc
    except Exception as exc:
        raise map_error(exc, has_reference) from exc

    result.quality_note = QUALITY_NOTE
    return result


# =========================
# Error mapping
# =========================
def _error_text(exc) -> str:
    return (getattr(exc, "message", None) or str(exc) or "").lower()


def map_error(exc: Exception, has_reference: bool) -> GenerationError:
    logger.error("OpenAI image error: %s (code=%s status=%s)", exc,
                 getattr(exc, "code", None), getattr(exc, "status_code", None))

    if isinstance(exc, ReferenceImageError):
        return GenerationError("Failed to generate image. Please try again.", "GENERATION_FAILED", 500, details=str(exc))

    if not isinstance(exc, openai.OpenAIError):
        return GenerationError("An unexpected error occurred", "INTERNAL_ERROR", 500)

    code = str(getattr(exc, "code", None) or "")
    err_type = str(getattr(exc, "type", None) or "")
    text = _error_text(exc)
    status = getattr(exc, "status_code", None)

    if status == 403 and (code == "1020" or "access denied" in text or "cloudflare" in text):
        return GenerationError(
            "VPN detected. Image generation may be blocked when using VPN services. Try switching VPN "
            "server location or protocol, or temporarily disabling your VPN.",
            "VPN_DETECTED",
            403,
            details="Cloudflare is blocking access from this IP address.",
        )

    if "invalid_request_error" in (code, err_type) and "model" in text:
        return GenerationError(
            "GPT Image 1 requires API Organization Verification. Please complete verification in your "
            "OpenAI developer console.",
            "VERIFICATION_REQUIRED",
            403,
            details="Visit https://platform.openai.com/settings/organization/general to complete verification",
        )

    if code in ("content_policy_violation", "moderation_blocked"):
        if has_reference:
            message = ("Your reference image was blocked by content moderation. Please use a different "
                       "image that complies with content guidelines.")
            details = "Avoid: nudity, violence, hateful imagery, or copyrighted characters"
        else:
            message = "Your prompt was flagged by content policy. Please try a different prompt."
            details = "Avoid: explicit content, violence, or hateful language"
        return GenerationError(message, "CONTENT_POLICY_VIOLATION", 400, details=details)

    if code == "billing_hard_limit_reached":
        return GenerationError(
            "Image generation service is temporarily unavailable. Please use the demo mode.",
            "SERVICE_UNAVAILABLE", 503, details="Billing limit reached",
        )

    if code == "rate_limit_exceeded" or isinstance(exc, openai.RateLimitError):
        return GenerationError("API rate limit reached. Please try again later.", "API_RATE_LIMIT", 429)

    if isinstance(exc, openai.APIConnectionError):
        return GenerationError(
            "Connection failed. If you are using a VPN, it may be interfering with the connection. "
            "Try switching VPN servers or temporarily disabling it.",
            "CONNECTION_ERROR", 503, details="Network connection to OpenAI API failed",
        )

    return GenerationError(
        "Failed to generate image. Please try again.", "GENERATION_FAILED", 500,
        details=getattr(exc, "message", None) or "Unknown error",
    )
