# generation/forms.py
import hashlib

from django import forms

MAX_IMAGE_BYTES = 12 * 1024 * 1024
ALLOWED_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}


class UploadForm(forms.Form):
    image = forms.ImageField()
    temporary = forms.TypedChoiceField(
        choices=[(v, v) for v in ("true", "false", "1", "0", "on", "off")],
        coerce=lambda v: v in ("true", "1", "on"),
        required=False,
        empty_value=False,
    )

    def clean_image(self):
        img = self.cleaned_data["image"]
        _validate_image(img)
        return img


def _validate_image(f):
    if f.size > MAX_IMAGE_BYTES:
        raise forms.ValidationError("Image too large (max 12MB).")
    if getattr(f, "content_type", "").lower() not in ALLOWED_TYPES:
        raise forms.ValidationError("Please upload JPEG/PNG/WEBP images.")


def sha256_of(f) -> str:
    digest = hashlib.sha256()
    for chunk in f.chunks():
        digest.update(chunk)
    f.seek(0)
    return digest.hexdigest()
