# generation/models.py
from __future__ import annotations
from django.conf import settings
from django.db import models


class GeneratedImage(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    prompt = models.TextField()
    revised_prompt = models.TextField(blank=True)
    quality = models.CharField(max_length=10, default="high")
    used_reference = models.BooleanField(default=False)

    # base64 results are written to storage; URL results are kept as given
    image = models.FileField(upload_to="generated/%Y/%m/%d/", blank=True)
    source_url = models.URLField(max_length=1000, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        who = self.user.username if self.user else "guest"
        return f"GeneratedImage #{self.pk} by {who}"

    @property
    def url(self) -> str:
        return self.image.url if self.image else self.source_url


class UploadedImage(models.Model):
    STATUS_CHOICES = [
        ("active", "Active"),
        ("blocked", "Blocked"),
    ]

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="uploads")
    image = models.ImageField(upload_to="uploads/%Y/%m/%d/")
    sha256 = models.CharField(max_length=64, db_index=True)
    content_type = models.CharField(max_length=40, blank=True)
    size = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="active")
    asset = models.OneToOneField(
        "marketplace.UserAsset", null=True, blank=True, on_delete=models.SET_NULL, related_name="upload"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Upload #{self.pk} by {self.owner_id} ({self.status})"

    def as_dict(self):
        return {
            "id": self.pk,
            "url": self.image.url,
            "sha256": self.sha256,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }
