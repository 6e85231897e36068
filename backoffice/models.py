from django.conf import settings
from django.db import models


class AdminUser(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="admin_record")
    email = models.EmailField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.email

    def as_dict(self):
        return {"user_id": self.user_id, "email": self.email, "created_at": self.created_at.isoformat()}


class DuplicateDetection(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
    ]

    upload = models.ForeignKey("generation.UploadedImage", on_delete=models.CASCADE, related_name="duplicate_reports")
    original = models.ForeignKey("generation.UploadedImage", on_delete=models.CASCADE, related_name="+")
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="pending")
    reviewed_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Upload {self.upload_id} ~ {self.original_id} ({self.status})"

    def as_dict(self):
        return {
            "id": self.pk,
            "status": self.status,
            "upload": {"id": self.upload_id, "owner_id": self.upload.owner_id, "url": self.upload.image.url},
            "original": {"id": self.original_id, "owner_id": self.original.owner_id, "url": self.original.image.url},
            "reviewed_by": self.reviewed_by_id,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "created_at": self.created_at.isoformat(),
        }


class RevenueRequest(models.Model):
    """A seller asking to be paid out their marketplace earnings."""
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("paid", "Paid"),
        ("rejected", "Rejected"),
    ]

    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="revenue_requests")
    amount_cents = models.PositiveIntegerField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="pending")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.seller_id}: {self.amount_cents}c ({self.status})"
