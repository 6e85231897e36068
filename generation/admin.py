from django.contrib import admin
from .models import GeneratedImage, UploadedImage


@admin.register(GeneratedImage)
class GeneratedImageAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "quality", "used_reference", "created_at")
    list_filter = ("quality", "used_reference")
    search_fields = ("prompt",)


@admin.register(UploadedImage)
class UploadedImageAdmin(admin.ModelAdmin):
    list_display = ("id", "owner", "status", "size", "created_at")
    list_filter = ("status",)
    search_fields = ("sha256", "owner__email")
