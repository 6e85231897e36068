from django.contrib import admin
from .models import AdminUser, DuplicateDetection, RevenueRequest


@admin.register(AdminUser)
class AdminUserAdmin(admin.ModelAdmin):
    list_display = ("email", "user", "created_at")
    search_fields = ("email",)


@admin.register(DuplicateDetection)
class DuplicateDetectionAdmin(admin.ModelAdmin):
    list_display = ("id", "upload", "original", "status", "reviewed_by", "reviewed_at")
    list_filter = ("status",)


@admin.register(RevenueRequest)
class RevenueRequestAdmin(admin.ModelAdmin):
    list_display = ("seller", "amount_cents", "status", "created_at")
    list_filter = ("status",)
