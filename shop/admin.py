from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "price", "inventory", "stripe_product_id", "is_active")
    list_filter = ("is_active",)
    search_fields = ("code", "name", "stripe_product_id")
