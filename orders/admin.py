# orders/admin.py
from django.contrib import admin
from .models import Order, OrderItem, Payment


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "email", "status", "amount_total_cents", "card_count", "fulfillment_status",
                    "created_at", "paid_at")
    list_filter = ("status", "fulfillment_status", "is_custom", "created_at")
    search_fields = ("email", "stripe_session_id", "payment_intent_id", "shipping_name")
    inlines = [OrderItemInline]
    actions = ["mark_as_shipped"]

    @admin.action(description="Mark selected orders as shipped")
    def mark_as_shipped(self, request, queryset):
        paid = queryset.filter(status="paid")
        for order in paid:
            order.mark_shipped()
        self.message_user(request, f"{paid.count()} order(s) marked as shipped.")


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("order", "gateway", "gateway_ref", "amount_cents", "created_at")
