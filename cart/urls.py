from django.urls import path
from . import views, webhooks

app_name = "cart"

urlpatterns = [
    path("cart/", views.view_cart, name="cart"),
    path("cart/items/", views.add_to_cart, name="add_to_cart"),
    path("cart/items/<str:item_id>/", views.cart_item, name="cart_item"),
    path("cart/clear/", views.clear_cart, name="clear_cart"),

    # Stripe
    path("create-checkout-session/", views.create_checkout_session, name="create_checkout_session"),
    path("checkout-sessions/<str:session_id>/", views.checkout_session_detail, name="checkout_session_detail"),
    path("stripe-webhook/", webhooks.stripe_webhook, name="stripe_webhook"),
]
