from django.urls import path
from . import views

app_name = "marketplace"

urlpatterns = [
    path("marketplace/listings/", views.listings, name="listings"),
    path("marketplace/listings/<int:listing_id>/cancel/", views.cancel_listing, name="cancel_listing"),
    path("create-payment-intent/", views.create_payment_intent, name="create_payment_intent"),
]
