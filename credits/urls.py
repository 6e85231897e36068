from django.urls import path
from . import views

app_name = "credits"

urlpatterns = [
    path("credits/", views.balance, name="balance"),
    path("credits/checkout/", views.credits_checkout, name="checkout"),
]
