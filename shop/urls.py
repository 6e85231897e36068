from django.urls import path
from . import views

app_name = "shop"

urlpatterns = [
    path("inventory/", views.inventory, name="inventory"),
    path("shipping/<str:country>/", views.shipping_quote, name="shipping_quote"),
]
