from django.urls import path
from . import views

app_name = "generation"

urlpatterns = [
    path("generate-image/", views.generate_image, name="generate_image"),
    path("uploads/", views.upload, name="upload"),
]
