from django.urls import path
from . import views

app_name = "backoffice"

urlpatterns = [
    path("manage/", views.manage, name="manage"),
    path("stats/", views.stats, name="stats"),
    path("duplicates/", views.duplicates, name="duplicates"),
    path("duplicates/<int:pk>/review/", views.review_duplicate, name="review_duplicate"),
    path("orders/export.csv", views.orders_export_csv, name="orders_export_csv"),
]
