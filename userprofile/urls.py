from django.urls import path
from . import views

app_name = "userprofile"

urlpatterns = [
    path("csrf/", views.csrf_token, name="csrf"),
    path("auth/register/", views.register, name="register"),
    path("auth/login/", views.login_view, name="login"),
    path("auth/logout/", views.logout_view, name="logout"),
    path("auth/session/", views.session, name="session"),
    path("profile/", views.profile, name="profile"),
]
