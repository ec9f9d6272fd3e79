from django.urls import path
from authentication import views

urlpatterns = [
    path("", views.auth_root_view),
    path("login/", views.login_view, name="auth-login"),
    path("verify/", views.verify_view, name="auth-verify"),
    path("logout/", views.logout_view, name="auth-logout"),
]
