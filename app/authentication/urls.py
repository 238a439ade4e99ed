"""
URL configuration for authentication.

Routes:
    POST /token/          - Obtain access and refresh tokens (email + password)
    POST /token/refresh/  - Exchange a refresh token for a new access token

All routes are prefixed with /api/v1/auth/ in the main URL configuration.
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

app_name = "authentication"

urlpatterns = [
    path("token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
]
