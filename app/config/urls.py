"""
URL configuration for the Django application.

URL Structure:
    /                              - ReDoc API documentation
    /schema/                       - OpenAPI schema (YAML)
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (load balancers, Docker)
    /api/v1/auth/                  - JWT token endpoints
        token/                     - Obtain access/refresh tokens
        token/refresh/             - Refresh access token
    /api/v1/contracts/             - Contract endpoints
        {id}/                      - Contract detail/update
        {id}/sign/                 - Sign contract
        {id}/complete/             - Complete contract
        {id}/cancel/               - Cancel contract
        {id}/milestones/           - Add milestone
        milestones/{id}/           - Update milestone
    /api/v1/escrow/                - Escrow payment endpoints
        contracts/{id}/            - Open escrow hold
        {id}/release/              - Release to creator
        {id}/refund/               - Refund to brand
        {id}/retry-release/        - Staff retry of a failed transfer
    /api/v1/webhooks/gateway/      - Payment processor webhook (POST)
    /api/v1/payments/              - Payee onboarding and earnings
        payee-account/             - Register payee account
        payee-account/link/        - Onboarding link
        payee-account/status/      - Refresh payee status
        earnings/process/          - Credit performance earning (staff)
        earnings/summary/          - Creator earnings summary

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check
from payments.urls import escrow_urlpatterns, webhook_urlpatterns

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("contracts/", include("contracts.urls")),
    path("escrow/", include((escrow_urlpatterns, "escrow"))),
    path("webhooks/", include((webhook_urlpatterns, "webhooks"))),
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Marketplace Payments Admin"
admin.site.site_title = "Payments Admin"
admin.site.index_title = "Contracts and escrow"
