"""
URL configuration for the payments app.

The app serves three prefixes, so the patterns are split:

    escrow_urlpatterns    -> /api/v1/escrow/
        /                          GET
        /contracts/{id}/           POST
        /{id}/                     GET
        /{id}/release/             PATCH
        /{id}/refund/              PATCH
        /{id}/retry-release/       PATCH

    webhook_urlpatterns   -> /api/v1/webhooks/
        /gateway/                  POST (signature verified, no auth)

    urlpatterns           -> /api/v1/payments/
        /payee-account/            POST
        /payee-account/link/       POST
        /payee-account/status/     GET
        /earnings/process/         POST
        /earnings/summary/         GET

Usage:
    # In config/urls.py
    from payments.urls import escrow_urlpatterns, webhook_urlpatterns

    api_v1_patterns = [
        path("escrow/", include((escrow_urlpatterns, "escrow"))),
        path("webhooks/", include((webhook_urlpatterns, "webhooks"))),
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from payments.views import (
    EarningProcessView,
    EarningsSummaryView,
    EscrowCreateView,
    EscrowViewSet,
    PayeeAccountLinkView,
    PayeeAccountStatusView,
    PayeeAccountView,
)
from payments.webhooks.views import gateway_webhook

escrow_router = DefaultRouter()
escrow_router.include_root_view = False
escrow_router.register(r"", EscrowViewSet, basename="escrow-payment")

escrow_urlpatterns = [
    path(
        "contracts/<uuid:contract_id>/",
        EscrowCreateView.as_view(),
        name="escrow-create",
    ),
    path("", include(escrow_router.urls)),
]

webhook_urlpatterns = [
    path("gateway/", gateway_webhook, name="gateway-webhook"),
]

app_name = "payments"

urlpatterns = [
    path("payee-account/", PayeeAccountView.as_view(), name="payee-account"),
    path(
        "payee-account/link/",
        PayeeAccountLinkView.as_view(),
        name="payee-account-link",
    ),
    path(
        "payee-account/status/",
        PayeeAccountStatusView.as_view(),
        name="payee-account-status",
    ),
    path("earnings/process/", EarningProcessView.as_view(), name="earnings-process"),
    path("earnings/summary/", EarningsSummaryView.as_view(), name="earnings-summary"),
]
