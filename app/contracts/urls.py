"""
URL configuration for the contracts API.

URL Structure:
    /                        GET, POST
    /{id}/                   GET, PUT, PATCH
    /{id}/sign/              PATCH
    /{id}/complete/          PATCH
    /{id}/cancel/            PATCH
    /{id}/milestones/        POST
    /milestones/{id}/        PATCH

All URLs are prefixed with /api/v1/contracts/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from contracts.views import ContractViewSet, MilestoneDetailView

router = DefaultRouter()
router.include_root_view = False
router.register(r"", ContractViewSet, basename="contract")

app_name = "contracts"

urlpatterns = [
    path(
        "milestones/<uuid:milestone_id>/",
        MilestoneDetailView.as_view(),
        name="milestone-detail",
    ),
    path("", include(router.urls)),
]
