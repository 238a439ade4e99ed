"""
DRF views for the payments app.

Endpoints:
    GET   /api/v1/escrow/                                 - List escrow payments
    POST  /api/v1/escrow/contracts/{contract_id}/         - Open an escrow hold
    GET   /api/v1/escrow/{id}/                            - Get escrow payment
    PATCH /api/v1/escrow/{id}/release/                    - Release to the creator
    PATCH /api/v1/escrow/{id}/refund/                     - Refund to the brand
    PATCH /api/v1/escrow/{id}/retry-release/              - Staff retry of a failed transfer
    POST  /api/v1/payments/payee-account/                 - Register creator payee account
    POST  /api/v1/payments/payee-account/link/            - Onboarding link
    GET   /api/v1/payments/payee-account/status/          - Refresh payee status
    POST  /api/v1/payments/earnings/process/              - Credit performance earning (staff)
    GET   /api/v1/payments/earnings/summary/              - Creator earnings summary

Security:
    - Role checks happen here through permission classes
    - Party checks happen in the services, which raise AuthorizationError
    - The gateway webhook lives in payments.webhooks.views
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import IsBrand, IsCreator, IsPlatformAdmin
from marketplace.services import PerformanceMetrics
from payments.adapters import get_payment_gateway
from payments.models import EscrowPayment
from payments.serializers import (
    AccountLinkSerializer,
    EarningProcessSerializer,
    EarningResultSerializer,
    EarningsSummaryQuerySerializer,
    EarningsSummarySerializer,
    EscrowCreatedSerializer,
    EscrowCreateSerializer,
    EscrowListQuerySerializer,
    EscrowPaymentSerializer,
    EscrowRefundSerializer,
    EscrowReleaseSerializer,
    PayeeAccountSerializer,
)
from payments.services import EarningService, EscrowService, PayeeService
from payments.state_machines import EscrowStatus


def escrow_service() -> EscrowService:
    return EscrowService(get_payment_gateway())


def payee_service() -> PayeeService:
    return PayeeService(get_payment_gateway())


# =============================================================================
# Escrow
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_escrow_payments",
        summary="List escrow payments",
        parameters=[
            OpenApiParameter(name="contract_id", type=OpenApiTypes.UUID, required=False),
            OpenApiParameter(
                name="status",
                type=OpenApiTypes.STR,
                enum=EscrowStatus.values,
                required=False,
            ),
        ],
        tags=["Escrow"],
    ),
    retrieve=extend_schema(
        operation_id="get_escrow_payment",
        summary="Get escrow payment",
        tags=["Escrow"],
    ),
)
class EscrowViewSet(viewsets.GenericViewSet):
    """
    ViewSet for escrow payments.

    list:
        Escrow payments on contracts the caller is a party to.
        Filters: ?contract_id=, ?status=.

    retrieve:
        Single escrow payment. Parties only.

    release:
        Brand releases a HELD payment; the creator's share is transferred
        to their payee account.

    refund:
        Brand refunds a HELD payment; the processor hold is canceled.

    retry_release:
        Staff re-send a transfer the processor reversed or failed.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = EscrowPaymentSerializer
    queryset = EscrowPayment.objects.none()
    lookup_value_regex = "[0-9a-f-]{36}"

    def get_queryset(self):
        if not self.request.user.is_authenticated:
            return EscrowPayment.objects.none()
        query = EscrowListQuerySerializer(data=self.request.query_params)
        query.is_valid(raise_exception=True)
        return EscrowService.list_escrow_payments(
            self.request.user,
            contract_id=query.validated_data.get("contract_id"),
            status=query.validated_data.get("status"),
        )

    def get_serializer_class(self):
        if self.action == "release":
            return EscrowReleaseSerializer
        if self.action == "refund":
            return EscrowRefundSerializer
        return EscrowPaymentSerializer

    def get_permissions(self):
        if self.action in ("release", "refund"):
            return [IsAuthenticated(), IsBrand()]
        if self.action == "retry_release":
            return [IsAuthenticated(), IsPlatformAdmin()]
        return [IsAuthenticated()]

    def list(self, request):
        queryset = self.get_queryset()
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(EscrowPaymentSerializer(page, many=True).data)
        return Response(EscrowPaymentSerializer(queryset, many=True).data)

    def retrieve(self, request, pk=None):
        escrow = EscrowService.get_escrow_payment(request.user, pk)
        return Response(EscrowPaymentSerializer(escrow).data)

    @extend_schema(
        operation_id="release_escrow_payment",
        summary="Release escrow payment",
        request=EscrowReleaseSerializer,
        responses={
            200: EscrowPaymentSerializer,
            400: OpenApiResponse(
                description="Not HELD, hold not authorized, payee not configured or gateway error"
            ),
            403: OpenApiResponse(description="Not the brand on this contract"),
            404: OpenApiResponse(description="Escrow payment not found"),
        },
        tags=["Escrow"],
    )
    @action(detail=True, methods=["patch"])
    def release(self, request, pk=None):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        escrow = escrow_service().release_escrow_payment(
            request.user,
            pk,
            release_reason=serializer.validated_data["release_reason"] or None,
        )
        return Response(EscrowPaymentSerializer(escrow).data)

    @extend_schema(
        operation_id="refund_escrow_payment",
        summary="Refund escrow payment",
        request=EscrowRefundSerializer,
        responses={
            200: EscrowPaymentSerializer,
            400: OpenApiResponse(description="Not HELD or gateway error"),
            403: OpenApiResponse(description="Not the brand on this contract"),
            404: OpenApiResponse(description="Escrow payment not found"),
        },
        tags=["Escrow"],
    )
    @action(detail=True, methods=["patch"])
    def refund(self, request, pk=None):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        escrow = escrow_service().refund_escrow_payment(
            request.user,
            pk,
            refund_reason=serializer.validated_data["refund_reason"] or None,
        )
        return Response(EscrowPaymentSerializer(escrow).data)

    @extend_schema(
        operation_id="retry_escrow_release",
        summary="Retry failed release",
        request=None,
        responses={
            200: EscrowPaymentSerializer,
            400: OpenApiResponse(description="Not RELEASE_FAILED or gateway error"),
            403: OpenApiResponse(description="Staff only"),
        },
        tags=["Escrow"],
    )
    @action(detail=True, methods=["patch"], url_path="retry-release")
    def retry_release(self, request, pk=None):
        escrow = escrow_service().retry_release(request.user, pk)
        return Response(EscrowPaymentSerializer(escrow).data)


class EscrowCreateView(APIView):
    """
    Open an escrow hold on an active contract.

    Returns the HELD row and the client secret the brand's client uses to
    authorize the hold with the processor.
    """

    permission_classes = [IsAuthenticated, IsBrand]

    @extend_schema(
        operation_id="create_escrow_payment",
        summary="Open escrow hold",
        request=EscrowCreateSerializer,
        responses={
            201: EscrowCreatedSerializer,
            400: OpenApiResponse(description="Contract not ACTIVE or gateway error"),
            403: OpenApiResponse(description="Not the brand on this contract"),
            404: OpenApiResponse(description="Contract or milestone not found"),
        },
        tags=["Escrow"],
    )
    def post(self, request, contract_id):
        serializer = EscrowCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = escrow_service().create_escrow_payment(
            request.user,
            contract_id,
            serializer.validated_data["amount"],
            milestone_id=serializer.validated_data["milestone_id"],
        )
        output = EscrowCreatedSerializer(
            {"escrow_payment": result.escrow_payment, "client_secret": result.client_secret}
        )
        return Response(output.data, status=status.HTTP_201_CREATED)


# =============================================================================
# Payee accounts
# =============================================================================


class PayeeAccountView(APIView):
    """Register the creator's payee account. Idempotent."""

    permission_classes = [IsAuthenticated, IsCreator]

    @extend_schema(
        operation_id="create_payee_account",
        summary="Create payee account",
        request=None,
        responses={201: PayeeAccountSerializer},
        tags=["Payments - Payee Accounts"],
    )
    def post(self, request):
        account = payee_service().create_payee_account(request.user)
        return Response(PayeeAccountSerializer(account).data, status=status.HTTP_201_CREATED)


class PayeeAccountLinkView(APIView):
    """Onboarding link for the creator's payee account."""

    permission_classes = [IsAuthenticated, IsCreator]

    @extend_schema(
        operation_id="create_payee_account_link",
        summary="Create onboarding link",
        request=None,
        responses={
            200: AccountLinkSerializer,
            404: OpenApiResponse(description="No payee account registered"),
        },
        tags=["Payments - Payee Accounts"],
    )
    def post(self, request):
        link = payee_service().create_account_link(request.user)
        return Response(AccountLinkSerializer(link).data)


class PayeeAccountStatusView(APIView):
    """Refresh and return the payee account's capability flags."""

    permission_classes = [IsAuthenticated, IsCreator]

    @extend_schema(
        operation_id="get_payee_account_status",
        summary="Get payee account status",
        responses={
            200: PayeeAccountSerializer,
            404: OpenApiResponse(description="No payee account registered"),
        },
        tags=["Payments - Payee Accounts"],
    )
    def get(self, request):
        account = payee_service().refresh_payee_account_status(request.user)
        return Response(PayeeAccountSerializer(account).data)


# =============================================================================
# Earnings
# =============================================================================


class EarningProcessView(APIView):
    """Credit a creator for content performance. Staff only."""

    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    @extend_schema(
        operation_id="process_creator_earning",
        summary="Process performance earning",
        request=EarningProcessSerializer,
        responses={201: EarningResultSerializer},
        tags=["Payments - Earnings"],
    )
    def post(self, request):
        serializer = EarningProcessSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        metrics = PerformanceMetrics(**data["metrics"]) if "metrics" in data else None
        date_range = (
            (data["start_date"], data["end_date"]) if "start_date" in data else None
        )

        result = EarningService.process_creator_earning(
            data["creator_id"],
            data["content_id"],
            data["earning_type"],
            metrics=metrics,
            date_range=date_range,
        )
        return Response(EarningResultSerializer(result).data, status=status.HTTP_201_CREATED)


class EarningsSummaryView(APIView):
    """Lifetime (or windowed) earnings for the calling creator."""

    permission_classes = [IsAuthenticated, IsCreator]

    @extend_schema(
        operation_id="get_earnings_summary",
        summary="Get earnings summary",
        parameters=[
            OpenApiParameter(name="start_date", type=OpenApiTypes.DATE, required=False),
            OpenApiParameter(name="end_date", type=OpenApiTypes.DATE, required=False),
        ],
        responses={200: EarningsSummarySerializer},
        tags=["Payments - Earnings"],
    )
    def get(self, request):
        query = EarningsSummaryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        summary = EarningService.get_earnings_summary(
            request.user,
            start=query.validated_data.get("start_date"),
            end=query.validated_data.get("end_date"),
        )
        return Response(EarningsSummarySerializer(summary).data)
