"""
DRF serializers for the payments app.

This module provides serializers for:
- Escrow payments (read, create, release, refund)
- Creator payee accounts and onboarding links
- Performance earnings and ledger summaries

Related files:
    - services/: EscrowService, PayeeService, EarningService
    - views.py: Payment API views
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from payments.models import CreatorEarning, EscrowPayment, PayeeAccount
from payments.state_machines import PERFORMANCE_EARNING_TYPES, EarningType, EscrowStatus

MIN_AMOUNT = Decimal("0.01")


# =============================================================================
# Escrow
# =============================================================================


class EscrowPaymentSerializer(serializers.ModelSerializer):
    """
    Escrow payment for API responses.

    Gateway transfer and refund ids are exposed so a brand can match them
    against processor receipts.
    """

    class Meta:
        model = EscrowPayment
        fields = [
            "id",
            "contract",
            "milestone",
            "amount",
            "currency",
            "status",
            "gateway_hold_id",
            "gateway_transfer_id",
            "gateway_refund_id",
            "release_reason",
            "refund_reason",
            "hold_confirmed_at",
            "hold_captured_at",
            "released_at",
            "refunded_at",
            "release_failed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class EscrowCreatedSerializer(serializers.Serializer):
    """Response for a newly opened hold: the row plus the client token."""

    escrow_payment = EscrowPaymentSerializer()
    client_secret = serializers.CharField(allow_null=True)


class EscrowListQuerySerializer(serializers.Serializer):
    contract_id = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=EscrowStatus.choices, required=False)


class EscrowCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=MIN_AMOUNT)
    milestone_id = serializers.UUIDField(required=False, allow_null=True, default=None)


class EscrowReleaseSerializer(serializers.Serializer):
    release_reason = serializers.CharField(
        max_length=500, required=False, allow_blank=True, default=""
    )


class EscrowRefundSerializer(serializers.Serializer):
    refund_reason = serializers.CharField(
        max_length=500, required=False, allow_blank=True, default=""
    )


# =============================================================================
# Payee accounts
# =============================================================================


class PayeeAccountSerializer(serializers.ModelSerializer):
    is_ready_for_payouts = serializers.BooleanField(read_only=True)

    class Meta:
        model = PayeeAccount
        fields = [
            "id",
            "gateway_account_id",
            "onboarding_status",
            "charges_enabled",
            "payouts_enabled",
            "details_submitted",
            "requirements",
            "is_ready_for_payouts",
            "last_synced_at",
        ]
        read_only_fields = fields


class AccountLinkSerializer(serializers.Serializer):
    url = serializers.URLField()
    expires_at = serializers.DateTimeField(allow_null=True)


# =============================================================================
# Earnings
# =============================================================================


class CreatorEarningSerializer(serializers.ModelSerializer):
    class Meta:
        model = CreatorEarning
        fields = [
            "id",
            "creator",
            "amount",
            "earning_type",
            "description",
            "contract",
            "content",
            "escrow_payment",
            "created_at",
        ]
        read_only_fields = fields


class PerformanceMetricsSerializer(serializers.Serializer):
    views = serializers.IntegerField(min_value=0, default=0)
    clicks = serializers.IntegerField(min_value=0, default=0)
    shares = serializers.IntegerField(min_value=0, default=0)
    comments = serializers.IntegerField(min_value=0, default=0)
    likes = serializers.IntegerField(min_value=0, default=0)


class EarningProcessSerializer(serializers.Serializer):
    """
    Input for crediting a performance earning.

    Either explicit metrics or a date range over recorded metrics.
    """

    creator_id = serializers.UUIDField()
    content_id = serializers.UUIDField()
    earning_type = serializers.ChoiceField(
        choices=[(value, EarningType(value).label) for value in PERFORMANCE_EARNING_TYPES]
    )
    metrics = PerformanceMetricsSerializer(required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        has_range = "start_date" in attrs or "end_date" in attrs
        if has_range and not ("start_date" in attrs and "end_date" in attrs):
            raise serializers.ValidationError(
                "start_date and end_date must be given together."
            )
        if has_range and attrs["end_date"] < attrs["start_date"]:
            raise serializers.ValidationError(
                {"end_date": "End date cannot be before the start date."}
            )
        if "metrics" in attrs and has_range:
            raise serializers.ValidationError(
                "Provide either metrics or a date range, not both."
            )
        return attrs


class EarningResultSerializer(serializers.Serializer):
    earning = CreatorEarningSerializer()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    platform_fee = serializers.DecimalField(max_digits=12, decimal_places=2)
    creator_amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class EarningsSummaryQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)


class EarningsSummarySerializer(serializers.Serializer):
    total = serializers.DecimalField(max_digits=14, decimal_places=2)
    by_type = serializers.DictField(
        child=serializers.DecimalField(max_digits=14, decimal_places=2)
    )
    count = serializers.IntegerField()
