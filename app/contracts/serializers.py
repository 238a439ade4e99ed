"""
Serializers for the contracts API.

Serializer Hierarchy:
    ContractSerializer: Contract fields for list responses
    ContractDetailSerializer: Adds milestones and escrow payments
    ContractCreateSerializer: Brand opens a draft for an accepted application
    ContractUpdateSerializer: Draft edits (partial)
    ContractSignSerializer: Party signature

    MilestoneSerializer: Milestone fields
    MilestoneCreateSerializer: Brand adds a milestone
    MilestoneUpdateSerializer: Field edits and forward status moves

Design Decisions:
    - Read and write serializers are separate
    - Write serializers only validate shape; ownership, state and budget
      rules are enforced by ContractService
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from contracts.models import Contract, Milestone, MilestoneStatus
from payments.models import EscrowPayment

MIN_AMOUNT = Decimal("0.01")


# =============================================================================
# Milestones
# =============================================================================


class MilestoneSerializer(serializers.ModelSerializer):
    class Meta:
        model = Milestone
        fields = [
            "id",
            "contract",
            "title",
            "description",
            "amount",
            "due_date",
            "status",
            "submitted_at",
            "approved_at",
            "paid_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class MilestoneCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=MIN_AMOUNT
    )
    due_date = serializers.DateField(required=False, allow_null=True, default=None)


class MilestoneUpdateSerializer(serializers.Serializer):
    """
    Partial milestone update.

    status must be the milestone's current status or the next one in
    PENDING -> IN_PROGRESS -> SUBMITTED -> APPROVED. Only the brand may
    approve; PAID follows from releasing the escrow payment.
    """

    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=MIN_AMOUNT, required=False
    )
    due_date = serializers.DateField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=MilestoneStatus.choices, required=False)


# =============================================================================
# Contracts
# =============================================================================


class ContractEscrowSerializer(serializers.ModelSerializer):
    """Escrow payment summary embedded in contract detail."""

    class Meta:
        model = EscrowPayment
        fields = ["id", "milestone", "amount", "currency", "status", "created_at"]
        read_only_fields = fields


class ContractSerializer(serializers.ModelSerializer):
    class Meta:
        model = Contract
        fields = [
            "id",
            "brief",
            "brand",
            "creator",
            "title",
            "description",
            "terms",
            "deliverables",
            "total_amount",
            "start_date",
            "end_date",
            "status",
            "activated_at",
            "completed_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ContractDetailSerializer(ContractSerializer):
    milestones = MilestoneSerializer(many=True, read_only=True)
    escrow_payments = ContractEscrowSerializer(many=True, read_only=True)

    class Meta(ContractSerializer.Meta):
        fields = ContractSerializer.Meta.fields + ["milestones", "escrow_payments"]
        read_only_fields = fields


class ContractDatesMixin:
    def validate(self, attrs):
        start = attrs.get("start_date")
        end = attrs.get("end_date")
        if start and end and end < start:
            raise serializers.ValidationError(
                {"end_date": "End date cannot be before the start date."}
            )
        return attrs


class ContractCreateSerializer(ContractDatesMixin, serializers.Serializer):
    brief_id = serializers.UUIDField()
    creator_id = serializers.UUIDField()
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    terms = serializers.DictField(required=False, default=dict)
    deliverables = serializers.ListField(required=False, default=list)
    total_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=MIN_AMOUNT
    )
    start_date = serializers.DateField(required=False, allow_null=True, default=None)
    end_date = serializers.DateField(required=False, allow_null=True, default=None)


class ContractUpdateSerializer(ContractDatesMixin, serializers.Serializer):
    """Draft edits. Brief and parties are not accepted."""

    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    terms = serializers.DictField(required=False)
    deliverables = serializers.ListField(required=False)
    total_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=MIN_AMOUNT, required=False
    )
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)


class ContractSignSerializer(serializers.Serializer):
    signature = serializers.CharField(max_length=2000)
