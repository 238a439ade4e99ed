import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


def _base_fields():
    return [
        (
            "id",
            models.UUIDField(
                default=uuid.uuid4,
                editable=False,
                help_text="Unique identifier for this record",
                primary_key=True,
                serialize=False,
            ),
        ),
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("contracts", "0001_initial"),
        ("marketplace", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="EscrowPayment",
            fields=_base_fields()
            + [
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "currency",
                    models.CharField(
                        default="usd",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("held", "Held"),
                            ("release_pending", "Release Pending"),
                            ("released", "Released"),
                            ("release_failed", "Release Failed"),
                            ("refund_pending", "Refund Pending"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="held",
                        help_text="Current state of the escrow payment (managed by FSM)",
                        max_length=50,
                    ),
                ),
                (
                    "gateway_hold_id",
                    models.CharField(
                        blank=True,
                        help_text="Processor hold reference (e.g. PaymentIntent pi_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "gateway_transfer_id",
                    models.CharField(
                        blank=True,
                        help_text="Processor transfer reference (tr_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "gateway_refund_id",
                    models.CharField(
                        blank=True,
                        help_text="Processor refund or cancellation reference",
                        max_length=255,
                        null=True,
                    ),
                ),
                ("release_reason", models.TextField(blank=True, null=True)),
                ("refund_reason", models.TextField(blank=True, null=True)),
                ("release_attempts", models.PositiveSmallIntegerField(default=0)),
                ("hold_confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("released_at", models.DateTimeField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                ("release_failed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "contract",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="escrow_payments",
                        to="contracts.contract",
                    ),
                ),
                (
                    "milestone",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="escrow_payments",
                        to="contracts.milestone",
                    ),
                ),
            ],
            options={
                "verbose_name": "Escrow Payment",
                "verbose_name_plural": "Escrow Payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["contract", "status"], name="escrow_contract_status_idx"
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="escrow_amount_positive",
                    ),
                ],
            },
            bases=(django_fsm.ConcurrentTransitionMixin, models.Model),
        ),
        migrations.CreateModel(
            name="CreatorEarning",
            fields=_base_fields()
            + [
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "earning_type",
                    models.CharField(
                        choices=[
                            ("cpm", "CPM"),
                            ("cpc", "CPC"),
                            ("cpv", "CPV"),
                            ("revenue_share", "Revenue Share"),
                            ("commission", "Commission"),
                            ("payout", "Payout"),
                            ("reversal", "Reversal"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("description", models.TextField(blank=True, default="")),
                (
                    "content",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="earnings",
                        to="marketplace.content",
                    ),
                ),
                (
                    "contract",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="earnings",
                        to="contracts.contract",
                    ),
                ),
                (
                    "creator",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="earnings",
                        to="marketplace.creator",
                    ),
                ),
                (
                    "escrow_payment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="earnings",
                        to="payments.escrowpayment",
                    ),
                ),
            ],
            options={
                "verbose_name": "Creator Earning",
                "verbose_name_plural": "Creator Earnings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["creator", "created_at"],
                        name="earning_creator_created_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            (
                                models.Q(("amount__gt", 0))
                                & ~models.Q(("earning_type", "reversal"))
                            )
                            | models.Q(("amount__lt", 0), ("earning_type", "reversal"))
                        ),
                        name="earning_amount_sign_matches_type",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PayeeAccount",
            fields=_base_fields()
            + [
                (
                    "gateway_account_id",
                    models.CharField(
                        help_text="Processor account ID (acct_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "onboarding_status",
                    models.CharField(
                        choices=[
                            ("not_started", "Not Started"),
                            ("in_progress", "In Progress"),
                            ("complete", "Complete"),
                            ("restricted", "Restricted"),
                        ],
                        db_index=True,
                        default="not_started",
                        max_length=20,
                    ),
                ),
                ("charges_enabled", models.BooleanField(default=False)),
                ("payouts_enabled", models.BooleanField(default=False)),
                ("details_submitted", models.BooleanField(default=False)),
                (
                    "requirements",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Outstanding requirement keys reported by the processor",
                    ),
                ),
                ("last_synced_at", models.DateTimeField(blank=True, null=True)),
                (
                    "creator",
                    models.OneToOneField(
                        help_text="Creator this payee account belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payee_account",
                        to="marketplace.creator",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payee Account",
                "verbose_name_plural": "Payee Accounts",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=_base_fields()
            + [
                (
                    "gateway_event_id",
                    models.CharField(
                        help_text="Processor event ID (evt_xxx), unique for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Event type (e.g. 'transfer.reversed')",
                        max_length=100,
                    ),
                ),
                ("payload", models.JSONField(help_text="Full webhook payload (JSON)")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("retry_count", models.PositiveSmallIntegerField(default=0)),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"], name="webhook_status_created_idx"
                    ),
                    models.Index(
                        fields=["event_type", "created_at"], name="webhook_type_created_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReconciliationAlert",
            fields=_base_fields()
            + [
                (
                    "alert_type",
                    models.CharField(
                        choices=[
                            ("transfer_reversed", "Transfer Reversed After Release"),
                            ("pending_transfer_failed", "Pending Transfer Failed"),
                            ("hold_canceled", "Hold Canceled While Held Locally"),
                            ("unknown_hold", "Hold Without Local Escrow Payment"),
                            ("unknown_transfer", "Transfer Without Local Escrow Payment"),
                        ],
                        db_index=True,
                        max_length=40,
                    ),
                ),
                (
                    "gateway_object_id",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("message", models.TextField()),
                ("details", models.JSONField(blank=True, default=dict)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("resolution_notes", models.TextField(blank=True, default="")),
                (
                    "escrow_payment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="alerts",
                        to="payments.escrowpayment",
                    ),
                ),
                (
                    "resolved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Reconciliation Alert",
                "verbose_name_plural": "Reconciliation Alerts",
                "ordering": ["-created_at"],
            },
        ),
    ]
