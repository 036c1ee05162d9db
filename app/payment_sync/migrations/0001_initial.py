# Generated manually for the initial payment_sync schema

import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


def _id():
    return models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
        primary_key=True,
        serialize=False,
    )


def _timestamps():
    return [
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


def _soft_delete():
    return [
        (
            "is_deleted",
            models.BooleanField(
                db_index=True,
                default=False,
                help_text="Whether this record has been soft deleted",
            ),
        ),
        (
            "deleted_at",
            models.DateTimeField(
                blank=True,
                help_text="Timestamp when this record was soft deleted",
                null=True,
            ),
        ),
    ]


def _sync_fields():
    return [
        (
            "external_id",
            models.CharField(
                db_index=True,
                help_text="Identifier assigned by the payment provider",
                max_length=255,
            ),
        ),
        (
            "payment_provider",
            models.CharField(
                db_index=True,
                help_text="Payment provider name (e.g., 'stripe')",
                max_length=50,
            ),
        ),
        (
            "payment_sync_status",
            models.CharField(
                choices=[("unsynced", "Unsynced"), ("synced", "Synced"), ("error", "Error")],
                default="unsynced",
                help_text="Provider sync status",
                max_length=20,
            ),
        ),
        (
            "payment_synced_at",
            models.DateTimeField(
                blank=True,
                help_text="When this row was last synced from the provider",
                null=True,
            ),
        ),
        (
            "payment_sync_version",
            models.PositiveIntegerField(
                default=0,
                help_text="Incremented on every successful sync",
            ),
        ),
        (
            "metadata",
            models.JSONField(blank=True, default=dict, help_text="Provider metadata"),
        ),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        # =====================================================================
        # Workspaces
        # =====================================================================
        migrations.CreateModel(
            name="Workspace",
            fields=[
                ("id", _id()),
                *_timestamps(),
                ("name", models.CharField(max_length=255)),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="Wallet",
            fields=[
                ("id", _id()),
                *_timestamps(),
                ("name", models.CharField(blank=True, default="", max_length=255)),
                ("address", models.CharField(help_text="Settlement address", max_length=255)),
                ("network", models.CharField(blank=True, default="", max_length=50)),
                (
                    "workspace",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="wallets",
                        to="payment_sync.workspace",
                    ),
                ),
            ],
            options={"ordering": ["created_at"]},
        ),
        migrations.CreateModel(
            name="WorkspacePaymentConfiguration",
            fields=[
                ("id", _id()),
                *_timestamps(),
                ("provider", models.CharField(max_length=50)),
                ("credentials", models.JSONField(default=dict)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "workspace",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payment_configurations",
                        to="payment_sync.workspace",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("workspace", "provider"),
                        name="uniq_workspace_payment_provider",
                    ),
                ],
            },
        ),
        # =====================================================================
        # Customers
        # =====================================================================
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", _id()),
                *_timestamps(),
                *_soft_delete(),
                *_sync_fields(),
                ("email", models.CharField(blank=True, default="", max_length=255)),
                ("name", models.CharField(blank=True, default="", max_length=255)),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("description", models.TextField(blank=True, default="")),
                ("billing_address", models.JSONField(blank=True, null=True)),
                ("shipping_address", models.JSONField(blank=True, null=True)),
                ("tax_ids", models.JSONField(blank=True, default=list)),
                ("preferred_locales", models.JSONField(blank=True, default=list)),
                ("currency", models.CharField(blank=True, default="", max_length=3)),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("external_id", "payment_provider"),
                        name="uniq_customer_external_id_provider",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WorkspaceCustomer",
            fields=[
                ("id", _id()),
                *_timestamps(),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="workspace_links",
                        to="payment_sync.customer",
                    ),
                ),
                (
                    "workspace",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="customer_links",
                        to="payment_sync.workspace",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("workspace", "customer"),
                        name="uniq_workspace_customer",
                    ),
                ],
            },
        ),
        migrations.AddField(
            model_name="customer",
            name="workspaces",
            field=models.ManyToManyField(
                related_name="customers",
                through="payment_sync.WorkspaceCustomer",
                to="payment_sync.workspace",
            ),
        ),
        # =====================================================================
        # Catalog
        # =====================================================================
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", _id()),
                *_timestamps(),
                *_sync_fields(),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("active", models.BooleanField(default=True)),
                ("product_type", models.CharField(blank=True, default="", max_length=50)),
                ("tax_code", models.CharField(blank=True, default="", max_length=100)),
                ("unit_label", models.CharField(blank=True, default="", max_length=50)),
                ("shippable", models.BooleanField(default=False)),
                ("images", models.JSONField(blank=True, default=list)),
                (
                    "wallet",
                    models.ForeignKey(
                        help_text="Settlement wallet for this product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="products",
                        to="payment_sync.wallet",
                    ),
                ),
                (
                    "workspace",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="products",
                        to="payment_sync.workspace",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("workspace", "external_id", "payment_provider"),
                        name="uniq_product_workspace_external_id_provider",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Price",
            fields=[
                ("id", _id()),
                *_timestamps(),
                *_sync_fields(),
                ("active", models.BooleanField(default=True)),
                ("currency", models.CharField(max_length=3)),
                ("unit_amount", models.BigIntegerField(default=0)),
                (
                    "price_type",
                    models.CharField(
                        choices=[("recurring", "Recurring"), ("one_time", "One Time")],
                        max_length=20,
                    ),
                ),
                (
                    "interval_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("day", "Day"),
                            ("week", "Week"),
                            ("month", "Month"),
                            ("year", "Year"),
                        ],
                        max_length=10,
                        null=True,
                    ),
                ),
                ("interval_count", models.PositiveIntegerField(blank=True, null=True)),
                ("term_length", models.PositiveIntegerField(blank=True, null=True)),
                ("nickname", models.CharField(blank=True, default="", max_length=255)),
                ("billing_scheme", models.CharField(blank=True, default="", max_length=50)),
                ("tax_behavior", models.CharField(blank=True, default="", max_length=50)),
                ("pricing_details", models.JSONField(blank=True, default=dict)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="prices",
                        to="payment_sync.product",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("product", "external_id", "payment_provider"),
                        name="uniq_price_product_external_id_provider",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("interval_type__isnull", False),
                                ("price_type", "recurring"),
                                ("term_length__gt", 0),
                            ),
                            models.Q(
                                ("interval_count__isnull", True),
                                ("interval_type__isnull", True),
                                ("price_type", "one_time"),
                                ("term_length__isnull", True),
                            ),
                            _connector="OR",
                        ),
                        name="price_recurring_fields_match_type",
                    ),
                ],
            },
        ),
        # =====================================================================
        # Subscriptions
        # =====================================================================
        migrations.CreateModel(
            name="Subscription",
            fields=[
                ("id", _id()),
                *_timestamps(),
                *_sync_fields(),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("trialing", "Trialing"),
                            ("past_due", "Past Due"),
                            ("canceled", "Canceled"),
                            ("incomplete", "Incomplete"),
                            ("incomplete_expired", "Incomplete Expired"),
                            ("unpaid", "Unpaid"),
                            ("paused", "Paused"),
                        ],
                        db_index=True,
                        max_length=30,
                    ),
                ),
                ("currency", models.CharField(blank=True, default="", max_length=3)),
                ("current_period_start", models.DateTimeField(blank=True, null=True)),
                ("current_period_end", models.DateTimeField(blank=True, null=True)),
                ("cancel_at_period_end", models.BooleanField(default=False)),
                ("cancel_at", models.DateTimeField(blank=True, null=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                ("ended_at", models.DateTimeField(blank=True, null=True)),
                ("trial_start", models.DateTimeField(blank=True, null=True)),
                ("trial_end", models.DateTimeField(blank=True, null=True)),
                (
                    "default_payment_method_id",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "latest_invoice_external_id",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("collection_method", models.CharField(blank=True, default="", max_length=50)),
                ("billing_cycle_anchor", models.DateTimeField(blank=True, null=True)),
                ("default_tax_rate_ids", models.JSONField(blank=True, default=list)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="subscriptions",
                        to="payment_sync.customer",
                    ),
                ),
                (
                    "workspace",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="subscriptions",
                        to="payment_sync.workspace",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("workspace", "external_id", "payment_provider"),
                        name="uniq_subscription_workspace_external_id_provider",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SubscriptionItem",
            fields=[
                ("id", _id()),
                *_timestamps(),
                ("external_id", models.CharField(blank=True, default="", max_length=255)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("tax_rate_ids", models.JSONField(blank=True, default=list)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "price",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="subscription_items",
                        to="payment_sync.price",
                    ),
                ),
                (
                    "subscription",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="payment_sync.subscription",
                    ),
                ),
            ],
            options={"ordering": ["created_at"]},
        ),
        # =====================================================================
        # Invoices
        # =====================================================================
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", _id()),
                *_timestamps(),
                *_sync_fields(),
                (
                    "status",
                    models.CharField(blank=True, db_index=True, default="", max_length=30),
                ),
                ("number", models.CharField(blank=True, default="", max_length=100)),
                ("currency", models.CharField(blank=True, default="", max_length=3)),
                ("amount_due", models.BigIntegerField(default=0)),
                ("amount_paid", models.BigIntegerField(default=0)),
                ("amount_remaining", models.BigIntegerField(default=0)),
                ("subtotal", models.BigIntegerField(default=0)),
                ("total", models.BigIntegerField(default=0)),
                ("tax_amount", models.BigIntegerField(default=0)),
                ("total_tax_amounts", models.JSONField(blank=True, null=True)),
                ("billing_reason", models.CharField(blank=True, default="", max_length=50)),
                ("collection_method", models.CharField(blank=True, default="", max_length=50)),
                ("due_date", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("period_start", models.DateTimeField(blank=True, null=True)),
                ("period_end", models.DateTimeField(blank=True, null=True)),
                ("paid_out_of_band", models.BooleanField(default=False)),
                (
                    "hosted_invoice_url",
                    models.URLField(blank=True, default="", max_length=1000),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="payment_sync.customer",
                    ),
                ),
                (
                    "subscription",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="invoices",
                        to="payment_sync.subscription",
                    ),
                ),
                (
                    "workspace",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="invoices",
                        to="payment_sync.workspace",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("workspace", "external_id", "payment_provider"),
                        name="uniq_invoice_workspace_external_id_provider",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceLineItem",
            fields=[
                ("id", _id()),
                *_timestamps(),
                ("position", models.PositiveIntegerField(default=0)),
                ("external_id", models.CharField(blank=True, default="", max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("amount", models.BigIntegerField(default=0)),
                ("currency", models.CharField(blank=True, default="", max_length=3)),
                ("quantity", models.PositiveIntegerField(default=0)),
                (
                    "price_external_id",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("proration", models.BooleanField(default=False)),
                ("period_start", models.DateTimeField(blank=True, null=True)),
                ("period_end", models.DateTimeField(blank=True, null=True)),
                ("taxes", models.JSONField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="line_items",
                        to="payment_sync.invoice",
                    ),
                ),
            ],
            options={"ordering": ["invoice", "position"]},
        ),
        # =====================================================================
        # Transactions
        # =====================================================================
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", _id()),
                *_timestamps(),
                *_sync_fields(),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("payment_intent", "Payment Intent"),
                            ("charge", "Charge"),
                            ("refund", "Refund"),
                        ],
                        db_index=True,
                        max_length=30,
                    ),
                ),
                ("amount", models.BigIntegerField(default=0)),
                ("amount_refunded", models.BigIntegerField(default=0)),
                ("currency", models.CharField(blank=True, default="", max_length=3)),
                ("status", models.CharField(blank=True, default="", max_length=50)),
                (
                    "payment_intent_external_id",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "payment_method_id",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("description", models.TextField(blank=True, default="")),
                ("failure_reason", models.TextField(blank=True, default="")),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transactions",
                        to="payment_sync.customer",
                    ),
                ),
                (
                    "invoice",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transactions",
                        to="payment_sync.invoice",
                    ),
                ),
                (
                    "workspace",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transactions",
                        to="payment_sync.workspace",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("workspace", "external_id", "payment_provider"),
                        name="uniq_transaction_workspace_external_id_provider",
                    ),
                ],
            },
        ),
        # =====================================================================
        # Sync Sessions
        # =====================================================================
        migrations.CreateModel(
            name="SyncSession",
            fields=[
                ("id", _id()),
                *_timestamps(),
                *_soft_delete(),
                ("provider", models.CharField(db_index=True, max_length=50)),
                (
                    "session_type",
                    models.CharField(
                        choices=[
                            ("initial_sync", "Initial Sync"),
                            ("incremental", "Incremental"),
                            ("replay", "Replay"),
                        ],
                        default="initial_sync",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("running", "Running"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current session status (managed by FSM)",
                        max_length=50,
                    ),
                ),
                ("entity_types", models.JSONField(default=list)),
                ("config", models.JSONField(blank=True, default=dict)),
                ("progress", models.JSONField(blank=True, default=dict)),
                ("error_summary", models.JSONField(blank=True, default=dict)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "workspace",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sync_sessions",
                        to="payment_sync.workspace",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["workspace", "provider", "status"],
                        name="syncsession_ws_prov_stat_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SyncEvent",
            fields=[
                ("id", _id()),
                *_timestamps(),
                ("entity_type", models.CharField(db_index=True, max_length=30)),
                (
                    "entity_id",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="External id of the entity, when the event concerns one",
                        max_length=255,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("sync_started", "Sync Started"),
                            ("sync_completed", "Sync Completed"),
                            ("sync_failed", "Sync Failed"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("message", models.TextField(blank=True, default="")),
                ("details", models.JSONField(blank=True, default=dict)),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="payment_sync.syncsession",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["session", "event_type"],
                        name="syncevent_session_type_idx",
                    ),
                ],
            },
        ),
        # =====================================================================
        # Webhooks
        # =====================================================================
        migrations.CreateModel(
            name="ProviderWebhookEvent",
            fields=[
                ("id", _id()),
                *_timestamps(),
                ("provider", models.CharField(max_length=50)),
                ("provider_event_id", models.CharField(max_length=255)),
                ("event_type", models.CharField(db_index=True, max_length=100)),
                ("data_kind", models.CharField(blank=True, default="", max_length=30)),
                ("raw_body", models.BinaryField()),
                ("payload", models.JSONField(default=dict)),
                ("signature_valid", models.BooleanField(default=False)),
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
                ("delivery_count", models.PositiveIntegerField(default=1)),
                ("processing_attempts", models.PositiveIntegerField(default=0)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                (
                    "workspace",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="webhook_events",
                        to="payment_sync.workspace",
                    ),
                ),
            ],
            options={
                "verbose_name": "Provider Webhook Event",
                "verbose_name_plural": "Provider Webhook Events",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("provider", "provider_event_id"),
                        name="uniq_webhook_provider_event_id",
                    ),
                ],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="webhook_status_created_idx",
                    ),
                ],
            },
        ),
    ]
