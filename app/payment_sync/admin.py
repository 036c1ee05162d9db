"""
Payment sync admin configuration.

Synced rows are owned by the provider: they are shown read-only and
change only through sync sessions or webhooks.
"""

from django.contrib import admin

from payment_sync.models import (
    Customer,
    Invoice,
    InvoiceLineItem,
    Price,
    Product,
    ProviderWebhookEvent,
    Subscription,
    SubscriptionItem,
    SyncEvent,
    SyncSession,
    Transaction,
    Wallet,
    Workspace,
    WorkspacePaymentConfiguration,
)

SYNC_FIELDS = [
    "external_id",
    "payment_provider",
    "payment_sync_status",
    "payment_synced_at",
    "payment_sync_version",
]


class SyncedModelAdmin(admin.ModelAdmin):
    """Read-only admin for provider-synced rows."""

    list_filter = ["payment_provider", "payment_sync_status"]
    search_fields = ["id", "external_id"]
    ordering = ["-created_at"]

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


class WalletInline(admin.TabularInline):
    model = Wallet
    extra = 0


class PaymentConfigurationInline(admin.TabularInline):
    model = WorkspacePaymentConfiguration
    extra = 0
    fields = ["provider", "is_active", "credentials"]


@admin.register(Workspace)
class WorkspaceAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "created_at"]
    search_fields = ["id", "name"]
    readonly_fields = ["id", "created_at", "updated_at"]
    inlines = [WalletInline, PaymentConfigurationInline]


@admin.register(Customer)
class CustomerAdmin(SyncedModelAdmin):
    list_display = ["id", *SYNC_FIELDS[:2], "email", "name", "is_deleted", "payment_sync_version"]
    list_filter = [*SyncedModelAdmin.list_filter, "is_deleted"]
    search_fields = ["id", "external_id", "email", "name"]

    def get_queryset(self, request):
        return Customer.all_objects.all()


@admin.register(Product)
class ProductAdmin(SyncedModelAdmin):
    list_display = ["id", *SYNC_FIELDS[:2], "name", "workspace", "active"]
    list_filter = [*SyncedModelAdmin.list_filter, "active"]
    search_fields = ["id", "external_id", "name"]


@admin.register(Price)
class PriceAdmin(SyncedModelAdmin):
    list_display = [
        "id",
        *SYNC_FIELDS[:2],
        "product",
        "unit_amount",
        "currency",
        "price_type",
        "interval_type",
    ]
    list_filter = [*SyncedModelAdmin.list_filter, "price_type", "currency", "active"]


class SubscriptionItemInline(admin.TabularInline):
    model = SubscriptionItem
    extra = 0
    can_delete = False
    readonly_fields = ["external_id", "price", "quantity", "tax_rate_ids", "metadata"]

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Subscription)
class SubscriptionAdmin(SyncedModelAdmin):
    list_display = ["id", *SYNC_FIELDS[:2], "customer", "status", "current_period_end"]
    list_filter = [*SyncedModelAdmin.list_filter, "status"]
    inlines = [SubscriptionItemInline]


class InvoiceLineItemInline(admin.TabularInline):
    model = InvoiceLineItem
    extra = 0
    can_delete = False
    readonly_fields = ["position", "external_id", "description", "amount", "currency", "quantity"]
    fields = readonly_fields

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Invoice)
class InvoiceAdmin(SyncedModelAdmin):
    list_display = ["id", *SYNC_FIELDS[:2], "number", "customer", "status", "total", "currency"]
    list_filter = [*SyncedModelAdmin.list_filter, "status", "collection_method"]
    search_fields = ["id", "external_id", "number"]
    inlines = [InvoiceLineItemInline]


@admin.register(Transaction)
class TransactionAdmin(SyncedModelAdmin):
    list_display = [
        "id",
        *SYNC_FIELDS[:2],
        "transaction_type",
        "amount",
        "currency",
        "status",
    ]
    list_filter = [*SyncedModelAdmin.list_filter, "transaction_type", "status"]


class SyncEventInline(admin.TabularInline):
    model = SyncEvent
    extra = 0
    can_delete = False
    readonly_fields = ["created_at", "entity_type", "entity_id", "event_type", "message"]
    fields = readonly_fields

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(SyncSession)
class SyncSessionAdmin(admin.ModelAdmin):
    """
    Admin configuration for SyncSession.

    Status is FSM-managed; sessions are cancelled through the API.
    Deleting from admin soft-deletes.
    """

    list_display = [
        "id",
        "workspace",
        "provider",
        "session_type",
        "status",
        "started_at",
        "completed_at",
    ]
    list_filter = ["status", "provider", "session_type"]
    search_fields = ["id", "workspace__name"]
    readonly_fields = [
        "id",
        "status",
        "progress",
        "error_summary",
        "started_at",
        "completed_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [SyncEventInline]

    def delete_model(self, request, obj) -> None:
        obj.soft_delete()

    def delete_queryset(self, request, queryset) -> None:
        queryset.delete()


@admin.register(ProviderWebhookEvent)
class ProviderWebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for ProviderWebhookEvent.

    Provides visibility into webhook processing status.
    Received bodies are immutable.
    """

    list_display = [
        "id",
        "provider",
        "provider_event_id",
        "event_type",
        "status",
        "delivery_count",
        "processing_attempts",
        "processed_at",
        "created_at",
    ]
    list_filter = ["provider", "status", "event_type", "created_at"]
    search_fields = ["id", "provider_event_id", "event_type"]
    readonly_fields = [
        "id",
        "workspace",
        "provider",
        "provider_event_id",
        "event_type",
        "data_kind",
        "payload",
        "signature_valid",
        "delivery_count",
        "processing_attempts",
        "processed_at",
        "created_at",
        "updated_at",
    ]
    exclude = ["raw_body"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for webhook events (audit trail)."""
        return False

    def has_add_permission(self, request) -> bool:
        return False
