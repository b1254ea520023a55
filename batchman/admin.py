"""
Batchman Admin — read-only views for production debugging.

Provides:
- Batch: read-only counters, stage history and rework inline, "reject" action
- QualityCheck: read-only audit trail
- ReworkItem: read-only (resolve through the service, not the admin)

Quantities only change via the batches service.
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from batchman.exceptions import BatchError
from batchman.models import Batch, BatchStage, BatchStatus, QualityCheck, ReworkItem

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """Nothing here is editable by hand."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# BATCH ADMIN (read-only with reject action)
# =========================================================================


class BatchStageInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = BatchStage
    fields = ['sequence_order', 'stage_id', 'stage_name', 'quantity', 'status',
              'started_at', 'ended_at']
    readonly_fields = fields
    extra = 0


class ReworkItemInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = ReworkItem
    fields = ['stage_name', 'quantity', 'reason', 'status',
              'resolved_passed', 'resolved_rejected', 'resolved_at']
    readonly_fields = fields
    extra = 0


@admin.register(Batch)
class BatchAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Batch admin — read-only. Batches only change via the service."""

    list_display = ['code', 'workflow_ref', 'status', 'current_stage_name',
                    'quantity_planned', 'quantity_produced', 'quantity_rejected',
                    'quantity_in_rework', 'created_at']
    list_filter = ['status', 'workflow_ref']
    search_fields = ['code', 'lot_number']
    readonly_fields = ['code', 'lot_number', 'workflow_ref', 'workflow',
                       'quantity_planned', 'quantity_produced', 'quantity_rejected',
                       'quantity_in_rework', 'current_stage_id', 'current_stage_name',
                       'current_stage_order', 'current_stage_quantity', 'status',
                       'version', 'rejection_reason', 'notes', 'metadata',
                       'created_by', 'created_at', 'updated_at', 'completed_at',
                       'rejected_at']
    inlines = [BatchStageInline, ReworkItemInline]
    date_hierarchy = 'created_at'
    actions = ['reject_batches']

    @admin.action(description=_('Rejeitar lotes selecionados'))
    def reject_batches(self, request, queryset):
        from batchman import batches

        count = 0
        for batch in queryset.filter(status__in=[BatchStatus.IN_PROGRESS, BatchStatus.ON_HOLD]):
            try:
                batches.reject(batch.pk, reason='Rejeitado via admin', user=request.user)
                count += 1
            except BatchError as exc:
                logger.warning("reject_batches: failed to reject %s: %s", batch.code, exc)

        self.message_user(request, _('{count} lote(s) rejeitado(s).').format(count=count))


# =========================================================================
# QUALITY CHECK ADMIN (read-only audit trail)
# =========================================================================


@admin.register(QualityCheck)
class QualityCheckAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """QualityCheck admin — read-only. Immutable audit trail."""

    list_display = ['check_date', 'batch', 'stage', 'quantity', 'passed', 'rework',
                    'rejected', 'overall_result', 'user']
    list_filter = ['overall_result', 'check_date']
    search_fields = ['batch__code', 'notes']
    readonly_fields = ['batch', 'stage', 'quantity', 'passed', 'rework', 'rejected',
                       'overall_result', 'samples_data', 'notes', 'rework_reason',
                       'check_date', 'user']
    date_hierarchy = 'check_date'


# =========================================================================
# REWORK ADMIN (read-only)
# =========================================================================


@admin.register(ReworkItem)
class ReworkItemAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """ReworkItem admin — read-only."""

    list_display = ['id', 'batch', 'stage_name', 'quantity', 'status',
                    'resolved_passed', 'resolved_rejected', 'created_at']
    list_filter = ['status']
    search_fields = ['batch__code', 'reason']
    readonly_fields = ['batch', 'quality_check', 'stage_id', 'stage_name', 'quantity',
                       'reason', 'status', 'resolved_passed', 'resolved_rejected',
                       'resolution_notes', 'created_at', 'resolved_at', 'resolved_by']
