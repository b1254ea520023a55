"""
Batch queries — read-only operations.

All methods are classmethod on Batches and use no locking.
"""

from django.db.models import Q

from batchman.exceptions import ValidationError
from batchman.models.batch import Batch
from batchman.models.enums import ReworkStatus
from batchman.protocols.workflow import ParameterSpec
from batchman.services.locking import batch_pk
from batchman.snapshot import BatchSnapshot, snapshot_batch


def _get(batch_id) -> Batch:
    pk = batch_pk(batch_id)
    try:
        return Batch.objects.get(pk=pk)
    except Batch.DoesNotExist:
        raise ValidationError('BATCH_NOT_FOUND', batch_id=pk)


class BatchQueries:
    """Read-only batch query methods."""

    @classmethod
    def get_batch(cls, batch_id) -> BatchSnapshot:
        """
        Current state of a batch.

        Raises:
            ValidationError('BATCH_NOT_FOUND')
        """
        return snapshot_batch(_get(batch_id))

    @classmethod
    def get_batch_by_code(cls, code: str) -> BatchSnapshot:
        try:
            batch = Batch.objects.get(code=code)
        except Batch.DoesNotExist:
            raise ValidationError('BATCH_NOT_FOUND', batch_code=code)
        return snapshot_batch(batch)

    @classmethod
    def list_batches(cls, status: str | None = None, workflow_ref: str | None = None,
                     search: str | None = None):
        """
        List batches (queryset) with optional filters.

        search matches (case-insensitive, partial) batch code, lot number,
        current stage name or workflow.
        """
        qs = Batch.objects.all()
        if status is not None:
            qs = qs.filter(status=status)
        if workflow_ref is not None:
            qs = qs.filter(workflow_ref=workflow_ref)
        if search:
            qs = qs.filter(
                Q(code__icontains=search)
                | Q(lot_number__icontains=search)
                | Q(current_stage_name__icontains=search)
                | Q(workflow_ref__icontains=search)
            )
        return qs

    @classmethod
    def pending_rework(cls, batch_id):
        """Pending rework items of a batch, oldest first."""
        return _get(batch_id).rework_items.filter(
            status=ReworkStatus.PENDING
        ).order_by('created_at', 'pk')

    @classmethod
    def quality_parameters(cls, batch_id, stage_id: str) -> tuple[ParameterSpec, ...]:
        """
        Verification parameters of a stage, as snapshotted on the batch.

        Raises:
            ValidationError('STAGE_NOT_FOUND'): Stage not in the batch workflow
        """
        batch = _get(batch_id)
        spec = batch.stage_spec(stage_id)
        if spec is None:
            raise ValidationError('STAGE_NOT_FOUND', batch=batch.code, stage=stage_id)
        return spec.parameters
