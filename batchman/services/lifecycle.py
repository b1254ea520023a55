"""
Batch lifecycle — creation and operator rejection.

Neither method moves quantity between counters: create() puts the whole
planned quantity at the first stage, reject() only freezes the batch.
"""

import logging
import uuid

from django.db import IntegrityError, transaction
from django.utils import timezone

from batchman.adapters.source import get_workflow_source
from batchman.conf import batchman_settings
from batchman.exceptions import ValidationError
from batchman.models.batch import Batch
from batchman.models.enums import BatchStatus
from batchman.models.history import BatchStage
from batchman.protocols.workflow import WorkflowDefinition
from batchman.services.locking import commit_batch, lock_batch
from batchman.snapshot import BatchSnapshot, snapshot_batch
from batchman.stage import AtStage
from batchman.status import resolve_status

logger = logging.getLogger('batchman')


def _resolve_workflow(workflow) -> WorkflowDefinition:
    """Accept a WorkflowDefinition or a reference for the configured source."""
    if isinstance(workflow, WorkflowDefinition):
        return workflow
    if isinstance(workflow, str) and workflow:
        definition = get_workflow_source().get_workflow(workflow)
        if definition is None:
            raise ValidationError('WORKFLOW_NOT_FOUND', workflow_ref=workflow)
        return definition
    raise ValidationError('INVALID_WORKFLOW', received=type(workflow).__name__)


def _generate_code() -> str:
    return f"{batchman_settings.BATCH_CODE_PREFIX}-{uuid.uuid4().hex[:8].upper()}"


class BatchLifecycle:
    """Creation and terminal operator decisions."""

    @classmethod
    def create(cls, quantity_planned: int, workflow, code: str | None = None,
               lot_number: str = '', notes: str = '', user=None,
               **metadata) -> BatchSnapshot:
        """
        Create a batch at the first stage of its workflow.

        The workflow is snapshotted on the batch; later changes to the
        definition don't affect it.

        Args:
            quantity_planned: Units in the batch (positive integer)
            workflow: WorkflowDefinition, or a reference resolved through
                BATCHMAN['WORKFLOW_SOURCE']
            code: Batch number (None = generated)

        Raises:
            ValidationError('INVALID_QUANTITY'): quantity_planned not a positive integer
            ValidationError('WORKFLOW_NOT_FOUND'): Reference unknown to the source
            ValidationError('INVALID_WORKFLOW'): Empty or malformed stage list
            ValidationError('DUPLICATE_CODE'): Code already used
        """
        if isinstance(quantity_planned, bool) or not isinstance(quantity_planned, int) \
                or quantity_planned <= 0:
            raise ValidationError('INVALID_QUANTITY', field='quantity_planned', received=quantity_planned)

        definition = _resolve_workflow(workflow)
        definition.validate()
        first = definition.ordered()[0]
        code = code or _generate_code()

        if Batch.objects.filter(code=code).exists():
            raise ValidationError('DUPLICATE_CODE', batch_code=code)

        try:
            with transaction.atomic():
                batch = Batch(
                    code=code,
                    lot_number=lot_number,
                    workflow_ref=definition.workflow_id,
                    workflow=definition.snapshot(),
                    quantity_planned=quantity_planned,
                    notes=notes,
                    metadata=metadata,
                    created_by=user,
                )
                batch.set_stage(AtStage(
                    stage_id=first.stage_id,
                    name=first.name,
                    sequence_order=first.sequence_order,
                    quantity=quantity_planned,
                ))
                batch.status = resolve_status(batch.stage, 0)
                batch.save()

                BatchStage.objects.create(
                    batch=batch,
                    stage_id=first.stage_id,
                    stage_name=first.name,
                    sequence_order=first.sequence_order,
                    quantity=quantity_planned,
                )
                batch.check_invariants(verify_ledger=batchman_settings.VERIFY_LEDGER)
        except IntegrityError as e:
            raise ValidationError('DUPLICATE_CODE', batch_code=code) from e

        logger.info(
            "batch.create",
            extra={
                "batch": batch.code,
                "workflow": definition.workflow_id,
                "qty": quantity_planned,
                "stage": first.stage_id,
            },
        )
        return snapshot_batch(batch)

    @classmethod
    def reject(cls, batch_id, reason: str, user=None,
               expected_version: int | None = None) -> BatchSnapshot:
        """
        Reject a batch (operator decision, terminal).

        Transition: IN_PROGRESS|ON_HOLD → REJECTED

        Counters are left as they are; no further checks or rework
        resolutions are accepted afterwards.

        Raises:
            ValidationError('REASON_REQUIRED'): If reason is empty
            ValidationError('INVALID_STATUS'): If already completed/rejected
        """
        if not reason:
            raise ValidationError('REASON_REQUIRED')

        with transaction.atomic():
            batch = lock_batch(batch_id, expected_version)

            if batch.status not in [BatchStatus.IN_PROGRESS, BatchStatus.ON_HOLD]:
                raise ValidationError(
                    'INVALID_STATUS',
                    batch=batch.code,
                    current=batch.status,
                    expected=[BatchStatus.IN_PROGRESS, BatchStatus.ON_HOLD],
                )

            batch.status = BatchStatus.REJECTED
            batch.rejection_reason = reason
            batch.rejected_at = timezone.now()
            commit_batch(batch)

        logger.info(
            "batch.reject",
            extra={
                "batch": batch.code,
                "reason": reason,
                "user": getattr(user, 'pk', None),
            },
        )
        return snapshot_batch(batch)
