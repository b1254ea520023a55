"""
Shared plumbing for batch mutations: input checks, row lock, commit.

Every mutation follows the same shape:

    with transaction.atomic():
        batch = lock_batch(batch_id, expected_version)
        ...validate, append history, adjust counters in memory...
        commit_batch(batch)

lock_batch() takes the row lock (select_for_update) and checks the
caller's version token. commit_batch() recomputes the status, verifies
invariants and writes the counters with a compare-and-swap on `version`,
so a writer that slipped past the lock (backends without row locks)
still gets a ConflictError instead of overwriting counters.
"""

import logging

from django.utils import timezone

from batchman.conf import batchman_settings
from batchman.exceptions import ConflictError, InvariantViolation, ValidationError
from batchman.models.batch import Batch
from batchman.models.enums import BatchStatus
from batchman.status import resolve_status

logger = logging.getLogger('batchman')

COUNTER_FIELDS = [
    'quantity_produced',
    'quantity_rejected',
    'quantity_in_rework',
    'current_stage_id',
    'current_stage_name',
    'current_stage_order',
    'current_stage_quantity',
    'status',
    'completed_at',
    'rejected_at',
    'rejection_reason',
]


def clean_quantity(value, field: str) -> int:
    """
    Accept only non-negative integers (bools are not quantities).

    Raises:
        ValidationError('INVALID_QUANTITY')
    """
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError('INVALID_QUANTITY', field=field, received=value)
    return value


def batch_pk(batch_or_id) -> int:
    """Accept a Batch, a snapshot, a raw pk or a digit string."""
    if isinstance(batch_or_id, int) and not isinstance(batch_or_id, bool):
        return batch_or_id
    if isinstance(batch_or_id, str):
        if batch_or_id.isdigit():
            return int(batch_or_id)
        raise ValidationError('BATCH_NOT_FOUND', batch_id=batch_or_id)
    pk = getattr(batch_or_id, 'pk', None) or getattr(batch_or_id, 'id', None)
    if pk is None:
        raise ValidationError('BATCH_NOT_FOUND', batch_id=str(batch_or_id))
    return pk


def lock_batch(batch_id, expected_version: int | None = None) -> Batch:
    """
    Lock the batch row for the rest of the transaction.

    Raises:
        ValidationError('BATCH_NOT_FOUND'): If the batch doesn't exist
        ConflictError('CONCURRENT_MODIFICATION'): If expected_version is
            given and the batch has moved on
    """
    pk = batch_pk(batch_id)
    try:
        batch = Batch.objects.select_for_update().get(pk=pk)
    except Batch.DoesNotExist:
        raise ValidationError('BATCH_NOT_FOUND', batch_id=pk)

    if expected_version is not None and batch.version != expected_version:
        raise ConflictError(
            'CONCURRENT_MODIFICATION',
            batch=batch.code,
            expected=expected_version,
            current_version=batch.version,
        )
    return batch


def commit_batch(batch: Batch) -> Batch:
    """
    Recompute status, verify invariants and persist counters.

    Must run inside the same transaction.atomic() block as the mutation,
    so any error here rolls the whole mutation back.

    Raises:
        InvariantViolation: Counters are inconsistent (defect)
        ConflictError('CONCURRENT_MODIFICATION'): Version changed since read
    """
    now = timezone.now()

    if batch.status != BatchStatus.REJECTED:
        status = resolve_status(batch.stage, batch.pending_rework_count)
        if status == BatchStatus.COMPLETED and batch.completed_at is None:
            batch.completed_at = now
        batch.status = status

    try:
        batch.check_invariants(verify_ledger=batchman_settings.VERIFY_LEDGER)
    except InvariantViolation as exc:
        logger.error(
            "batch.invariant_violation",
            extra={"batch": batch.code, "code": exc.code, "data": exc.data},
        )
        raise

    read_version = batch.version
    values = {field: getattr(batch, field) for field in COUNTER_FIELDS}
    updated = Batch.objects.filter(pk=batch.pk, version=read_version).update(
        version=read_version + 1,
        updated_at=now,
        **values,
    )
    if not updated:
        current = Batch.objects.filter(pk=batch.pk).values_list('version', flat=True).first()
        raise ConflictError(
            'CONCURRENT_MODIFICATION',
            batch=batch.code,
            expected=read_version,
            current_version=current,
        )

    batch.version = read_version + 1
    batch.updated_at = now
    return batch
