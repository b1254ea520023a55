"""
Rework tracking — resolution of rework items back into final totals.

Rework items are resolved in any order, independently of where the main
flow is. Resolution is terminal: the resolved units land in
quantity_produced / quantity_rejected and are never split again.
"""

import logging

from django.db import transaction
from django.utils import timezone

from batchman.exceptions import ValidationError
from batchman.models.enums import BatchStatus, ReworkStatus
from batchman.models.rework import ReworkItem
from batchman.services.locking import clean_quantity, commit_batch, lock_batch
from batchman.snapshot import BatchSnapshot, snapshot_batch

logger = logging.getLogger('batchman')


def parse_rework_id(rework_id) -> int:
    """Extract PK from "rework:<pk>", a digit string or an int."""
    if isinstance(rework_id, int) and not isinstance(rework_id, bool):
        return rework_id
    if isinstance(rework_id, str):
        raw = rework_id.split(':', 1)[1] if rework_id.startswith('rework:') else rework_id
        if raw.isdigit():
            return int(raw)
    raise ValidationError('REWORK_NOT_FOUND', rework_id=str(rework_id))


class ReworkTracker:
    """Resolves pending rework items of a batch."""

    @classmethod
    def resolve_rework_item(cls, batch_id, rework_id, passed: int, rejected: int,
                            notes: str = '', user=None,
                            expected_version: int | None = None) -> BatchSnapshot:
        """
        Resolve a pending rework item.

        Transition: PENDING → RESOLVED

        quantity_produced += passed
        quantity_rejected += rejected
        quantity_in_rework -= item.quantity

        Raises:
            ValidationError('INVALID_QUANTITY'): Negative or non-integer quantity
            ValidationError('BATCH_NOT_FOUND'): Unknown batch
            ValidationError('INVALID_STATUS'): Batch was rejected
            ValidationError('REWORK_NOT_FOUND'): Item doesn't exist on this batch
            ValidationError('ALREADY_RESOLVED'): Item is not pending
            ValidationError('DISPOSITION_MISMATCH'): passed + rejected != item.quantity
            ConflictError('CONCURRENT_MODIFICATION'): Batch changed under the caller

        Concurrency:
            - Runs under transaction.atomic()
            - Uses select_for_update() on Batch and ReworkItem
        """
        passed = clean_quantity(passed, 'passed')
        rejected = clean_quantity(rejected, 'rejected')
        pk = parse_rework_id(rework_id)

        with transaction.atomic():
            batch = lock_batch(batch_id, expected_version)

            if batch.status == BatchStatus.REJECTED:
                raise ValidationError(
                    'INVALID_STATUS',
                    batch=batch.code,
                    current=batch.status,
                    expected=[BatchStatus.IN_PROGRESS, BatchStatus.ON_HOLD],
                )

            try:
                item = ReworkItem.objects.select_for_update().get(pk=pk, batch=batch)
            except ReworkItem.DoesNotExist:
                raise ValidationError('REWORK_NOT_FOUND', batch=batch.code, rework_id=f"rework:{pk}")

            if item.status != ReworkStatus.PENDING:
                raise ValidationError(
                    'ALREADY_RESOLVED',
                    batch=batch.code,
                    rework_id=item.rework_id,
                    current=item.status,
                )

            total = passed + rejected
            if total != item.quantity:
                raise ValidationError(
                    'DISPOSITION_MISMATCH',
                    batch=batch.code,
                    rework_id=item.rework_id,
                    expected=item.quantity,
                    received=total,
                )

            item.status = ReworkStatus.RESOLVED
            item.resolved_passed = passed
            item.resolved_rejected = rejected
            item.resolution_notes = notes
            item.resolved_at = timezone.now()
            item.resolved_by = user
            item.save(update_fields=[
                'status', 'resolved_passed', 'resolved_rejected',
                'resolution_notes', 'resolved_at', 'resolved_by',
            ])

            batch.quantity_produced += passed
            batch.quantity_rejected += rejected
            batch.quantity_in_rework -= item.quantity

            commit_batch(batch)

        logger.info(
            "batch.rework_resolved",
            extra={
                "batch": batch.code,
                "rework_id": item.rework_id,
                "passed": passed,
                "rejected": rejected,
                "status": batch.status,
            },
        )
        return snapshot_batch(batch)
