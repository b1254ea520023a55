"""
Quality checks — disposition at the active stage and main flow advance.

All state-changing methods use transaction.atomic() with a row lock on
the batch. Validation happens after the lock and before any write, so a
rejected call leaves no trace.
"""

import logging
from collections.abc import Mapping

from django.db import transaction
from django.utils import timezone

from batchman.conf import batchman_settings
from batchman.exceptions import InvariantViolation, ValidationError
from batchman.models.batch import Batch
from batchman.models.check import QualityCheck
from batchman.models.enums import BatchStatus
from batchman.models.history import BatchStage
from batchman.models.rework import ReworkItem
from batchman.services.locking import clean_quantity, commit_batch, lock_batch
from batchman.snapshot import BatchSnapshot, snapshot_batch
from batchman.stage import AtStage, NoActiveStage

logger = logging.getLogger('batchman')


def _clean_samples(samples_data) -> list:
    """Samples are echoed verbatim; only the container shape is checked."""
    if samples_data is None:
        return []
    if isinstance(samples_data, (str, bytes, Mapping)) or not isinstance(samples_data, (list, tuple)):
        raise ValidationError('INVALID_SAMPLES', received=type(samples_data).__name__)
    for index, sample in enumerate(samples_data):
        if not isinstance(sample, Mapping):
            raise ValidationError('INVALID_SAMPLES', index=index, received=type(sample).__name__)
    return [dict(sample) for sample in samples_data]


def _require_active_stage(batch: Batch, stage_id: str) -> AtStage:
    """
    Raises:
        ValidationError('INVALID_STATUS'): If the batch is not in progress
        ValidationError('STALE_STAGE'): If stage_id is not the active stage
    """
    if batch.status != BatchStatus.IN_PROGRESS:
        raise ValidationError(
            'INVALID_STATUS',
            batch=batch.code,
            current=batch.status,
            expected=BatchStatus.IN_PROGRESS,
        )

    stage = batch.stage
    if not isinstance(stage, AtStage) or stage.stage_id != stage_id:
        raise ValidationError(
            'STALE_STAGE',
            batch=batch.code,
            active=stage.stage_id if isinstance(stage, AtStage) else None,
            received=stage_id,
        )
    return stage


class QualityCheckEngine:
    """Applies dispositions at the active stage of a batch."""

    @classmethod
    def perform_quality_check(cls, batch_id, stage_id: str, passed: int, rework: int,
                              rejected: int, samples_data=None, notes: str = '',
                              rework_reason: str = '', user=None,
                              expected_version: int | None = None) -> BatchSnapshot:
        """
        Split the active stage quantity into passed / rework / rejected.

        - rejected leaves the flow for good (quantity_rejected)
        - rework becomes a Pending ReworkItem (quantity_in_rework)
        - passed moves to the next stage, or to quantity_produced when
          the active stage is the last one

        Raises:
            ValidationError('INVALID_QUANTITY'): Negative or non-integer quantity
            ValidationError('INVALID_SAMPLES'): samples_data is not a list of mappings
            ValidationError('BATCH_NOT_FOUND'): Unknown batch
            ValidationError('INVALID_STATUS'): Batch is not in progress
            ValidationError('STALE_STAGE'): stage_id is not the active stage
            ValidationError('DISPOSITION_MISMATCH'): Sum differs from the stage quantity
            ValidationError('REASON_REQUIRED'): Rework without reason (when required)
            ConflictError('CONCURRENT_MODIFICATION'): Batch changed under the caller

        Concurrency:
            - Runs under transaction.atomic()
            - Uses select_for_update() on Batch
            - Commits counters with compare-and-swap on Batch.version
        """
        passed = clean_quantity(passed, 'passed')
        rework = clean_quantity(rework, 'rework')
        rejected = clean_quantity(rejected, 'rejected')
        samples = _clean_samples(samples_data)

        with transaction.atomic():
            batch = lock_batch(batch_id, expected_version)
            stage = _require_active_stage(batch, stage_id)
            check = cls._apply(
                batch, stage, passed, rework, rejected,
                samples=samples, notes=notes, rework_reason=rework_reason, user=user,
            )
            commit_batch(batch)

        logger.info(
            "batch.quality_check",
            extra={
                "batch": batch.code,
                "stage": stage.stage_id,
                "passed": passed,
                "rework": rework,
                "rejected": rejected,
                "result": check.overall_result,
                "status": batch.status,
            },
        )
        return snapshot_batch(batch)

    @classmethod
    def advance_stage(cls, batch_id, stage_id: str, notes: str = '', user=None,
                      expected_version: int | None = None) -> BatchSnapshot:
        """
        Move the whole active quantity forward through a stage that has
        no quality gate.

        Recorded as a full-pass check, so history and counters stay the
        same shape as for inspected stages.

        Raises:
            ValidationError('QUALITY_CHECK_REQUIRED'): Stage requires inspection
            (plus the stage/status errors of perform_quality_check)
        """
        with transaction.atomic():
            batch = lock_batch(batch_id, expected_version)
            stage = _require_active_stage(batch, stage_id)

            spec = batch.stage_spec(stage.stage_id)
            if spec is None or spec.quality_check_required:
                raise ValidationError(
                    'QUALITY_CHECK_REQUIRED',
                    batch=batch.code,
                    stage=stage.stage_id,
                )

            cls._apply(batch, stage, stage.quantity, 0, 0, notes=notes, user=user)
            commit_batch(batch)

        logger.info(
            "batch.advance",
            extra={"batch": batch.code, "stage": stage.stage_id, "qty": stage.quantity},
        )
        return snapshot_batch(batch)

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _apply(cls, batch: Batch, stage: AtStage, passed: int, rework: int, rejected: int,
               samples=None, notes: str = '', rework_reason: str = '', user=None) -> QualityCheck:
        """Validate the disposition and apply it to the locked batch (in memory + history rows)."""
        total = passed + rework + rejected
        if total != stage.quantity:
            raise ValidationError(
                'DISPOSITION_MISMATCH',
                batch=batch.code,
                stage=stage.stage_id,
                expected=stage.quantity,
                received=total,
            )

        if rework > 0 and not rework_reason and batchman_settings.REQUIRE_REWORK_REASON:
            raise ValidationError('REASON_REQUIRED', batch=batch.code, stage=stage.stage_id)

        try:
            record = batch.stages_history.get(stage_id=stage.stage_id)
        except BatchStage.DoesNotExist:
            raise InvariantViolation('MISSING_STAGE_RECORD', batch=batch.code, stage=stage.stage_id)

        now = timezone.now()
        check = QualityCheck.objects.create(
            batch=batch,
            stage=record,
            quantity=stage.quantity,
            passed=passed,
            rework=rework,
            rejected=rejected,
            samples_data=samples or [],
            notes=notes,
            rework_reason=rework_reason if rework > 0 else '',
            check_date=now,
            user=user,
        )

        record.close(now)
        record.save(update_fields=['status', 'ended_at'])

        batch.quantity_rejected += rejected

        if rework > 0:
            ReworkItem.objects.create(
                batch=batch,
                quality_check=check,
                stage_id=stage.stage_id,
                stage_name=stage.name,
                quantity=rework,
                reason=rework_reason,
                created_at=now,
            )
            batch.quantity_in_rework += rework

        next_spec = batch.next_stage_spec(stage.stage_id)
        if next_spec is None:
            batch.quantity_produced += passed
            batch.set_stage(NoActiveStage())
        else:
            batch.set_stage(AtStage(
                stage_id=next_spec.stage_id,
                name=next_spec.name,
                sequence_order=next_spec.sequence_order,
                quantity=passed,
            ))
            BatchStage.objects.create(
                batch=batch,
                stage_id=next_spec.stage_id,
                stage_name=next_spec.name,
                sequence_order=next_spec.sequence_order,
                quantity=passed,
                started_at=now,
            )

        return check
