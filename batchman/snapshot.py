"""
Read-only views of a batch, returned by every service operation.

Snapshots are plain frozen dataclasses: safe to hand to API layers,
templates or other threads without touching the ORM again.

    snap = batches.get_batch(batch_id)
    snap.current_stage      # AtStage(...) or NoActiveStage()
    snap.as_dict()          # JSON-friendly
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from batchman.models.enums import ReworkStatus
from batchman.protocols.workflow import StageSpec
from batchman.stage import ActiveStage


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class QualityCheckSnapshot:
    id: int
    stage_id: str
    quantity: int
    passed: int
    rework: int
    rejected: int
    overall_result: str
    samples_data: list
    notes: str
    rework_reason: str
    check_date: datetime

    def as_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'stage_id': self.stage_id,
            'disposition': {
                'passed': self.passed,
                'rework': self.rework,
                'rejected': self.rejected,
            },
            'quantity': self.quantity,
            'overall_result': self.overall_result,
            'samples_data': self.samples_data,
            'notes': self.notes,
            'rework_reason': self.rework_reason,
            'check_date': _iso(self.check_date),
        }


@dataclass(frozen=True)
class StageRecordSnapshot:
    stage_id: str
    name: str
    sequence_order: int
    quantity: int
    status: str
    started_at: datetime
    ended_at: datetime | None
    quality_checks: tuple[QualityCheckSnapshot, ...]

    def as_dict(self) -> dict[str, Any]:
        return {
            'stage_id': self.stage_id,
            'name': self.name,
            'sequence_order': self.sequence_order,
            'quantity': self.quantity,
            'status': self.status,
            'started_at': _iso(self.started_at),
            'ended_at': _iso(self.ended_at),
            'quality_checks': [c.as_dict() for c in self.quality_checks],
        }


@dataclass(frozen=True)
class ReworkSnapshot:
    id: str
    stage_id: str
    stage_name: str
    quantity: int
    reason: str
    status: str
    resolution: dict[str, Any] | None

    def as_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'stage_id': self.stage_id,
            'stage_name': self.stage_name,
            'quantity': self.quantity,
            'reason': self.reason,
            'status': self.status,
            'resolution': self.resolution,
        }


@dataclass(frozen=True)
class BatchSnapshot:
    id: int
    code: str
    lot_number: str
    workflow_ref: str
    stages: tuple[StageSpec, ...]
    quantity_planned: int
    quantity_produced: int
    quantity_rejected: int
    quantity_in_rework: int
    current_stage: ActiveStage
    stages_history: tuple[StageRecordSnapshot, ...]
    rework_items: tuple[ReworkSnapshot, ...]
    status: str
    version: int

    @property
    def quantity_at_stage(self) -> int:
        return self.current_stage.quantity

    @property
    def pending_rework(self) -> tuple[ReworkSnapshot, ...]:
        return tuple(r for r in self.rework_items if r.status == ReworkStatus.PENDING)

    def as_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'code': self.code,
            'lot_number': self.lot_number,
            'workflow_ref': self.workflow_ref,
            'stages': [s.as_dict() for s in self.stages],
            'quantity_planned': self.quantity_planned,
            'quantity_produced': self.quantity_produced,
            'quantity_rejected': self.quantity_rejected,
            'quantity_in_rework': self.quantity_in_rework,
            'current_stage': self.current_stage.as_dict(),
            'stages_history': [s.as_dict() for s in self.stages_history],
            'rework_items': [r.as_dict() for r in self.rework_items],
            'status': self.status,
            'version': self.version,
        }


def snapshot_batch(batch) -> BatchSnapshot:
    """Build a BatchSnapshot from a Batch instance (fresh queries)."""
    checks_by_stage: dict[int, list[QualityCheckSnapshot]] = {}
    for check in batch.quality_checks.select_related('stage').order_by('check_date', 'pk'):
        checks_by_stage.setdefault(check.stage_id, []).append(QualityCheckSnapshot(
            id=check.pk,
            stage_id=check.stage.stage_id,
            quantity=check.quantity,
            passed=check.passed,
            rework=check.rework,
            rejected=check.rejected,
            overall_result=check.overall_result,
            samples_data=check.samples_data,
            notes=check.notes,
            rework_reason=check.rework_reason,
            check_date=check.check_date,
        ))

    history = tuple(
        StageRecordSnapshot(
            stage_id=record.stage_id,
            name=record.stage_name,
            sequence_order=record.sequence_order,
            quantity=record.quantity,
            status=record.status,
            started_at=record.started_at,
            ended_at=record.ended_at,
            quality_checks=tuple(checks_by_stage.get(record.pk, [])),
        )
        for record in batch.stages_history.order_by('sequence_order')
    )

    rework = tuple(
        ReworkSnapshot(
            id=item.rework_id,
            stage_id=item.stage_id,
            stage_name=item.stage_name,
            quantity=item.quantity,
            reason=item.reason,
            status=item.status,
            resolution=(
                {
                    'passed': item.resolved_passed,
                    'rejected': item.resolved_rejected,
                    'notes': item.resolution_notes,
                }
                if item.resolution is not None else None
            ),
        )
        for item in batch.rework_items.order_by('created_at', 'pk')
    )

    return BatchSnapshot(
        id=batch.pk,
        code=batch.code,
        lot_number=batch.lot_number,
        workflow_ref=batch.workflow_ref,
        stages=tuple(batch.stage_specs),
        quantity_planned=batch.quantity_planned,
        quantity_produced=batch.quantity_produced,
        quantity_rejected=batch.quantity_rejected,
        quantity_in_rework=batch.quantity_in_rework,
        current_stage=batch.stage,
        stages_history=history,
        rework_items=rework,
        status=batch.status,
        version=batch.version,
    )
