"""
Workflow Protocol — Interface for production workflow definitions.

Batchman never authors workflows. It consumes an ordered list of stages
from an external system, snapshots it when a batch is created, and never
looks back at the source again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from batchman.exceptions import ValidationError


@dataclass(frozen=True)
class ParameterSpec:
    """Verification parameter of a stage. Echoed into samples, never evaluated."""

    name: str
    specification: str = ''


@dataclass(frozen=True)
class StageSpec:
    """A single step of a linear workflow."""

    stage_id: str
    name: str
    sequence_order: int
    quality_check_required: bool = True
    parameters: tuple[ParameterSpec, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            'stage_id': self.stage_id,
            'name': self.name,
            'sequence_order': self.sequence_order,
            'quality_check_required': self.quality_check_required,
            'parameters': [
                {'name': p.name, 'specification': p.specification}
                for p in self.parameters
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StageSpec:
        return cls(
            stage_id=str(data['stage_id']),
            name=data.get('name', ''),
            sequence_order=data['sequence_order'],
            quality_check_required=bool(data.get('quality_check_required', True)),
            parameters=tuple(
                ParameterSpec(name=p['name'], specification=p.get('specification', ''))
                for p in data.get('parameters', [])
            ),
        )


@dataclass(frozen=True)
class WorkflowDefinition:
    """
    Ordered, linear list of stages.

    Stages may be given in any order; ordered() sorts them by
    sequence_order. validate() enforces the shape Batchman relies on:
    at least one stage, unique stage ids and unique sequence orders.
    """

    workflow_id: str
    name: str = ''
    stages: tuple[StageSpec, ...] = field(default_factory=tuple)

    def ordered(self) -> list[StageSpec]:
        return sorted(self.stages, key=lambda s: s.sequence_order)

    def validate(self) -> None:
        """
        Raises:
            ValidationError('INVALID_WORKFLOW'): If the stage list is unusable
        """
        if not self.stages:
            raise ValidationError(
                'INVALID_WORKFLOW', 'Fluxo sem etapas',
                workflow_id=self.workflow_id,
            )

        stage_ids = [s.stage_id for s in self.stages]
        # Stored in a CharField where '' means "no active stage"
        if any(not isinstance(i, str) or not i for i in stage_ids):
            raise ValidationError(
                'INVALID_WORKFLOW', 'Identificador de etapa deve ser texto não vazio',
                workflow_id=self.workflow_id, stage_ids=[str(i) for i in stage_ids],
            )
        if len(set(stage_ids)) != len(stage_ids):
            raise ValidationError(
                'INVALID_WORKFLOW', 'Etapas com identificador repetido',
                workflow_id=self.workflow_id, stage_ids=stage_ids,
            )

        orders = [s.sequence_order for s in self.stages]
        if any(isinstance(o, bool) or not isinstance(o, int) for o in orders):
            raise ValidationError(
                'INVALID_WORKFLOW', 'Ordem de etapa deve ser inteira',
                workflow_id=self.workflow_id,
            )
        if len(set(orders)) != len(orders):
            raise ValidationError(
                'INVALID_WORKFLOW', 'Etapas com ordem repetida',
                workflow_id=self.workflow_id, sequence_orders=orders,
            )

    def snapshot(self) -> dict[str, Any]:
        """JSON-serializable copy stored on the batch."""
        return {
            'workflow_id': self.workflow_id,
            'name': self.name,
            'stages': [s.as_dict() for s in self.ordered()],
        }

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> WorkflowDefinition:
        return cls(
            workflow_id=str(data.get('workflow_id', '')),
            name=data.get('name', ''),
            stages=tuple(StageSpec.from_dict(s) for s in data.get('stages', [])),
        )


@runtime_checkable
class WorkflowSource(Protocol):
    """
    Protocol for workflow lookup.

    Implementations resolve a workflow reference (id, slug, whatever the
    owning system uses) into a WorkflowDefinition.
    """

    def get_workflow(self, workflow_ref: str) -> WorkflowDefinition | None:
        """
        Get a workflow definition.

        Args:
            workflow_ref: Workflow identifier in the owning system

        Returns:
            WorkflowDefinition or None if not found
        """
        ...
