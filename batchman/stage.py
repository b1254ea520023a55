"""
Active stage of a batch — explicit variant instead of a nullable reference.

A batch's main flow is either sitting at a stage with some quantity
(AtStage) or has finished (NoActiveStage). Code that needs to branch on
it checks the type, never a null field:

    stage = batch.stage
    if isinstance(stage, AtStage):
        ...  # stage.stage_id, stage.quantity
    else:
        ...  # main flow done
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AtStage:
    """Main flow is at a stage holding `quantity` units."""

    stage_id: str
    name: str
    sequence_order: int
    quantity: int

    @property
    def is_active(self) -> bool:
        return True

    def as_dict(self) -> dict:
        return {
            'stage_id': self.stage_id,
            'name': self.name,
            'sequence_order': self.sequence_order,
            'quantity': self.quantity,
        }


@dataclass(frozen=True)
class NoActiveStage:
    """Main flow has left the last stage."""

    @property
    def is_active(self) -> bool:
        return False

    @property
    def quantity(self) -> int:
        return 0

    def as_dict(self) -> None:
        return None


ActiveStage = AtStage | NoActiveStage
