"""
Batch status resolution — isolated, pure, testable.

Status is never set by hand for the automatic values. It is derived from
the active stage and the number of pending rework items after every
mutation:

    at a stage                  → IN_PROGRESS
    no stage, rework pending    → ON_HOLD
    no stage, nothing pending   → COMPLETED

REJECTED is set by an operator (see BatchLifecycle.reject) and is not
produced here.
"""

from batchman.models.enums import BatchStatus
from batchman.stage import ActiveStage, AtStage, NoActiveStage


def resolve_status(stage: ActiveStage, pending_count: int) -> BatchStatus:
    """
    Derive the automatic status of a batch.

    Args:
        stage: Current stage variant of the batch
        pending_count: Number of rework items still pending

    Returns:
        BatchStatus (IN_PROGRESS, ON_HOLD or COMPLETED)
    """
    if isinstance(stage, AtStage):
        return BatchStatus.IN_PROGRESS
    if isinstance(stage, NoActiveStage):
        if pending_count > 0:
            return BatchStatus.ON_HOLD
        return BatchStatus.COMPLETED
    raise TypeError(f"Unknown stage variant: {stage!r}")
