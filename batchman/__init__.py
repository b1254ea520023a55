"""
Django Batchman — Production batch and quality disposition engine.

Tracks a fixed quantity of units through a linear workflow: quality
checks split each stage into passed / rework / rejected, rework items
are resolved on the side and folded back into the totals.

Uso:
    from batchman import batches, BatchError

    snap = batches.create(100, workflow)
    batches.perform_quality_check(snap.id, 'mix', 80, 15, 5)
    batches.get_batch(snap.id).quantity_in_rework  # 15
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'batches':
        from batchman.service import Batches
        return Batches
    elif name in ('BatchError', 'ValidationError', 'ConflictError', 'InvariantViolation'):
        from batchman import exceptions
        return getattr(exceptions, name)
    elif name == 'Batch':
        from batchman.models.batch import Batch
        return Batch
    elif name == 'BatchStage':
        from batchman.models.history import BatchStage
        return BatchStage
    elif name == 'QualityCheck':
        from batchman.models.check import QualityCheck
        return QualityCheck
    elif name == 'ReworkItem':
        from batchman.models.rework import ReworkItem
        return ReworkItem
    elif name == 'BatchStatus':
        from batchman.models.enums import BatchStatus
        return BatchStatus
    elif name == 'ReworkStatus':
        from batchman.models.enums import ReworkStatus
        return ReworkStatus
    elif name in ('WorkflowDefinition', 'StageSpec', 'ParameterSpec'):
        from batchman.protocols import workflow
        return getattr(workflow, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'batches',
    'BatchError',
    'ValidationError',
    'ConflictError',
    'InvariantViolation',
    'Batch',
    'BatchStage',
    'QualityCheck',
    'ReworkItem',
    'BatchStatus',
    'ReworkStatus',
    'WorkflowDefinition',
    'StageSpec',
    'ParameterSpec',
]

__version__ = '0.1.0'
