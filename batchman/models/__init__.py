"""
Batchman Models.

Core models for production batch tracking:
- Batch: Production run and its quantity counters
- BatchStage: Per-stage record of the main flow
- QualityCheck: Immutable disposition at a stage
- ReworkItem: Quantity pulled aside for rework, resolved once
"""

from batchman.models.batch import Batch
from batchman.models.check import QualityCheck
from batchman.models.enums import BatchStatus, CheckResult, ReworkStatus, StageStatus
from batchman.models.history import BatchStage
from batchman.models.rework import ReworkItem, ReworkResolution

__all__ = [
    'BatchStatus',
    'StageStatus',
    'ReworkStatus',
    'CheckResult',
    'Batch',
    'BatchStage',
    'QualityCheck',
    'ReworkItem',
    'ReworkResolution',
]
