"""
Batch services — modular organization of batch operations.

Re-exports all service classes:
    from batchman.services import BatchQueries, BatchLifecycle, QualityCheckEngine, ReworkTracker
"""

from batchman.services.lifecycle import BatchLifecycle
from batchman.services.quality import QualityCheckEngine
from batchman.services.queries import BatchQueries
from batchman.services.rework import ReworkTracker

__all__ = [
    'BatchQueries',
    'BatchLifecycle',
    'QualityCheckEngine',
    'ReworkTracker',
]
