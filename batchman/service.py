"""
Batch Service — The single public interface for all batch operations.

Usage:
    from batchman import batches, BatchError

    snap = batches.create(100, workflow)
    snap = batches.perform_quality_check(snap.id, 'mix', passed=80, rework=15, rejected=5)
    snap = batches.resolve_rework_item(snap.id, snap.rework_items[0].id, passed=10, rejected=5)
    batches.get_batch(snap.id).status
"""

from batchman.services.lifecycle import BatchLifecycle
from batchman.services.quality import QualityCheckEngine
from batchman.services.queries import BatchQueries
from batchman.services.rework import ReworkTracker


class Batches(BatchQueries, BatchLifecycle, QualityCheckEngine, ReworkTracker):
    """
    Single interface for all batch operations.

    Mutations (perform_quality_check, advance_stage, resolve_rework_item,
    reject) are serialized per batch: each runs in transaction.atomic(),
    locks the batch row and commits with a compare-and-swap on
    Batch.version. Pass expected_version to fail fast with ConflictError
    when working from a stale read.

    Every mutation returns a BatchSnapshot.
    """
