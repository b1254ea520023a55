"""
Tests for batch invariants: conservation, ledger folding, immutability
and concurrency guards.
"""

import pytest
from django.db import transaction
from django.db.models import F

from batchman import batches, BatchStatus, ConflictError, InvariantViolation
from batchman.models import Batch, QualityCheck
from batchman.services.locking import commit_batch, lock_batch
from batchman.stage import AtStage


pytestmark = pytest.mark.django_db


def assert_conserved(snap):
    total = (
        snap.quantity_produced
        + snap.quantity_rejected
        + snap.quantity_in_rework
        + snap.quantity_at_stage
    )
    assert total == snap.quantity_planned
    assert snap.quantity_in_rework == sum(r.quantity for r in snap.pending_rework)


class TestConservation:
    """planned == produced + rejected + in_rework + at_stage, always."""

    @pytest.mark.parametrize('planned, rework_every, reject_every', [
        (100, 5, 10),
        (37, 3, 7),
        (1, 0, 0),
        (250, 2, 0),
        (9, 0, 1),
    ])
    def test_conserved_through_full_run(self, three_stage_workflow, planned, rework_every, reject_every):
        """Split every stage, resolve all rework; totals hold after each step."""
        snap = batches.create(planned, three_stage_workflow)
        assert_conserved(snap)
        orders = []

        while isinstance(snap.current_stage, AtStage):
            stage = snap.current_stage
            orders.append(stage.sequence_order)
            qty = stage.quantity
            rework = qty // rework_every if rework_every else 0
            rejected = qty // reject_every if reject_every else 0
            rejected = min(rejected, qty - rework)
            passed = qty - rework - rejected

            snap = batches.perform_quality_check(snap.id, stage.stage_id, passed, rework, rejected)
            assert_conserved(snap)

        assert orders == sorted(orders)

        for item in snap.pending_rework:
            half = item.quantity // 2
            snap = batches.resolve_rework_item(snap.id, item.id, half, item.quantity - half)
            assert_conserved(snap)

        assert snap.status == BatchStatus.COMPLETED
        assert snap.quantity_produced + snap.quantity_rejected == planned

    def test_stored_counters_match_ledger(self, batch):
        batches.perform_quality_check(batch.id, 'stage1', 80, 15, 5)
        batches.perform_quality_check(batch.id, 'stage2', 70, 6, 4)

        obj = Batch.objects.get(pk=batch.id)

        assert obj.folded_counters() == obj.cached_counters() == {
            'produced': 70,
            'rejected': 9,
            'in_rework': 21,
            'at_stage': 0,
        }
        obj.check_invariants()


class TestCommitGuards:
    """commit_batch() refuses inconsistent or stale writes."""

    def test_broken_conservation_rolls_back(self, batch):
        with pytest.raises(InvariantViolation) as exc:
            with transaction.atomic():
                locked = lock_batch(batch.id)
                locked.quantity_produced += 1
                commit_batch(locked)

        assert exc.value.code == 'CONSERVATION_BROKEN'
        obj = Batch.objects.get(pk=batch.id)
        assert obj.quantity_produced == 0
        assert obj.version == 0

    def test_ledger_drift_detected_on_commit(self, batch):
        """Counters that conserve but disagree with history are refused."""
        batches.perform_quality_check(batch.id, 'stage1', 80, 15, 5)

        with pytest.raises(InvariantViolation) as exc:
            with transaction.atomic():
                locked = lock_batch(batch.id)
                locked.quantity_rejected -= 5
                locked.current_stage_quantity += 5
                commit_batch(locked)

        assert exc.value.code == 'COUNTER_DRIFT'

    def test_stage_regression_refused(self, batch):
        batches.perform_quality_check(batch.id, 'stage1', 80, 15, 5)
        obj = Batch.objects.get(pk=batch.id)

        with pytest.raises(InvariantViolation) as exc:
            obj.set_stage(AtStage('stage1', 'Corte', 1, 80))

        assert exc.value.code == 'STAGE_REGRESSION'

    def test_version_changed_under_writer(self, batch):
        """Compare-and-swap on version catches a write that slipped past the lock."""
        with pytest.raises(ConflictError) as exc:
            with transaction.atomic():
                locked = lock_batch(batch.id)
                Batch.objects.filter(pk=batch.id).update(version=F('version') + 1)
                commit_batch(locked)

        assert exc.value.code == 'CONCURRENT_MODIFICATION'
        assert exc.value.expected == 0
        assert exc.value.current_version == 1

    def test_lock_with_stale_version(self, batch):
        batches.perform_quality_check(batch.id, 'stage1', 100, 0, 0)

        with pytest.raises(ConflictError):
            with transaction.atomic():
                lock_batch(batch.id, expected_version=0)


class TestLedgerRepair:
    """check_invariants() / recalculate() on a batch edited behind the service."""

    @pytest.fixture
    def drifted(self, batch):
        batches.perform_quality_check(batch.id, 'stage1', 80, 15, 5)
        Batch.objects.filter(pk=batch.id).update(quantity_rejected=0, current_stage_quantity=85)
        return Batch.objects.get(pk=batch.id)

    def test_drift_detected(self, drifted):
        with pytest.raises(InvariantViolation) as exc:
            drifted.check_invariants()

        assert exc.value.code == 'COUNTER_DRIFT'
        assert exc.value.expected['rejected'] == 5
        assert exc.value.received['rejected'] == 0

    def test_drift_invisible_without_ledger(self, drifted):
        """Conservation alone can't see it."""
        drifted.check_invariants(verify_ledger=False)

    def test_recalculate_repairs(self, drifted):
        diff = drifted.recalculate()

        assert diff == {'rejected': 5, 'at_stage': -5}
        obj = Batch.objects.get(pk=drifted.pk)
        assert obj.quantity_rejected == 5
        assert obj.current_stage_quantity == 80
        obj.check_invariants()

    def test_recalculate_in_sync(self, batch):
        obj = Batch.objects.get(pk=batch.id)

        assert obj.recalculate() == {}

    def test_verify_ledger_setting(self, drifted, settings):
        """With VERIFY_LEDGER off, service mutations only check conservation."""
        settings.BATCHMAN = {'VERIFY_LEDGER': False}

        snap = batches.perform_quality_check(drifted.pk, 'stage2', 85, 0, 0)

        assert snap.quantity_produced == 85


class TestHistoryImmutability:
    """Quality checks are never updated or deleted."""

    def test_check_cannot_be_saved_twice(self, batch):
        batches.perform_quality_check(batch.id, 'stage1', 80, 15, 5)
        check = QualityCheck.objects.get(batch_id=batch.id)
        check.passed = 95

        with pytest.raises(ValueError):
            check.save()

    def test_check_cannot_be_deleted(self, batch):
        batches.perform_quality_check(batch.id, 'stage1', 80, 15, 5)
        check = QualityCheck.objects.get(batch_id=batch.id)

        with pytest.raises(ValueError):
            check.delete()

        assert QualityCheck.objects.filter(pk=check.pk).exists()

    def test_check_disposition_must_add_up(self, batch):
        obj = Batch.objects.get(pk=batch.id)

        with pytest.raises(ValueError):
            QualityCheck.objects.create(
                batch=obj,
                stage=obj.stages_history.get(),
                quantity=100, passed=50, rework=0, rejected=0,
            )
