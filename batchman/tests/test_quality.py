"""
Tests for quality checks and stage advance.
"""

import pytest

from batchman import batches, BatchStatus, ConflictError, ValidationError
from batchman.models import BatchStage, CheckResult, QualityCheck, ReworkItem, StageStatus
from batchman.stage import AtStage, NoActiveStage


pytestmark = pytest.mark.django_db


class TestPerformQualityCheck:
    """Tests for batches.perform_quality_check()."""

    def test_check_records_history(self, batch, user):
        """Check is stored against the stage record, which is closed."""
        batches.perform_quality_check(
            batch.id, 'stage1', 80, 15, 5,
            notes='Lote com rebarbas', rework_reason='Rebarba', user=user,
        )

        check = QualityCheck.objects.get(batch_id=batch.id)
        assert check.stage.stage_id == 'stage1'
        assert check.quantity == 100
        assert (check.passed, check.rework, check.rejected) == (80, 15, 5)
        assert check.overall_result == CheckResult.PARTIAL
        assert check.user == user
        assert check.notes == 'Lote com rebarbas'

        record = BatchStage.objects.get(batch_id=batch.id, stage_id='stage1')
        assert record.status == StageStatus.COMPLETED
        assert record.ended_at is not None

        item = ReworkItem.objects.get(batch_id=batch.id)
        assert item.quality_check == check
        assert item.reason == 'Rebarba'

    def test_samples_are_echoed_verbatim(self, batch):
        """samples_data is stored and returned as given."""
        samples = [
            {'parameter': 'Espessura', 'specification': '2.0 ± 0.1 mm',
             'observed_value': '2.05', 'passed': True},
            {'parameter': 'Comprimento', 'specification': '300 mm',
             'observed_value': '297', 'passed': False, 'inspector_note': 'curto'},
        ]

        snap = batches.perform_quality_check(batch.id, 'stage1', 100, 0, 0, samples_data=samples)

        assert snap.stages_history[0].quality_checks[0].samples_data == samples

    @pytest.mark.parametrize('samples', ['texto', {'parameter': 'x'}, [1, 2], ['a']])
    def test_invalid_samples(self, batch, samples):
        with pytest.raises(ValidationError) as exc:
            batches.perform_quality_check(batch.id, 'stage1', 100, 0, 0, samples_data=samples)

        assert exc.value.code == 'INVALID_SAMPLES'

    @pytest.mark.parametrize('passed, rework, rejected, expected', [
        (100, 0, 0, CheckResult.PASS),
        (0, 0, 100, CheckResult.FAIL),
        (0, 100, 0, CheckResult.REWORK),
        (50, 0, 50, CheckResult.PARTIAL),
    ])
    def test_overall_result(self, batch, passed, rework, rejected, expected):
        batches.perform_quality_check(batch.id, 'stage1', passed, rework, rejected)

        assert QualityCheck.objects.get(batch_id=batch.id).overall_result == expected

    @pytest.mark.parametrize('passed, rework, rejected', [
        (-1, 0, 101),
        (100, 0, True),
        (99.5, 0.5, 0),
        ('100', 0, 0),
        (None, 0, 0),
    ])
    def test_invalid_quantities(self, batch, passed, rework, rejected):
        """Quantities must be non-negative integers."""
        with pytest.raises(ValidationError) as exc:
            batches.perform_quality_check(batch.id, 'stage1', passed, rework, rejected)

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_under_disposition(self, batch):
        """Every unit at the stage must be accounted for."""
        with pytest.raises(ValidationError) as exc:
            batches.perform_quality_check(batch.id, 'stage1', 50, 0, 0)

        assert exc.value.code == 'DISPOSITION_MISMATCH'
        assert exc.value.expected == 100
        assert exc.value.received == 50

    def test_failed_check_leaves_no_trace(self, batch):
        """A refused check writes nothing."""
        with pytest.raises(ValidationError):
            batches.perform_quality_check(batch.id, 'stage1', 60, 30, 20)

        assert QualityCheck.objects.count() == 0
        assert ReworkItem.objects.count() == 0
        assert BatchStage.objects.filter(batch_id=batch.id).count() == 1
        assert batches.get_batch(batch.id).version == 0

    def test_unknown_stage_is_stale(self, batch):
        with pytest.raises(ValidationError) as exc:
            batches.perform_quality_check(batch.id, 'stage9', 100, 0, 0)

        assert exc.value.code == 'STALE_STAGE'

    def test_skipping_ahead_is_stale(self, batch):
        """Checks for a later stage are refused too."""
        with pytest.raises(ValidationError) as exc:
            batches.perform_quality_check(batch.id, 'stage2', 100, 0, 0)

        assert exc.value.code == 'STALE_STAGE'
        assert exc.value.data['active'] == 'stage1'

    def test_completed_batch_refuses_checks(self, batch):
        batches.perform_quality_check(batch.id, 'stage1', 100, 0, 0)
        batches.perform_quality_check(batch.id, 'stage2', 100, 0, 0)

        with pytest.raises(ValidationError) as exc:
            batches.perform_quality_check(batch.id, 'stage2', 0, 0, 0)

        assert exc.value.code == 'INVALID_STATUS'

    def test_unknown_batch(self, db):
        with pytest.raises(ValidationError) as exc:
            batches.perform_quality_check(424242, 'stage1', 1, 0, 0)

        assert exc.value.code == 'BATCH_NOT_FOUND'

    def test_full_pass_through_all_stages(self, batch):
        """No rework, no rejects → COMPLETED straight away."""
        batches.perform_quality_check(batch.id, 'stage1', 100, 0, 0)
        snap = batches.perform_quality_check(batch.id, 'stage2', 100, 0, 0)

        assert snap.quantity_produced == 100
        assert snap.current_stage == NoActiveStage()
        assert snap.status == BatchStatus.COMPLETED

    def test_zero_passed_still_advances(self, batch):
        """Everything rejected at stage1 → stage2 is active with 0 units."""
        snap = batches.perform_quality_check(batch.id, 'stage1', 0, 0, 100)

        assert snap.current_stage == AtStage('stage2', 'Montagem', 2, 0)
        assert snap.status == BatchStatus.IN_PROGRESS

        snap = batches.perform_quality_check(batch.id, 'stage2', 0, 0, 0)

        assert snap.current_stage == NoActiveStage()
        assert snap.quantity_rejected == 100
        assert snap.quantity_produced == 0
        assert snap.status == BatchStatus.COMPLETED

    def test_all_to_rework_at_last_stage(self, batch):
        """Nothing produced yet, everything pending → ON_HOLD."""
        batches.perform_quality_check(batch.id, 'stage1', 100, 0, 0)
        snap = batches.perform_quality_check(batch.id, 'stage2', 0, 100, 0)

        assert snap.status == BatchStatus.ON_HOLD
        assert snap.quantity_in_rework == 100
        assert snap.quantity_produced == 0

    def test_version_increments(self, batch):
        snap = batches.perform_quality_check(batch.id, 'stage1', 80, 15, 5)

        assert snap.version == batch.version + 1

    def test_expected_version_conflict(self, batch):
        """A caller holding an old version gets ConflictError."""
        batches.perform_quality_check(batch.id, 'stage1', 80, 15, 5, expected_version=batch.version)

        with pytest.raises(ConflictError) as exc:
            batches.perform_quality_check(batch.id, 'stage2', 80, 0, 0, expected_version=batch.version)

        assert exc.value.code == 'CONCURRENT_MODIFICATION'
        assert exc.value.current_version == batch.version + 1
        assert batches.get_batch(batch.id).quantity_produced == 0

    def test_rework_reason_required_when_configured(self, batch, settings):
        settings.BATCHMAN = {'REQUIRE_REWORK_REASON': True}

        with pytest.raises(ValidationError) as exc:
            batches.perform_quality_check(batch.id, 'stage1', 80, 20, 0)

        assert exc.value.code == 'REASON_REQUIRED'

        snap = batches.perform_quality_check(batch.id, 'stage1', 80, 20, 0, rework_reason='Solda fria')
        assert snap.pending_rework[0].reason == 'Solda fria'

    def test_rework_reason_optional_by_default(self, batch):
        snap = batches.perform_quality_check(batch.id, 'stage1', 80, 20, 0)

        assert snap.pending_rework[0].reason == ''


class TestAdvanceStage:
    """Tests for batches.advance_stage() on stages without a quality gate."""

    @pytest.fixture
    def painted(self, three_stage_workflow):
        snap = batches.create(40, three_stage_workflow)
        return batches.perform_quality_check(snap.id, 'cut', 36, 4, 0)

    def test_advance_moves_everything_forward(self, painted):
        snap = batches.advance_stage(painted.id, 'paint', notes='Pintura eletrostática')

        assert snap.current_stage == AtStage('test', 'Teste Hidrostático', 30, 36)
        record = snap.stages_history[1]
        assert record.stage_id == 'paint'
        assert record.quality_checks[0].overall_result == CheckResult.PASS
        assert record.quality_checks[0].passed == 36

    def test_advance_gated_stage_refused(self, painted):
        """Stages that require inspection can't be skipped."""
        snap = batches.advance_stage(painted.id, 'paint')

        with pytest.raises(ValidationError) as exc:
            batches.advance_stage(snap.id, 'test')

        assert exc.value.code == 'QUALITY_CHECK_REQUIRED'

    def test_advance_wrong_stage(self, painted):
        with pytest.raises(ValidationError) as exc:
            batches.advance_stage(painted.id, 'cut')

        assert exc.value.code == 'STALE_STAGE'

    def test_ungated_stage_accepts_inspection(self, painted):
        """Optional inspection is still allowed on an ungated stage."""
        snap = batches.perform_quality_check(painted.id, 'paint', 30, 6, 0)

        assert snap.current_stage.quantity == 30
        assert snap.quantity_in_rework == 10

    def test_three_stage_run_completes(self, painted):
        batches.advance_stage(painted.id, 'paint')
        snap = batches.perform_quality_check(painted.id, 'test', 35, 0, 1)

        assert snap.status == BatchStatus.ON_HOLD
        assert snap.quantity_produced == 35

        snap = batches.resolve_rework_item(painted.id, snap.pending_rework[0].id, 4, 0)

        assert snap.status == BatchStatus.COMPLETED
        assert snap.quantity_produced == 39
        assert snap.quantity_rejected == 1
