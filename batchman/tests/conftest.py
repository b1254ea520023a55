"""
Pytest fixtures for Batchman tests.
"""

import pytest
from django.contrib.auth import get_user_model

from batchman import batches
from batchman.adapters import StaticWorkflowSource, reset_workflow_source
from batchman.protocols.workflow import ParameterSpec, StageSpec, WorkflowDefinition


User = get_user_model()


@pytest.fixture
def user(db):
    """Create a test user (quality inspector)."""
    return User.objects.create_user(
        username='inspetor',
        password='testpass123'
    )


@pytest.fixture
def workflow():
    """Two-stage workflow, both stages gated by a quality check."""
    return WorkflowDefinition(
        workflow_id='two-stage',
        name='Extintor — linha curta',
        stages=(
            StageSpec(
                stage_id='stage1',
                name='Corte',
                sequence_order=1,
                parameters=(
                    ParameterSpec('Espessura', '2.0 ± 0.1 mm'),
                    ParameterSpec('Comprimento', '300 mm'),
                ),
            ),
            StageSpec(stage_id='stage2', name='Montagem', sequence_order=2),
        ),
    )


@pytest.fixture
def three_stage_workflow():
    """Three stages; the middle one (painting) has no quality gate."""
    return WorkflowDefinition(
        workflow_id='three-stage',
        name='Extintor — linha completa',
        stages=(
            StageSpec(stage_id='cut', name='Corte', sequence_order=10),
            StageSpec(stage_id='paint', name='Pintura', sequence_order=20,
                      quality_check_required=False),
            StageSpec(stage_id='test', name='Teste Hidrostático', sequence_order=30),
        ),
    )


@pytest.fixture
def batch(db, workflow):
    """Batch of 100 units at stage1."""
    return batches.create(100, workflow, code='LOT-TEST-001')


@pytest.fixture
def static_source(settings):
    """Configure the in-memory workflow source for the test."""
    settings.BATCHMAN = {
        'WORKFLOW_SOURCE': 'batchman.adapters.static.StaticWorkflowSource',
    }
    reset_workflow_source()
    StaticWorkflowSource.clear()
    yield StaticWorkflowSource
    StaticWorkflowSource.clear()
    reset_workflow_source()
