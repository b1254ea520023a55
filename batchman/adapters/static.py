"""
Static Workflow Source — In-memory adapter for development and testing.

Workflows are registered in process memory and looked up by id:

    StaticWorkflowSource.register(WorkflowDefinition(
        workflow_id='bread',
        stages=(StageSpec('mix', 'Mistura', 1), StageSpec('bake', 'Forno', 2)),
    ))

Usage in settings.py:
    BATCHMAN = {
        "WORKFLOW_SOURCE": "batchman.adapters.static.StaticWorkflowSource",
    }

WARNING: The registry lives in process memory. It is not shared between
workers and is lost on restart.
"""

from __future__ import annotations

from batchman.protocols.workflow import WorkflowDefinition


class StaticWorkflowSource:
    """
    Workflow source backed by a class-level dict.

    Implements the ``WorkflowSource`` protocol without any external
    dependencies, suitable for local development and tests.
    """

    _workflows: dict[str, WorkflowDefinition] = {}

    @classmethod
    def register(cls, workflow: WorkflowDefinition) -> WorkflowDefinition:
        """Register (or replace) a workflow under its workflow_id."""
        workflow.validate()
        cls._workflows[workflow.workflow_id] = workflow
        return workflow

    @classmethod
    def clear(cls) -> None:
        """Forget all registered workflows."""
        cls._workflows.clear()

    def get_workflow(self, workflow_ref: str) -> WorkflowDefinition | None:
        return self._workflows.get(workflow_ref)
