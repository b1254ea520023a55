"""
Batchman Adapters.

Implementations of protocols for external systems.
"""

from batchman.adapters.source import get_workflow_source, reset_workflow_source
from batchman.adapters.static import StaticWorkflowSource

__all__ = [
    "StaticWorkflowSource",
    "get_workflow_source",
    "reset_workflow_source",
]
