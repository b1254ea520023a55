"""
Batchman Protocols.

Defines interfaces for external system integration.
"""

from batchman.protocols.workflow import (
    ParameterSpec,
    StageSpec,
    WorkflowDefinition,
    WorkflowSource,
)

__all__ = [
    "ParameterSpec",
    "StageSpec",
    "WorkflowDefinition",
    "WorkflowSource",
]
