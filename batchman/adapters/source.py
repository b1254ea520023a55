"""
Workflow source loader.

Loads the configured WorkflowSource from settings.

Usage:
    from batchman.adapters import get_workflow_source

    source = get_workflow_source()
    workflow = source.get_workflow("bread-line")

Settings:
    BATCHMAN = {
        "WORKFLOW_SOURCE": "recipes.adapters.RecipeWorkflowSource",
    }

If WORKFLOW_SOURCE is not configured, get_workflow_source() raises ImproperlyConfigured.
"""

from __future__ import annotations

import logging
import threading

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from batchman.conf import batchman_settings
from batchman.protocols.workflow import WorkflowSource

logger = logging.getLogger(__name__)


# Cached source instance
_lock = threading.Lock()
_workflow_source: WorkflowSource | None = None


def get_workflow_source() -> WorkflowSource:
    """
    Return the configured workflow source.

    Raises:
        ImproperlyConfigured: If WORKFLOW_SOURCE is not configured or import fails
    """
    global _workflow_source

    if _workflow_source is None:
        with _lock:
            if _workflow_source is None:  # double-checked
                source_path = batchman_settings.WORKFLOW_SOURCE

                if not source_path:
                    raise ImproperlyConfigured(
                        "BATCHMAN['WORKFLOW_SOURCE'] must be configured. "
                        "Example: 'batchman.adapters.static.StaticWorkflowSource'"
                    )

                try:
                    source_class = import_string(source_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import workflow source '{source_path}': {e}"
                    ) from e

                source = source_class()
                if not isinstance(source, WorkflowSource):
                    raise ImproperlyConfigured(
                        f"'{source_path}' does not implement WorkflowSource"
                    )
                _workflow_source = source
                logger.debug("Loaded workflow source: %s", source_path)

    return _workflow_source


def reset_workflow_source() -> None:
    """Reset the cached source. Useful for testing."""
    global _workflow_source
    _workflow_source = None
