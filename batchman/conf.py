"""
Batchman configuration.

Usage in settings.py:
    BATCHMAN = {
        "WORKFLOW_SOURCE": "batchman.adapters.static.StaticWorkflowSource",
        "BATCH_CODE_PREFIX": "LOT",
        "REQUIRE_REWORK_REASON": False,
        "VERIFY_LEDGER": True,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class BatchmanSettings:
    """Batchman configuration settings."""

    # Workflow source backend (dotted path)
    WORKFLOW_SOURCE: str = ""

    # Prefix for auto-generated batch codes
    BATCH_CODE_PREFIX: str = "LOT"

    # Refuse quality checks that send units to rework without a reason
    REQUIRE_REWORK_REASON: bool = False

    # Compare cached counters against the check/rework history on every mutation
    VERIFY_LEDGER: bool = True


def get_batchman_settings() -> BatchmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "BATCHMAN", {})
    return BatchmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in BatchmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_batchman_settings(), name)


batchman_settings = _LazySettings()
