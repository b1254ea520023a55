"""
Enums for Batchman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class BatchStatus(models.TextChoices):
    """
    Batch lifecycle status.

    IN_PROGRESS, ON_HOLD and COMPLETED are always derived (see
    batchman.status). REJECTED is set by an operator and is terminal.
    """
    IN_PROGRESS = 'in_progress', _('Em Produção')  # Main flow at a stage
    ON_HOLD = 'on_hold', _('Em Espera')            # Main flow done, rework pending
    COMPLETED = 'completed', _('Concluído')        # Nothing left to resolve
    REJECTED = 'rejected', _('Rejeitado')          # Operator decision


class StageStatus(models.TextChoices):
    """Per-stage record status."""
    IN_PROGRESS = 'in_progress', _('Em Andamento')
    COMPLETED = 'completed', _('Concluída')


class ReworkStatus(models.TextChoices):
    """Rework item lifecycle status."""
    PENDING = 'pending', _('Pendente')
    RESOLVED = 'resolved', _('Resolvido')


class CheckResult(models.TextChoices):
    """Overall outcome of a quality check, derived from its disposition."""
    PASS = 'pass', _('Aprovado')        # Everything passed
    FAIL = 'fail', _('Reprovado')       # Everything rejected
    REWORK = 'rework', _('Retrabalho')  # Everything sent to rework
    PARTIAL = 'partial', _('Parcial')   # Any mix
