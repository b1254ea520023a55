"""
BatchStage model — per-stage record of a batch's main flow.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from batchman.models.enums import StageStatus


class BatchStage(models.Model):
    """
    One row per stage the main flow has entered.

    Created IN_PROGRESS when the batch reaches the stage, closed as
    COMPLETED by the quality check that moves the batch on. `quantity`
    is what arrived at the stage and never changes afterwards.
    """

    batch = models.ForeignKey(
        'batchman.Batch',
        on_delete=models.CASCADE,
        related_name='stages_history',
        verbose_name=_('Lote'),
    )
    stage_id = models.CharField(max_length=100, verbose_name=_('Etapa'))
    stage_name = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Nome da Etapa'))
    sequence_order = models.IntegerField(verbose_name=_('Ordem'))
    quantity = models.PositiveIntegerField(verbose_name=_('Quantidade Recebida'))

    status = models.CharField(
        max_length=20,
        choices=StageStatus.choices,
        default=StageStatus.IN_PROGRESS,
        verbose_name=_('Status'),
    )
    started_at = models.DateTimeField(default=timezone.now, verbose_name=_('Início'))
    ended_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Fim'))

    class Meta:
        verbose_name = _('Etapa do Lote')
        verbose_name_plural = _('Etapas do Lote')
        ordering = ['batch', 'sequence_order']
        constraints = [
            models.UniqueConstraint(
                fields=['batch', 'stage_id'],
                name='unique_batch_stage',
            )
        ]

    @property
    def is_open(self) -> bool:
        return self.status == StageStatus.IN_PROGRESS

    def close(self, when=None) -> None:
        """Mark completed (in memory, caller saves)."""
        self.status = StageStatus.COMPLETED
        self.ended_at = when or timezone.now()

    def __str__(self) -> str:
        return f"{self.stage_name or self.stage_id} #{self.sequence_order} ({self.quantity})"
