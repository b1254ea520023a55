"""
ReworkItem model — Quantity pulled out of the main flow for remedial work.
"""

from dataclasses import dataclass

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from batchman.models.enums import ReworkStatus


@dataclass(frozen=True)
class ReworkResolution:
    """Final disposition of a rework item."""

    passed: int
    rejected: int
    notes: str = ''


class ReworkItem(models.Model):
    """
    Rework sub-quantity of a batch.

    LIFECYCLE:

        ┌─────────┐    resolve()    ┌──────────┐
        │ PENDING │ ──────────────► │ RESOLVED │
        └─────────┘                 └──────────┘

    Created by a quality check that sends units to rework. Resolved
    exactly once into passed + rejected == quantity; resolved units are
    never split again. Resolution does not reopen the stage the item
    came from.
    """

    batch = models.ForeignKey(
        'batchman.Batch',
        on_delete=models.PROTECT,
        related_name='rework_items',
        verbose_name=_('Lote'),
    )
    quality_check = models.ForeignKey(
        'batchman.QualityCheck',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='rework_items',
        verbose_name=_('Inspeção de Origem'),
    )

    # Origin stage identity (copied, the stage record may be far behind)
    stage_id = models.CharField(max_length=100, verbose_name=_('Etapa'))
    stage_name = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Nome da Etapa'))

    quantity = models.PositiveIntegerField(verbose_name=_('Quantidade'))
    reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Motivo'))

    status = models.CharField(
        max_length=20,
        choices=ReworkStatus.choices,
        default=ReworkStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )

    # Resolution (filled once)
    resolved_passed = models.PositiveIntegerField(null=True, blank=True, verbose_name=_('Aprovado'))
    resolved_rejected = models.PositiveIntegerField(null=True, blank=True, verbose_name=_('Rejeitado'))
    resolution_notes = models.TextField(blank=True, default='', verbose_name=_('Observações da Resolução'))

    created_at = models.DateTimeField(default=timezone.now)
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Resolvido em'))
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Resolvido por'),
    )

    class Meta:
        verbose_name = _('Item de Retrabalho')
        verbose_name_plural = _('Itens de Retrabalho')
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['batch', 'status'], name='batchman_rework_batch_st_idx'),
        ]

    @property
    def is_pending(self) -> bool:
        return self.status == ReworkStatus.PENDING

    @property
    def resolution(self) -> ReworkResolution | None:
        if self.status != ReworkStatus.RESOLVED:
            return None
        return ReworkResolution(
            passed=self.resolved_passed,
            rejected=self.resolved_rejected,
            notes=self.resolution_notes,
        )

    @property
    def rework_id(self) -> str:
        """Return rework identifier in standard format."""
        return f"rework:{self.pk}"

    def __str__(self) -> str:
        status_emoji = {
            ReworkStatus.PENDING: '⏳',
            ReworkStatus.RESOLVED: '✅',
        }
        emoji = status_emoji.get(self.status, '?')
        return f"{emoji} {self.quantity}x {self.stage_name or self.stage_id}"
