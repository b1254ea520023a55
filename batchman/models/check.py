"""
QualityCheck model — Immutable record of a disposition at a stage.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from batchman.models.enums import CheckResult


def derive_result(passed: int, rework: int, rejected: int) -> str:
    """Overall outcome of a disposition."""
    if rework == 0 and rejected == 0:
        return CheckResult.PASS
    if passed == 0 and rework == 0:
        return CheckResult.FAIL
    if passed == 0 and rejected == 0:
        return CheckResult.REWORK
    return CheckResult.PARTIAL


class QualityCheck(models.Model):
    """
    Disposition of the quantity held at a stage.

    Rules:
    - NEVER update() or delete()
    - passed + rework + rejected == quantity, exactly
    - samples_data is stored as received, never interpreted

    Together with rework resolutions this is the history the batch
    counters are folded from.
    """

    batch = models.ForeignKey(
        'batchman.Batch',
        on_delete=models.PROTECT,
        related_name='quality_checks',
        verbose_name=_('Lote'),
    )
    stage = models.ForeignKey(
        'batchman.BatchStage',
        on_delete=models.PROTECT,
        related_name='quality_checks',
        verbose_name=_('Etapa'),
    )

    quantity = models.PositiveIntegerField(verbose_name=_('Quantidade Inspecionada'))
    passed = models.PositiveIntegerField(verbose_name=_('Aprovado'))
    rework = models.PositiveIntegerField(verbose_name=_('Retrabalho'))
    rejected = models.PositiveIntegerField(verbose_name=_('Rejeitado'))
    overall_result = models.CharField(
        max_length=20,
        choices=CheckResult.choices,
        verbose_name=_('Resultado'),
    )

    samples_data = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_('Amostras'),
        help_text=_('Parâmetro, especificação, valor observado e aprovação por amostra'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    rework_reason = models.CharField(
        max_length=255,
        blank=True,
        default='',
        verbose_name=_('Motivo do Retrabalho'),
    )

    check_date = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Inspetor'),
    )

    class Meta:
        verbose_name = _('Inspeção de Qualidade')
        verbose_name_plural = _('Inspeções de Qualidade')
        ordering = ['check_date']
        indexes = [
            models.Index(fields=['batch', 'check_date'], name='batchman_check_batch_date_idx'),
        ]

    def save(self, *args, **kwargs):
        """Save once. Corrections are not possible, the batch has moved on."""
        if self.pk:
            raise ValueError("Inspeções são imutáveis.")

        if self.passed + self.rework + self.rejected != self.quantity:
            raise ValueError(
                f"Disposição {self.passed}+{self.rework}+{self.rejected} "
                f"não confere com a quantidade {self.quantity}"
            )

        if not self.overall_result:
            self.overall_result = derive_result(self.passed, self.rework, self.rejected)

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion — checks are immutable."""
        raise ValueError("Inspeções são imutáveis.")

    def __str__(self) -> str:
        return f"{self.stage} → {self.passed}/{self.rework}/{self.rejected}"
