"""
Batch model — a production run moving through a linear workflow.

A Batch is created with a planned quantity and a snapshot of the workflow
stages. From then on only two things change it:

- a quality check at the active stage (QualityCheckEngine)
- the resolution of a rework item (ReworkTracker)

Counters are a cache over the append-only history (quality checks and
rework resolutions), the same way Quant._quantity caches the Move ledger
in a stock app. folded_counters() rebuilds them from history and
check_invariants() compares both.

Usage:
    snapshot = batches.create(100, workflow)
    batch = Batch.objects.get(pk=snapshot.id)
    batch.stage          # AtStage(stage_id='mix', ..., quantity=100)
    batch.check_invariants()
"""

import logging

from django.conf import settings
from django.db import models
from django.db.models import F, Sum
from django.utils.translation import gettext_lazy as _

from batchman.exceptions import InvariantViolation
from batchman.models.enums import BatchStatus, ReworkStatus
from batchman.protocols.workflow import StageSpec, WorkflowDefinition
from batchman.stage import ActiveStage, AtStage, NoActiveStage

logger = logging.getLogger('batchman')


class BatchQuerySet(models.QuerySet):
    """Custom QuerySet for Batch with convenience filters."""

    def in_progress(self):
        return self.filter(status=BatchStatus.IN_PROGRESS)

    def on_hold(self):
        return self.filter(status=BatchStatus.ON_HOLD)

    def open(self):
        """Batches that can still change (not completed, not rejected)."""
        return self.filter(status__in=[BatchStatus.IN_PROGRESS, BatchStatus.ON_HOLD])

    def with_pending_rework(self):
        return self.filter(rework_items__status=ReworkStatus.PENDING).distinct()


class Batch(models.Model):
    """
    Production batch (aggregate root).

    Conservation rule, after every mutation:

        quantity_planned == quantity_produced
                          + quantity_rejected
                          + quantity_in_rework
                          + quantity at the active stage (0 if none)
    """

    code = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_('Número do Lote'),
    )
    lot_number = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Lote de Rastreio'),
    )

    # Workflow snapshot (taken at creation, never changes)
    workflow_ref = models.CharField(
        max_length=100,
        blank=True,
        default='',
        verbose_name=_('Fluxo'),
    )
    workflow = models.JSONField(
        default=dict,
        verbose_name=_('Etapas do Fluxo'),
        help_text=_('Cópia das etapas no momento da criação do lote'),
    )

    # Quantity counters (cache over check/rework history)
    quantity_planned = models.PositiveIntegerField(verbose_name=_('Quantidade Planejada'))
    quantity_produced = models.PositiveIntegerField(default=0, verbose_name=_('Quantidade Produzida'))
    quantity_rejected = models.PositiveIntegerField(default=0, verbose_name=_('Quantidade Rejeitada'))
    quantity_in_rework = models.PositiveIntegerField(default=0, verbose_name=_('Em Retrabalho'))

    # Active stage (all empty = no active stage)
    current_stage_id = models.CharField(
        max_length=100,
        blank=True,
        default='',
        verbose_name=_('Etapa Atual'),
    )
    current_stage_name = models.CharField(max_length=200, blank=True, default='')
    current_stage_order = models.IntegerField(null=True, blank=True)
    current_stage_quantity = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Quantidade na Etapa'),
    )

    status = models.CharField(
        max_length=20,
        choices=BatchStatus.choices,
        default=BatchStatus.IN_PROGRESS,
        db_index=True,
        verbose_name=_('Status'),
    )
    version = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Versão'),
        help_text=_('Incrementada a cada alteração. Usada para detectar conflitos.'),
    )

    rejection_reason = models.TextField(blank=True, default='', verbose_name=_('Motivo da Rejeição'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Criado por'),
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Criado em'))
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Concluído em'))
    rejected_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Rejeitado em'))

    objects = BatchQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lote de Produção')
        verbose_name_plural = _('Lotes de Produção')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='batchman_batch_status_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # WORKFLOW SNAPSHOT
    # ══════════════════════════════════════════════════════════════

    @property
    def workflow_definition(self) -> WorkflowDefinition:
        return WorkflowDefinition.from_snapshot(self.workflow)

    @property
    def stage_specs(self) -> list[StageSpec]:
        """Snapshot stages in ascending sequence_order."""
        return self.workflow_definition.ordered()

    def stage_spec(self, stage_id: str) -> StageSpec | None:
        for spec in self.stage_specs:
            if spec.stage_id == stage_id:
                return spec
        return None

    def next_stage_spec(self, stage_id: str) -> StageSpec | None:
        """Stage after `stage_id` in sequence order, None if it is the last."""
        specs = self.stage_specs
        for index, spec in enumerate(specs):
            if spec.stage_id == stage_id:
                return specs[index + 1] if index + 1 < len(specs) else None
        return None

    @property
    def last_stage_order(self) -> int | None:
        specs = self.stage_specs
        return specs[-1].sequence_order if specs else None

    # ══════════════════════════════════════════════════════════════
    # ACTIVE STAGE
    # ══════════════════════════════════════════════════════════════

    @property
    def stage(self) -> ActiveStage:
        """Active stage as an explicit variant."""
        if not self.current_stage_id:
            return NoActiveStage()
        return AtStage(
            stage_id=self.current_stage_id,
            name=self.current_stage_name,
            sequence_order=self.current_stage_order,
            quantity=self.current_stage_quantity or 0,
        )

    def set_stage(self, stage: ActiveStage) -> None:
        """
        Move the active stage pointer (in memory, caller saves).

        Raises:
            InvariantViolation('STAGE_REGRESSION'): If the new stage comes
                before the current one
        """
        if isinstance(stage, AtStage):
            current = self.stage
            if isinstance(current, AtStage) and stage.sequence_order < current.sequence_order:
                raise InvariantViolation(
                    'STAGE_REGRESSION',
                    batch=self.code,
                    current=current.sequence_order,
                    requested=stage.sequence_order,
                )
            self.current_stage_id = stage.stage_id
            self.current_stage_name = stage.name
            self.current_stage_order = stage.sequence_order
            self.current_stage_quantity = stage.quantity
        else:
            self.current_stage_id = ''
            self.current_stage_name = ''
            self.current_stage_order = None
            self.current_stage_quantity = None

    @property
    def quantity_at_stage(self) -> int:
        return self.stage.quantity

    # ══════════════════════════════════════════════════════════════
    # REWORK
    # ══════════════════════════════════════════════════════════════

    @property
    def pending_rework_quantity(self) -> int:
        return self.rework_items.filter(status=ReworkStatus.PENDING).aggregate(
            t=Sum('quantity')
        )['t'] or 0

    @property
    def pending_rework_count(self) -> int:
        return self.rework_items.filter(status=ReworkStatus.PENDING).count()

    @property
    def is_terminal(self) -> bool:
        return self.status in [BatchStatus.COMPLETED, BatchStatus.REJECTED]

    # ══════════════════════════════════════════════════════════════
    # LEDGER
    # ══════════════════════════════════════════════════════════════

    def folded_counters(self) -> dict[str, int]:
        """
        Rebuild counters from history.

        produced  = passed at the last stage + passed on resolved rework
        rejected  = rejected on every check + rejected on resolved rework
        in_rework = quantity of pending rework items
        at_stage  = planned if nothing was checked yet, else what the
                    latest check passed on (0 if it was the last stage)
        """
        last_order = self.last_stage_order
        checks = list(
            self.quality_checks.order_by('stage__sequence_order', 'check_date', 'pk')
            .values('stage__sequence_order', 'passed', 'rejected')
        )
        items = list(self.rework_items.values(
            'status', 'quantity', 'resolved_passed', 'resolved_rejected',
        ))

        produced = sum(
            c['passed'] for c in checks if c['stage__sequence_order'] == last_order
        )
        rejected = sum(c['rejected'] for c in checks)
        in_rework = 0
        for item in items:
            if item['status'] == ReworkStatus.PENDING:
                in_rework += item['quantity']
            else:
                produced += item['resolved_passed'] or 0
                rejected += item['resolved_rejected'] or 0

        if not checks:
            at_stage = self.quantity_planned if last_order is not None else 0
        elif checks[-1]['stage__sequence_order'] == last_order:
            at_stage = 0
        else:
            at_stage = checks[-1]['passed']

        return {
            'produced': produced,
            'rejected': rejected,
            'in_rework': in_rework,
            'at_stage': at_stage,
        }

    def cached_counters(self) -> dict[str, int]:
        return {
            'produced': self.quantity_produced,
            'rejected': self.quantity_rejected,
            'in_rework': self.quantity_in_rework,
            'at_stage': self.quantity_at_stage,
        }

    def check_invariants(self, verify_ledger: bool = True) -> None:
        """
        Verify counters against each other and against history.

        Reads the in-memory counters of this instance, so it can run
        after a mutation and before the commit.

        Raises:
            InvariantViolation: On the first broken rule
        """
        cached = self.cached_counters()

        negative = {k: v for k, v in cached.items() if v < 0}
        if negative:
            raise InvariantViolation('NEGATIVE_COUNTER', batch=self.code, counters=negative)

        total = sum(cached.values())
        if total != self.quantity_planned:
            raise InvariantViolation(
                'CONSERVATION_BROKEN',
                batch=self.code,
                expected=self.quantity_planned,
                received=total,
                counters=cached,
            )

        pending = self.pending_rework_quantity
        if pending != self.quantity_in_rework:
            raise InvariantViolation(
                'COUNTER_DRIFT',
                batch=self.code,
                expected=pending,
                received=self.quantity_in_rework,
                counter='in_rework',
            )

        broken_checks = self.quality_checks.exclude(
            quantity=F('passed') + F('rework') + F('rejected')
        )
        broken_rework = self.rework_items.filter(status=ReworkStatus.RESOLVED).exclude(
            quantity=F('resolved_passed') + F('resolved_rejected')
        )
        if broken_checks.exists() or broken_rework.exists():
            raise InvariantViolation(
                'DISPOSITION_BROKEN',
                batch=self.code,
                checks=list(broken_checks.values_list('pk', flat=True)),
                rework_items=list(broken_rework.values_list('pk', flat=True)),
            )

        if verify_ledger:
            folded = self.folded_counters()
            if folded != cached:
                raise InvariantViolation(
                    'COUNTER_DRIFT',
                    batch=self.code,
                    expected=folded,
                    received=cached,
                )

    def recalculate(self) -> dict[str, int]:
        """
        Rewrite cached counters from history.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency

        The active stage pointer is left alone; only its quantity is
        realigned.

        Returns:
            Differences per counter (folded - cached), empty when in sync
        """
        folded = self.folded_counters()
        cached = self.cached_counters()
        diff = {k: folded[k] - cached[k] for k in folded if folded[k] != cached[k]}

        if diff:
            self.quantity_produced = folded['produced']
            self.quantity_rejected = folded['rejected']
            self.quantity_in_rework = folded['in_rework']
            update_fields = ['quantity_produced', 'quantity_rejected',
                             'quantity_in_rework', 'updated_at']
            if self.current_stage_id:
                self.current_stage_quantity = folded['at_stage']
                update_fields.append('current_stage_quantity')
            self.save(update_fields=update_fields)

            logger.warning(
                "batch.recalculated",
                extra={"batch": self.code, "diff": diff},
            )

        return diff

    def __str__(self) -> str:
        return f"Lote {self.code} ({self.get_status_display()})"
