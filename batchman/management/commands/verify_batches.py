"""
Management command to verify batch counters against their history.

Usage:
    python manage.py verify_batches
    python manage.py verify_batches --code LOT-0001
    python manage.py verify_batches --fix
"""

from django.core.management.base import BaseCommand

from batchman.exceptions import InvariantViolation
from batchman.models import Batch


class Command(BaseCommand):
    """Verify (and optionally fix) batch counters."""

    help = 'Confere os saldos dos lotes com o histórico de inspeções e retrabalho'

    def add_arguments(self, parser):
        parser.add_argument(
            '--code',
            help='Verifica apenas o lote com este código'
        )
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Reescreve os saldos a partir do histórico'
        )

    def handle(self, *args, **options):
        qs = Batch.objects.all()
        if options['code']:
            qs = qs.filter(code=options['code'])

        checked = 0
        broken = 0
        for batch in qs.iterator():
            checked += 1
            try:
                batch.check_invariants()
                continue
            except InvariantViolation as exc:
                broken += 1
                self.stdout.write(
                    self.style.WARNING(f'{batch.code}: [{exc.code}] {exc.message}')
                )

            if options['fix']:
                diff = batch.recalculate()
                self.stdout.write(f'{batch.code}: recalculado {diff}')

        if broken:
            self.stdout.write(
                self.style.WARNING(f'{broken} de {checked} lote(s) com divergência')
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(f'{checked} lote(s) verificado(s), nenhuma divergência')
            )
