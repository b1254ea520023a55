"""
Initial migration for Batchman models.
"""

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Batchman models: Batch, BatchStage, QualityCheck, ReworkItem."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Batch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=50, unique=True, verbose_name='Número do Lote')),
                ('lot_number', models.CharField(blank=True, default='', max_length=50, verbose_name='Lote de Rastreio')),
                ('workflow_ref', models.CharField(blank=True, default='', max_length=100, verbose_name='Fluxo')),
                ('workflow', models.JSONField(default=dict, help_text='Cópia das etapas no momento da criação do lote', verbose_name='Etapas do Fluxo')),
                ('quantity_planned', models.PositiveIntegerField(verbose_name='Quantidade Planejada')),
                ('quantity_produced', models.PositiveIntegerField(default=0, verbose_name='Quantidade Produzida')),
                ('quantity_rejected', models.PositiveIntegerField(default=0, verbose_name='Quantidade Rejeitada')),
                ('quantity_in_rework', models.PositiveIntegerField(default=0, verbose_name='Em Retrabalho')),
                ('current_stage_id', models.CharField(blank=True, default='', max_length=100, verbose_name='Etapa Atual')),
                ('current_stage_name', models.CharField(blank=True, default='', max_length=200)),
                ('current_stage_order', models.IntegerField(blank=True, null=True)),
                ('current_stage_quantity', models.PositiveIntegerField(blank=True, null=True, verbose_name='Quantidade na Etapa')),
                ('status', models.CharField(choices=[('in_progress', 'Em Produção'), ('on_hold', 'Em Espera'), ('completed', 'Concluído'), ('rejected', 'Rejeitado')], db_index=True, default='in_progress', max_length=20, verbose_name='Status')),
                ('version', models.PositiveIntegerField(default=0, help_text='Incrementada a cada alteração. Usada para detectar conflitos.', verbose_name='Versão')),
                ('rejection_reason', models.TextField(blank=True, default='', verbose_name='Motivo da Rejeição')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Concluído em')),
                ('rejected_at', models.DateTimeField(blank=True, null=True, verbose_name='Rejeitado em')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Criado por')),
            ],
            options={
                'verbose_name': 'Lote de Produção',
                'verbose_name_plural': 'Lotes de Produção',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', 'created_at'], name='batchman_batch_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='BatchStage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stage_id', models.CharField(max_length=100, verbose_name='Etapa')),
                ('stage_name', models.CharField(blank=True, default='', max_length=200, verbose_name='Nome da Etapa')),
                ('sequence_order', models.IntegerField(verbose_name='Ordem')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantidade Recebida')),
                ('status', models.CharField(choices=[('in_progress', 'Em Andamento'), ('completed', 'Concluída')], default='in_progress', max_length=20, verbose_name='Status')),
                ('started_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Início')),
                ('ended_at', models.DateTimeField(blank=True, null=True, verbose_name='Fim')),
                ('batch', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stages_history', to='batchman.batch', verbose_name='Lote')),
            ],
            options={
                'verbose_name': 'Etapa do Lote',
                'verbose_name_plural': 'Etapas do Lote',
                'ordering': ['batch', 'sequence_order'],
                'constraints': [models.UniqueConstraint(fields=('batch', 'stage_id'), name='unique_batch_stage')],
            },
        ),
        migrations.CreateModel(
            name='QualityCheck',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantidade Inspecionada')),
                ('passed', models.PositiveIntegerField(verbose_name='Aprovado')),
                ('rework', models.PositiveIntegerField(verbose_name='Retrabalho')),
                ('rejected', models.PositiveIntegerField(verbose_name='Rejeitado')),
                ('overall_result', models.CharField(choices=[('pass', 'Aprovado'), ('fail', 'Reprovado'), ('rework', 'Retrabalho'), ('partial', 'Parcial')], max_length=20, verbose_name='Resultado')),
                ('samples_data', models.JSONField(blank=True, default=list, help_text='Parâmetro, especificação, valor observado e aprovação por amostra', verbose_name='Amostras')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('rework_reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Motivo do Retrabalho')),
                ('check_date', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('batch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='quality_checks', to='batchman.batch', verbose_name='Lote')),
                ('stage', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='quality_checks', to='batchman.batchstage', verbose_name='Etapa')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Inspetor')),
            ],
            options={
                'verbose_name': 'Inspeção de Qualidade',
                'verbose_name_plural': 'Inspeções de Qualidade',
                'ordering': ['check_date'],
                'indexes': [models.Index(fields=['batch', 'check_date'], name='batchman_check_batch_date_idx')],
            },
        ),
        migrations.CreateModel(
            name='ReworkItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stage_id', models.CharField(max_length=100, verbose_name='Etapa')),
                ('stage_name', models.CharField(blank=True, default='', max_length=200, verbose_name='Nome da Etapa')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantidade')),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Motivo')),
                ('status', models.CharField(choices=[('pending', 'Pendente'), ('resolved', 'Resolvido')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('resolved_passed', models.PositiveIntegerField(blank=True, null=True, verbose_name='Aprovado')),
                ('resolved_rejected', models.PositiveIntegerField(blank=True, null=True, verbose_name='Rejeitado')),
                ('resolution_notes', models.TextField(blank=True, default='', verbose_name='Observações da Resolução')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Resolvido em')),
                ('batch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='rework_items', to='batchman.batch', verbose_name='Lote')),
                ('quality_check', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='rework_items', to='batchman.qualitycheck', verbose_name='Inspeção de Origem')),
                ('resolved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Resolvido por')),
            ],
            options={
                'verbose_name': 'Item de Retrabalho',
                'verbose_name_plural': 'Itens de Retrabalho',
                'ordering': ['created_at'],
                'indexes': [models.Index(fields=['batch', 'status'], name='batchman_rework_batch_st_idx')],
            },
        ),
    ]
