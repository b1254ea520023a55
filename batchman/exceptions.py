"""
Exceptions for Batchman.

All errors are BatchError subclasses with a structured code for
programmatic handling:

- ValidationError: bad input or a stale reference. Nothing was changed,
  resubmit with corrected values.
- ConflictError: the batch changed under the caller. Refetch and retry.
- InvariantViolation: internal defect. The mutation was rolled back.
"""

from typing import Any


class BatchError(Exception):
    """
    Structured exception for batch operations.

    Usage:
        try:
            batches.perform_quality_check(batch.pk, 'cut', 81, 0, 0)
        except BatchError as e:
            if e.code == 'DISPOSITION_MISMATCH':
                print(f"Esperado {e.expected}, recebido {e.received}")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    @property
    def expected(self) -> Any:
        """Shortcut for data['expected']."""
        return self.data.get('expected')

    @property
    def received(self) -> Any:
        """Shortcut for data['received']."""
        return self.data.get('received')

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: v if isinstance(v, (int, str, bool, type(None), list, dict)) else str(v)
                for k, v in self.data.items()
            },
        }


class ValidationError(BatchError):
    """Rejected before any mutation. Fully recoverable by resubmission."""

    _default_messages = {
        'INVALID_QUANTITY': 'Quantidade inválida (deve ser inteiro não negativo)',
        'DISPOSITION_MISMATCH': 'A soma da disposição não corresponde à quantidade',
        'STALE_STAGE': 'Etapa informada não é a etapa ativa do lote',
        'STAGE_NOT_FOUND': 'Etapa não existe no fluxo do lote',
        'INVALID_STATUS': 'Status inválido para esta operação',
        'ALREADY_RESOLVED': 'Item de retrabalho já resolvido',
        'REWORK_NOT_FOUND': 'Item de retrabalho não encontrado',
        'BATCH_NOT_FOUND': 'Lote não encontrado',
        'INVALID_WORKFLOW': 'Fluxo de produção inválido',
        'WORKFLOW_NOT_FOUND': 'Fluxo de produção não encontrado',
        'INVALID_SAMPLES': 'Dados de amostras inválidos',
        'REASON_REQUIRED': 'Motivo é obrigatório',
        'QUALITY_CHECK_REQUIRED': 'Etapa exige inspeção de qualidade',
        'DUPLICATE_CODE': 'Código de lote já existe',
    }


class ConflictError(BatchError):
    """Concurrent modification detected. Refetch the batch and retry."""

    _default_messages = {
        'CONCURRENT_MODIFICATION': 'Modificação concorrente detectada',
    }

    @property
    def current_version(self) -> int | None:
        """Shortcut for data['current_version']."""
        return self.data.get('current_version')


class InvariantViolation(BatchError):
    """Post-mutation counters broke an invariant. Treat as a defect."""

    _default_messages = {
        'CONSERVATION_BROKEN': 'Quantidade planejada não confere com os saldos',
        'COUNTER_DRIFT': 'Saldos divergem do histórico de inspeções',
        'NEGATIVE_COUNTER': 'Saldo negativo',
        'DISPOSITION_BROKEN': 'Disposição registrada não confere com a quantidade',
        'STAGE_REGRESSION': 'Etapa ativa não pode retroceder',
        'MISSING_STAGE_RECORD': 'Registro da etapa ativa não encontrado',
    }
