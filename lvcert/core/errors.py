# lvcert/core/errors.py
"""
Erros de negócio do subsistema de certificados.

Cada classe carrega o código estável e o status HTTP que o handler em
``lvcert.main`` devolve ao cliente, de forma que o chamador consiga distinguir
"nada aconteceu" (validação / não encontrado / pré-condição), "aconteceu em
parte" (lote parcial, 200 com contagens) e "tente de novo" (transiente).
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional


class CertificateServiceError(Exception):
    code = "ERROR"
    status_code = 400
    retryable = False

    def __init__(self, message: str, *, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationFailed(CertificateServiceError):
    code = "VALIDATION_ERROR"
    status_code = 422

    @classmethod
    def field(cls, field: str, reason: str) -> "ValidationFailed":
        return cls(f"Invalid {field}: {reason}", details=[{"field": field, "reason": reason}])


class NotFound(CertificateServiceError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any = None, *, message: Optional[str] = None):
        super().__init__(
            message or f"{entity.capitalize()} not found",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class PreconditionFailed(CertificateServiceError):
    code = "PRECONDITION_FAILED"
    status_code = 409

    def __init__(self, rule: str, message: str, **context: Any):
        super().__init__(message, details={"rule": rule, **context})
        self.rule = rule


class TransientError(CertificateServiceError):
    code = "TRANSIENT_ERROR"
    status_code = 503
    retryable = True


class BulkOperationFailed(CertificateServiceError):
    code = "BULK_OPERATION_FAILED"
    status_code = 409

    def __init__(self, message: str, *, revoked_count: int, total_count: int, items: List[Dict[str, Any]]):
        super().__init__(
            message,
            details={"revoked_count": revoked_count, "total_count": total_count, "items": items},
        )
