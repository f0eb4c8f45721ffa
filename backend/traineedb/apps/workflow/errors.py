from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

ErrorDetail = List[Dict[str, str]]


@dataclass(eq=False)
class WorkflowError(Exception):
    code: str
    detail: ErrorDetail

    status_code = 400

    def __str__(self) -> str:
        return "; ".join(f"{item.get('field')}: {item.get('reason')}" for item in self.detail) or self.code


class NotFoundError(WorkflowError):
    status_code = 404

    def __init__(self, entity_type: str, entity_id: Optional[object] = None, reason: Optional[str] = None):
        super().__init__(
            code="not_found",
            detail=[{"field": entity_type, "reason": reason or f"{entity_type} {entity_id} not found"}],
        )


class InvalidStateError(WorkflowError):
    status_code = 409

    def __init__(self, reason: str, field: str = "status"):
        super().__init__(code="invalid_transition", detail=[{"field": field, "reason": reason}])


class PreconditionError(WorkflowError):
    status_code = 400

    def __init__(self, field: str, reason: str):
        super().__init__(code="precondition_failed", detail=[{"field": field, "reason": reason}])


class ValidationError(WorkflowError):
    status_code = 422

    def __init__(self, detail: ErrorDetail):
        super().__init__(code="missing_requirements", detail=detail)

    @classmethod
    def single(cls, field: str, reason: str) -> "ValidationError":
        return cls([{"field": field, "reason": reason}])
