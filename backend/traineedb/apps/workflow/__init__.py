from .engine import apply_transition, check_transition, conditional_update
from .errors import InvalidStateError, NotFoundError, PreconditionError, ValidationError, WorkflowError
from .registry import WORKFLOWS

__all__ = [
    "InvalidStateError",
    "NotFoundError",
    "PreconditionError",
    "ValidationError",
    "WORKFLOWS",
    "WorkflowError",
    "apply_transition",
    "check_transition",
    "conditional_update",
]
