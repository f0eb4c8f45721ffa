from __future__ import annotations

from datetime import date, datetime
import enum
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from traineedb.apps.accounts.models import AccountRole
from traineedb.apps.audit import services as audit_services

from .errors import InvalidStateError, ValidationError
from .registry import WORKFLOWS

logger = logging.getLogger(__name__)


def _state_key(state: Any) -> str:
    if isinstance(state, enum.Enum):
        return str(state.value)
    return str(state)


def _json_safe(values: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, enum.Enum):
            out[key] = value.value
        elif isinstance(value, (datetime, date)):
            out[key] = value.isoformat()
        else:
            out[key] = value
    return out


def check_transition(
    db: Session,
    *,
    entity_type: str,
    from_state: Any,
    to_state: Any,
    before_obj: Any,
    after_obj: Any,
) -> None:
    """
    Validate a transition against the registry and run its guards.

    Raises InvalidStateError when the move is not allowed from the current
    state and ValidationError when a guard reports missing requirements.
    """
    workflow = WORKFLOWS.get(entity_type)
    if not workflow:
        raise InvalidStateError(f"No workflow registered for {entity_type}", field="entity_type")

    source, target = _state_key(from_state), _state_key(to_state)
    allowed = workflow.get("transitions", {}).get(source, {})
    guards = allowed.get(target)
    if guards is None:
        raise InvalidStateError(f"Cannot transition {entity_type} from {source} to {target}")

    failures: List[Dict[str, str]] = []
    for guard in guards:
        failures.extend(
            guard(
                db,
                before_obj=before_obj,
                after_obj=after_obj,
                from_state=source,
                to_state=target,
            )
        )
    if failures:
        raise ValidationError(failures)


def conditional_update(
    db: Session,
    entity: Any,
    *,
    expected_status: Any,
    values: Dict[str, Any],
) -> bool:
    """
    UPDATE ... WHERE id = :id AND status = :expected_status.

    Returns False when no row matched, i.e. another writer moved the entity
    out of the expected state after it was read.
    """
    model = type(entity)
    stmt = (
        update(model)
        .where(model.id == entity.id, model.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    return result.rowcount == 1


def apply_transition(
    db: Session,
    *,
    actor_id: Optional[int],
    actor_role: Optional[AccountRole],
    entity_type: str,
    entity: Any,
    to_state: Any,
    changes: Optional[Dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> Any:
    """
    Move `entity` to `to_state`, writing `changes` in the same statement.

    The status read from `entity` is the expected prior status of the
    conditional update, so two writers racing on the same row cannot both
    succeed. The transition is recorded as an audit event.
    """
    changes = dict(changes or {})
    from_state = entity.status
    after_obj = {**changes, "status": to_state}

    check_transition(
        db,
        entity_type=entity_type,
        from_state=from_state,
        to_state=to_state,
        before_obj=entity,
        after_obj=after_obj,
    )

    if not conditional_update(db, entity, expected_status=from_state, values=after_obj):
        logger.info(
            "Conditional update lost race",
            extra={"entity_type": entity_type, "entity_id": entity.id, "expected": _state_key(from_state)},
        )
        raise InvalidStateError(
            f"{entity_type} {entity.id} is no longer {_state_key(from_state)}; it was changed by another request"
        )

    db.refresh(entity)

    audit_services.log_event(
        db,
        actor_id=actor_id,
        actor_role=actor_role,
        entity_type=entity_type,
        entity_id=str(entity.id),
        action="transition",
        before={"status": _state_key(from_state)},
        after=_json_safe(after_obj),
        correlation_id=correlation_id,
        metadata={"workflow": entity_type},
        critical=True,
    )
    return entity
