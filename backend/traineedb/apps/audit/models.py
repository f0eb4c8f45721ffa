from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum as SAEnum, Index, Integer, JSON, String, desc

from ...database import Base
from ..accounts.models import AccountRole


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(Base):
    """
    Append-only audit trail of workflow transitions.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_entity", "entity_type", "entity_id"),
        Index("ix_audit_events_action", "action"),
        Index("ix_audit_events_time_desc", desc("occurred_at")),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(64), nullable=False, index=True)
    entity_id = Column(String(64), nullable=False, index=True)
    action = Column(String(64), nullable=False)
    actor_id = Column(Integer, nullable=True)
    actor_role = Column(
        SAEnum(AccountRole, name="audit_actor_role_enum", native_enum=False),
        nullable=True,
    )
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)
    correlation_id = Column(String(64), nullable=True, index=True)
    metadata_json = Column("metadata", JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditEvent id={self.id} entity={self.entity_type}:{self.entity_id} action={self.action}>"
