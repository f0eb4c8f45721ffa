from __future__ import annotations

from datetime import datetime, timezone
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SAEnum, Index, Integer, JSON, String, Text

from traineedb.apps.accounts.models import AccountRole
from traineedb.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationType(str, enum.Enum):
    TRAINEE_CREATED = "trainee_created"
    TRAINEE_APPROVED = "trainee_approved"
    TRAINEE_REJECTED = "trainee_rejected"
    PROGRESS_SHARED = "progress_shared"
    PROGRESS_REVIEWED = "progress_reviewed"
    PROJECT_COMPLETED = "project_completed"
    GENERAL = "general"


class EmailStatus(str, enum.Enum):
    QUEUED = "QUEUED"
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED_NO_PROVIDER = "SKIPPED_NO_PROVIDER"


class Notification(Base):
    """
    In-app message for one admin or instructor.

    Rows are written once by the fan-out; only `is_read` changes afterwards.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient", "recipient_type", "recipient_id", "is_read"),
        Index("ix_notifications_recipient_created", "recipient_type", "recipient_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_id = Column(Integer, nullable=False)
    recipient_type = Column(
        SAEnum(AccountRole, name="notification_party_enum", native_enum=False),
        nullable=False,
    )
    sender_id = Column(Integer, nullable=True)
    sender_type = Column(
        SAEnum(AccountRole, name="notification_party_enum", native_enum=False),
        nullable=True,
    )

    type = Column(
        SAEnum(NotificationType, name="notification_type_enum", native_enum=False),
        nullable=False,
        default=NotificationType.GENERAL,
        index=True,
    )
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    related_type = Column(String(64), nullable=True)
    related_id = Column(Integer, nullable=True)

    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Notification id={self.id} to={self.recipient_type}:{self.recipient_id} type={self.type}>"


class EmailLog(Base):
    __tablename__ = "email_logs"
    __table_args__ = (
        Index("ix_email_logs_status_created", "status", "created_at"),
        Index("ix_email_logs_template", "template_key"),
        Index("ix_email_logs_recipient", "recipient"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)

    recipient = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    template_key = Column(String(128), nullable=False)
    status = Column(
        SAEnum(EmailStatus, name="email_status_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    error = Column(Text, nullable=True)
    context_json = Column(JSON, nullable=True)
    correlation_id = Column(String(64), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<EmailLog id={self.id} recipient={self.recipient} status={self.status}>"
