from __future__ import annotations

from datetime import date, datetime, timezone
import enum
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from traineedb.apps.accounts.models import AccountRole
from traineedb.apps.workflow.errors import NotFoundError
from traineedb.database import SessionLocal

from . import fanout, models, providers

logger = logging.getLogger(__name__)

Defer = Callable[..., None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _json_safe(values: dict) -> dict:
    out = {}
    for key, value in values.items():
        if isinstance(value, enum.Enum):
            out[key] = value.value
        elif isinstance(value, (datetime, date)):
            out[key] = value.isoformat()
        else:
            out[key] = value
    return out


# ---------------------------------------------------------------------------
# IN-APP NOTIFICATIONS
# ---------------------------------------------------------------------------


def _persist_draft(db: Session, draft: fanout.NotificationDraft) -> models.Notification:
    notification = models.Notification(
        recipient_id=draft.recipient_id,
        recipient_type=draft.recipient_type,
        sender_id=draft.sender_id,
        sender_type=draft.sender_type,
        type=draft.type,
        title=draft.title,
        message=draft.message,
        related_type=draft.related_type,
        related_id=draft.related_id,
        is_read=False,
    )
    db.add(notification)
    db.flush()
    return notification


def fan_out(
    db: Session,
    event: fanout.WorkflowEvent,
    payload: dict,
) -> List[models.Notification]:
    """
    Persist one Notification per draft for `event`.

    Each insert runs in its own SAVEPOINT; a failing insert is logged and
    skipped, and the caller's transaction (holding the transition) survives.
    """
    created: List[models.Notification] = []
    for draft in fanout.build_notifications(event, payload):
        try:
            with db.begin_nested():
                created.append(_persist_draft(db, draft))
        except Exception:
            logger.warning(
                "Failed to persist notification",
                exc_info=True,
                extra={
                    "event": fanout.WorkflowEvent(event).value,
                    "recipient_id": draft.recipient_id,
                    "recipient_type": draft.recipient_type.value,
                },
            )
    return created


def list_notifications(
    db: Session,
    *,
    recipient_id: int,
    recipient_type: AccountRole,
    is_read: Optional[bool] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[models.Notification], int, int]:
    """Returns (items, total matching, unread count)."""
    base = db.query(models.Notification).filter(
        models.Notification.recipient_id == recipient_id,
        models.Notification.recipient_type == recipient_type,
    )
    unread = base.filter(models.Notification.is_read.is_(False)).count()

    qs = base
    if is_read is not None:
        qs = qs.filter(models.Notification.is_read.is_(is_read))
    total = qs.count()
    items = (
        qs.order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
        .offset((max(page, 1) - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total, unread


def _get_own(
    db: Session,
    notification_id: int,
    *,
    recipient_id: int,
    recipient_type: AccountRole,
) -> models.Notification:
    notification = (
        db.query(models.Notification)
        .filter(
            models.Notification.id == notification_id,
            models.Notification.recipient_id == recipient_id,
            models.Notification.recipient_type == recipient_type,
        )
        .first()
    )
    if not notification:
        raise NotFoundError("notification", notification_id)
    return notification


def mark_read(
    db: Session,
    notification_id: int,
    *,
    recipient_id: int,
    recipient_type: AccountRole,
) -> models.Notification:
    notification = _get_own(db, notification_id, recipient_id=recipient_id, recipient_type=recipient_type)
    notification.is_read = True
    db.add(notification)
    db.flush()
    return notification


def mark_all_read(db: Session, *, recipient_id: int, recipient_type: AccountRole) -> int:
    updated = (
        db.query(models.Notification)
        .filter(
            models.Notification.recipient_id == recipient_id,
            models.Notification.recipient_type == recipient_type,
            models.Notification.is_read.is_(False),
        )
        .update({models.Notification.is_read: True}, synchronize_session=False)
    )
    return int(updated or 0)


def delete_notification(
    db: Session,
    notification_id: int,
    *,
    recipient_id: int,
    recipient_type: AccountRole,
) -> None:
    notification = _get_own(db, notification_id, recipient_id=recipient_id, recipient_type=recipient_type)
    db.delete(notification)
    db.flush()


def notification_stats(db: Session, *, recipient_id: int, recipient_type: AccountRole) -> List[Dict]:
    rows = (
        db.query(
            models.Notification.type,
            func.count(models.Notification.id),
            func.sum(case((models.Notification.is_read.is_(False), 1), else_=0)),
        )
        .filter(
            models.Notification.recipient_id == recipient_id,
            models.Notification.recipient_type == recipient_type,
        )
        .group_by(models.Notification.type)
        .order_by(models.Notification.type)
        .all()
    )
    return [
        {"type": row[0], "count": int(row[1] or 0), "unread_count": int(row[2] or 0)}
        for row in rows
    ]


# ---------------------------------------------------------------------------
# EMAIL
# ---------------------------------------------------------------------------


def deliver_email(
    log_id: int,
    *,
    critical: bool = False,
    db: Optional[Session] = None,
    secret_context: Optional[dict] = None,
) -> Optional[models.EmailLog]:
    """
    Hand a QUEUED EmailLog to the configured provider and record the outcome.

    `secret_context` is merged into the template context but never stored.

    Without `db` this opens its own write session, which is how it runs as a
    background task after the request transaction has committed.
    """
    owns_session = db is None
    db = db or SessionLocal()
    try:
        log = db.get(models.EmailLog, log_id)
        if log is None:
            logger.warning("Email log vanished before delivery", extra={"email_log_id": log_id})
            return None
        if log.status != models.EmailStatus.QUEUED:
            return log

        provider, configured = providers.get_email_provider()
        if not configured:
            log.status = models.EmailStatus.SKIPPED_NO_PROVIDER
            log.error = "No provider configured"
            db.add(log)
            if owns_session:
                db.commit()
            return log

        context = {**(log.context_json or {}), **(secret_context or {})}
        attachments = list(context.pop("attachments", None) or [])
        try:
            provider.send(
                template_key=log.template_key,
                recipient=log.recipient,
                subject=log.subject,
                context=context,
                attachments=attachments,
                correlation_id=log.correlation_id,
            )
            log.status = models.EmailStatus.SENT
            log.sent_at = _utcnow()
        except Exception as exc:
            log.status = models.EmailStatus.FAILED
            log.error = str(exc)
            logger.warning(
                "Email delivery failed",
                extra={"email_log_id": log.id, "template_key": log.template_key, "recipient": log.recipient},
            )
            if critical:
                db.add(log)
                if owns_session:
                    db.commit()
                raise
        db.add(log)
        if owns_session:
            db.commit()
        return log
    finally:
        if owns_session:
            db.close()


def send_email(
    template_key: str,
    recipient: str,
    subject: str,
    context: dict,
    correlation_id: Optional[str],
    critical: bool = False,
    *,
    attachments: Optional[Sequence[str]] = None,
    db: Optional[Session] = None,
    defer: Optional[Defer] = None,
    secret_context: Optional[dict] = None,
) -> models.EmailLog:
    """
    Queue an EmailLog row and deliver it.

    With `defer` (e.g. `BackgroundTasks.add_task`) delivery is scheduled to
    run after the caller commits; otherwise it happens inline on `db`.
    """
    owns_session = db is None
    db = db or SessionLocal()
    stored_context = _json_safe(context or {})
    if attachments:
        stored_context["attachments"] = [str(path) for path in attachments]
    log = models.EmailLog(
        recipient=recipient,
        subject=subject,
        template_key=template_key,
        status=models.EmailStatus.QUEUED,
        context_json=stored_context,
        correlation_id=correlation_id,
    )
    try:
        db.add(log)
        db.flush()
        if owns_session:
            db.commit()

        if defer is not None:
            defer(deliver_email, log.id, critical=critical, secret_context=secret_context)
            return log

        deliver_email(log.id, critical=critical, db=db, secret_context=secret_context)
        if owns_session:
            db.commit()
        return log
    finally:
        if owns_session:
            db.close()


def queue_emails(
    db: Session,
    drafts: Sequence[fanout.EmailDraft],
    *,
    correlation_id: Optional[str] = None,
    defer: Optional[Defer] = None,
) -> List[models.EmailLog]:
    """
    One EmailLog per recipient of every draft. Never raises: a draft that
    cannot be queued is logged and skipped.
    """
    logs: List[models.EmailLog] = []
    for draft in drafts:
        for recipient in draft.recipients:
            try:
                with db.begin_nested():
                    logs.append(
                        send_email(
                            draft.template_key,
                            recipient,
                            draft.subject,
                            draft.context,
                            correlation_id,
                            attachments=draft.attachments,
                            db=db,
                            defer=defer,
                        )
                    )
            except Exception:
                logger.warning(
                    "Failed to queue email",
                    exc_info=True,
                    extra={"template_key": draft.template_key, "recipient": recipient},
                )
    return logs
