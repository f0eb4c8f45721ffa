"""
Recipient resolution for workflow events.

Everything here is pure: callers look up the admin ids, instructor contact
details and configured department addresses, pass them in the payload, and
get back drafts to persist or send.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from traineedb.apps.accounts.models import AccountRole

from .models import NotificationType


class WorkflowEvent(str, enum.Enum):
    TRAINEE_SUBMITTED = "trainee_submitted"
    TRAINEE_DECIDED = "trainee_decided"
    PROGRESS_SHARED = "progress_shared"
    REVIEW_COMPLETED = "review_completed"
    PROJECT_COMPLETED = "project_completed"


@dataclass(frozen=True)
class NotificationDraft:
    recipient_id: int
    recipient_type: AccountRole
    type: NotificationType
    title: str
    message: str
    sender_id: Optional[int] = None
    sender_type: Optional[AccountRole] = None
    related_type: Optional[str] = None
    related_id: Optional[int] = None


@dataclass(frozen=True)
class EmailDraft:
    template_key: str
    recipients: Tuple[str, ...]
    subject: str
    context: dict = field(default_factory=dict)
    attachments: Tuple[str, ...] = ()


def _unique(ids: Iterable[Optional[int]]) -> List[int]:
    seen: List[int] = []
    for value in ids:
        if value is not None and value not in seen:
            seen.append(value)
    return seen


# ---------------------------------------------------------------------------
# IN-APP NOTIFICATIONS
# ---------------------------------------------------------------------------


def _trainee_submitted(payload: dict) -> List[NotificationDraft]:
    message = (
        f'New trainee "{payload["trainee_name"]}" created by '
        f'{payload["instructor_name"]} requires approval'
    )
    return [
        NotificationDraft(
            recipient_id=admin_id,
            recipient_type=AccountRole.ADMIN,
            type=NotificationType.TRAINEE_CREATED,
            title="Trainee awaiting approval",
            message=message,
            sender_id=payload["instructor_id"],
            sender_type=AccountRole.INSTRUCTOR,
            related_type="trainee",
            related_id=payload["trainee_id"],
        )
        for admin_id in _unique(payload["admin_ids"])
    ]


def _trainee_decided(payload: dict) -> List[NotificationDraft]:
    approved = payload["decision"] == "approved"
    label = "Comments" if approved else "Reason"
    message = f'Trainee "{payload["trainee_name"]}" has been {payload["decision"]}'
    if payload.get("comments"):
        message += f". {label}: {payload['comments']}"
    return [
        NotificationDraft(
            recipient_id=payload["instructor_id"],
            recipient_type=AccountRole.INSTRUCTOR,
            type=NotificationType.TRAINEE_APPROVED if approved else NotificationType.TRAINEE_REJECTED,
            title="Trainee approved" if approved else "Trainee rejected",
            message=message,
            sender_id=payload["admin_id"],
            sender_type=AccountRole.ADMIN,
            related_type="trainee",
            related_id=payload["trainee_id"],
        )
    ]


def _progress_shared(payload: dict) -> List[NotificationDraft]:
    message = (
        f'Progress shared for trainee "{payload["trainee_name"]}" by '
        f'{payload["instructor_name"]}'
    )
    return [
        NotificationDraft(
            recipient_id=admin_id,
            recipient_type=AccountRole.ADMIN,
            type=NotificationType.PROGRESS_SHARED,
            title="Progress review requested",
            message=message,
            sender_id=payload["instructor_id"],
            sender_type=AccountRole.INSTRUCTOR,
            related_type="progress_review",
            related_id=payload["review_id"],
        )
        for admin_id in _unique(payload["admin_ids"])
    ]


def _review_completed(payload: dict) -> List[NotificationDraft]:
    message = f'Progress review for "{payload["trainee_name"]}" has been completed'
    if payload.get("comments"):
        message += f". Comments: {payload['comments']}"
    return [
        NotificationDraft(
            recipient_id=payload["instructor_id"],
            recipient_type=AccountRole.INSTRUCTOR,
            type=NotificationType.PROGRESS_REVIEWED,
            title="Progress review completed",
            message=message,
            sender_id=payload["admin_id"],
            sender_type=AccountRole.ADMIN,
            related_type="progress_review",
            related_id=payload["review_id"],
        )
    ]


def _project_completed(payload: dict) -> List[NotificationDraft]:
    creator_admin_id = payload.get("creator_admin_id")
    if creator_admin_id is None:
        return []
    message = (
        f'Project "{payload["project_name"]}" for trainee "{payload["trainee_name"]}" '
        f'was completed by {payload["instructor_name"]} '
        f'(rating {payload["performance_rating"]}/10, {payload["duration_days"]} days)'
    )
    return [
        NotificationDraft(
            recipient_id=creator_admin_id,
            recipient_type=AccountRole.ADMIN,
            type=NotificationType.PROJECT_COMPLETED,
            title="Project completed",
            message=message,
            sender_id=payload["instructor_id"],
            sender_type=AccountRole.INSTRUCTOR,
            related_type="project",
            related_id=payload["project_id"],
        )
    ]


_NOTIFICATION_BUILDERS: Dict[WorkflowEvent, Callable[[dict], List[NotificationDraft]]] = {
    WorkflowEvent.TRAINEE_SUBMITTED: _trainee_submitted,
    WorkflowEvent.TRAINEE_DECIDED: _trainee_decided,
    WorkflowEvent.PROGRESS_SHARED: _progress_shared,
    WorkflowEvent.REVIEW_COMPLETED: _review_completed,
    WorkflowEvent.PROJECT_COMPLETED: _project_completed,
}


def build_notifications(event: WorkflowEvent, payload: dict) -> List[NotificationDraft]:
    try:
        builder = _NOTIFICATION_BUILDERS[WorkflowEvent(event)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown workflow event: {event!r}")
    return builder(payload)


# ---------------------------------------------------------------------------
# EMAIL
# ---------------------------------------------------------------------------


def build_emails(event: WorkflowEvent, payload: dict) -> List[EmailDraft]:
    event = WorkflowEvent(event)

    if event == WorkflowEvent.TRAINEE_DECIDED:
        email = (payload.get("instructor_email") or "").strip()
        if not email:
            return []
        approved = payload["decision"] == "approved"
        status_text = "Approved" if approved else "Rejected"
        return [
            EmailDraft(
                template_key="trainee_approved" if approved else "trainee_rejected",
                recipients=(email,),
                subject=f"Trainee {status_text} - {payload['trainee_name']}",
                context={
                    "instructor_name": payload.get("instructor_name"),
                    "trainee_id": payload["trainee_id"],
                    "trainee_name": payload["trainee_name"],
                    "decision": payload["decision"],
                    "comments": payload.get("comments") or "",
                },
            )
        ]

    if event == WorkflowEvent.PROJECT_COMPLETED:
        recipients = tuple(
            addr.strip() for addr in payload.get("department_emails") or () if addr and addr.strip()
        )
        if not recipients:
            return []
        context = {
            key: payload.get(key)
            for key in (
                "project_id",
                "project_name",
                "trainee_name",
                "institution_name",
                "mobile",
                "instructor_name",
                "start_date",
                "end_date",
                "duration_days",
                "performance_rating",
            )
        }
        context["duration"] = f"{payload['duration_days']} days"
        return [
            EmailDraft(
                template_key="project_completed",
                recipients=recipients,
                subject=f"Project Completion - {payload['trainee_name']} | {payload['project_name']}",
                context=context,
                attachments=tuple(payload.get("attachments") or ()),
            )
        ]

    return []
