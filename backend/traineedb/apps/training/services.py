# backend/traineedb/apps/training/services.py

"""
Trainee, project and progress-review workflows.

Every operation runs inside the caller's session and never commits; the
router commits once the whole operation (transition, audit event,
notifications, queued emails) has been written. Status changes go through
`workflow.apply_transition` so they are guarded by the prior status.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from traineedb.apps.accounts import models as account_models
from traineedb.apps.accounts import services as account_services
from traineedb.apps.accounts.models import AccountRole
from traineedb.apps.audit import services as audit_services
from traineedb.apps.notifications import fanout
from traineedb.apps.notifications import service as notification_service
from traineedb.apps.workflow import (
    InvalidStateError,
    NotFoundError,
    PreconditionError,
    ValidationError,
    apply_transition,
    conditional_update,
)

from . import models, schemas

logger = logging.getLogger(__name__)

PERCENTAGE_MIN = 0
PERCENTAGE_MAX = 100

NON_NULL_TRAINEE_FIELDS = ("name", "mobile")
NON_NULL_PROJECT_FIELDS = ("project_name",)

DECISIONS = {
    models.TraineeStatus.APPROVED.value: models.TraineeStatus.APPROVED,
    models.TraineeStatus.REJECTED.value: models.TraineeStatus.REJECTED,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _today() -> date:
    return _utcnow().date()


def department_emails() -> List[str]:
    """Recipients of the project completion email, read from the environment."""
    addresses = []
    for var in ("TRAINING_DEPT_EMAIL", "HRD_DEPT_EMAIL"):
        for value in (os.getenv(var) or "").split(","):
            value = value.strip()
            if value and value not in addresses:
                addresses.append(value)
    return addresses


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------


def _load(db: Session, model, entity_id: int, entity_type: str, *, for_update: bool = False):
    if for_update:
        entity = db.get(model, entity_id, populate_existing=True, with_for_update=True)
    else:
        entity = db.get(model, entity_id)
    if entity is None:
        raise NotFoundError(entity_type, entity_id)
    return entity


def get_trainee(db: Session, trainee_id: int, *, for_update: bool = False) -> models.Trainee:
    return _load(db, models.Trainee, trainee_id, "trainee", for_update=for_update)


def get_owned_trainee(
    db: Session, trainee_id: int, *, instructor_id: int, for_update: bool = False
) -> models.Trainee:
    trainee = get_trainee(db, trainee_id, for_update=for_update)
    if trainee.instructor_id != instructor_id:
        raise NotFoundError("trainee", trainee_id)
    return trainee


def get_owned_project(
    db: Session, project_id: int, *, instructor_id: int, for_update: bool = False
) -> models.Project:
    project = _load(db, models.Project, project_id, "project", for_update=for_update)
    if project.instructor_id != instructor_id:
        raise NotFoundError("project", project_id)
    return project


def get_review(db: Session, review_id: int, *, for_update: bool = False) -> models.ProgressReview:
    return _load(db, models.ProgressReview, review_id, "progress_review", for_update=for_update)


def _instructor(db: Session, instructor_id: int) -> account_models.Instructor:
    instructor = db.get(account_models.Instructor, instructor_id)
    if instructor is None:
        raise NotFoundError("instructor", instructor_id)
    return instructor


def _reject_nulls(changes: Dict[str, Any], fields: Tuple[str, ...]) -> None:
    # Optional in the payload, but NOT NULL in the table.
    nulls = [field for field in fields if field in changes and changes[field] is None]
    if nulls:
        raise ValidationError([{"field": field, "reason": "cannot be null"} for field in nulls])


# ---------------------------------------------------------------------------
# Trainees
# ---------------------------------------------------------------------------


def submit_trainee(
    db: Session,
    *,
    instructor_id: int,
    data: schemas.TraineeCreate,
    correlation_id: Optional[str] = None,
) -> models.Trainee:
    instructor = _instructor(db, instructor_id)
    trainee = models.Trainee(
        **data.model_dump(),
        instructor_id=instructor.id,
        status=models.TraineeStatus.PENDING,
    )
    db.add(trainee)
    db.flush()

    audit_services.log_event(
        db,
        actor_id=instructor.id,
        actor_role=AccountRole.INSTRUCTOR,
        entity_type="trainee",
        entity_id=str(trainee.id),
        action="create",
        after={"status": trainee.status.value, "name": trainee.name},
        correlation_id=correlation_id,
    )
    notification_service.fan_out(
        db,
        fanout.WorkflowEvent.TRAINEE_SUBMITTED,
        {
            "admin_ids": account_services.list_admin_ids(db),
            "trainee_id": trainee.id,
            "trainee_name": trainee.name,
            "instructor_id": instructor.id,
            "instructor_name": instructor.name,
        },
    )
    return trainee


def update_trainee(
    db: Session,
    *,
    trainee_id: int,
    instructor_id: int,
    data: schemas.TraineeUpdate,
    correlation_id: Optional[str] = None,
) -> models.Trainee:
    trainee = get_owned_trainee(db, trainee_id, instructor_id=instructor_id, for_update=True)
    if trainee.status != models.TraineeStatus.PENDING:
        raise InvalidStateError(f"trainee {trainee_id} is {trainee.status.value}; only pending trainees can be edited")

    changes = data.model_dump(exclude_unset=True)
    _reject_nulls(changes, NON_NULL_TRAINEE_FIELDS)
    if not changes:
        return trainee
    changes["updated_at"] = _utcnow()

    if not conditional_update(db, trainee, expected_status=models.TraineeStatus.PENDING, values=changes):
        raise InvalidStateError(f"trainee {trainee_id} was decided by another request")
    db.refresh(trainee)

    audit_services.log_event(
        db,
        actor_id=instructor_id,
        actor_role=AccountRole.INSTRUCTOR,
        entity_type="trainee",
        entity_id=str(trainee.id),
        action="update",
        after={"fields": sorted(key for key in changes if key != "updated_at")},
        correlation_id=correlation_id,
    )
    return trainee


def decide_trainee(
    db: Session,
    *,
    trainee_id: int,
    admin_id: int,
    decision: str,
    comments: Optional[str] = None,
    today: Optional[date] = None,
    defer: Optional[notification_service.Defer] = None,
    correlation_id: Optional[str] = None,
) -> models.Trainee:
    """
    Approve or reject a pending trainee.

    Records who decided and when for both outcomes. Approval also fixes the
    joining date when the instructor left it empty. The owning instructor
    gets one notification and one email.
    """
    trainee = get_trainee(db, trainee_id, for_update=True)

    target = DECISIONS.get((decision or "").strip().lower())
    if target is None:
        raise ValidationError.single("decision", "decision must be 'approved' or 'rejected'")

    changes: Dict[str, Any] = {
        "approved_by": admin_id,
        "approval_comments": comments,
        "approved_at": _utcnow(),
    }
    if target == models.TraineeStatus.APPROVED and trainee.joining_date is None:
        changes["joining_date"] = today or _today()

    apply_transition(
        db,
        actor_id=admin_id,
        actor_role=AccountRole.ADMIN,
        entity_type="trainee",
        entity=trainee,
        to_state=target,
        changes=changes,
        correlation_id=correlation_id,
    )

    instructor = _instructor(db, trainee.instructor_id)
    payload = {
        "trainee_id": trainee.id,
        "trainee_name": trainee.name,
        "instructor_id": instructor.id,
        "instructor_email": instructor.email,
        "instructor_name": instructor.name,
        "admin_id": admin_id,
        "decision": target.value,
        "comments": comments,
    }
    notification_service.fan_out(db, fanout.WorkflowEvent.TRAINEE_DECIDED, payload)
    notification_service.queue_emails(
        db,
        fanout.build_emails(fanout.WorkflowEvent.TRAINEE_DECIDED, payload),
        correlation_id=correlation_id,
        defer=defer,
    )
    return trainee


def list_trainees(
    db: Session,
    *,
    instructor_id: Optional[int] = None,
    status: Optional[models.TraineeStatus] = None,
    search: Optional[str] = None,
) -> List[models.Trainee]:
    qs = db.query(models.Trainee)
    if instructor_id is not None:
        qs = qs.filter(models.Trainee.instructor_id == instructor_id)
    if status is not None:
        qs = qs.filter(models.Trainee.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        qs = qs.filter(
            models.Trainee.name.ilike(pattern) | models.Trainee.institution_name.ilike(pattern)
        )
    return qs.order_by(models.Trainee.created_at.desc(), models.Trainee.id.desc()).all()


def trainee_history(db: Session, trainee_id: int):
    get_trainee(db, trainee_id)
    return audit_services.list_audit_events(db, entity_type="trainee", entity_id=str(trainee_id))


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def create_project(
    db: Session,
    *,
    instructor_id: int,
    data: schemas.ProjectCreate,
    today: Optional[date] = None,
    correlation_id: Optional[str] = None,
) -> models.Project:
    trainee = get_owned_trainee(db, data.trainee_id, instructor_id=instructor_id, for_update=True)
    if trainee.status != models.TraineeStatus.APPROVED:
        raise PreconditionError("trainee", f"trainee {trainee.id} must be approved before projects are assigned")

    project = models.Project(
        trainee_id=trainee.id,
        instructor_id=instructor_id,
        project_name=data.project_name.strip(),
        description=data.description,
        due_date=data.due_date,
        start_date=today or _today(),
        status=models.ProjectStatus.ASSIGNED,
    )
    db.add(project)
    db.flush()

    audit_services.log_event(
        db,
        actor_id=instructor_id,
        actor_role=AccountRole.INSTRUCTOR,
        entity_type="project",
        entity_id=str(project.id),
        action="create",
        after={"status": project.status.value, "trainee_id": trainee.id},
        correlation_id=correlation_id,
    )
    return project


def start_project(
    db: Session,
    *,
    project_id: int,
    instructor_id: int,
    correlation_id: Optional[str] = None,
) -> models.Project:
    project = get_owned_project(db, project_id, instructor_id=instructor_id, for_update=True)
    return apply_transition(
        db,
        actor_id=instructor_id,
        actor_role=AccountRole.INSTRUCTOR,
        entity_type="project",
        entity=project,
        to_state=models.ProjectStatus.IN_PROGRESS,
        changes={"updated_at": _utcnow()},
        correlation_id=correlation_id,
    )


def update_project(
    db: Session,
    *,
    project_id: int,
    instructor_id: int,
    data: schemas.ProjectUpdate,
) -> models.Project:
    project = get_owned_project(db, project_id, instructor_id=instructor_id, for_update=True)
    if project.status == models.ProjectStatus.COMPLETED:
        raise InvalidStateError(f"project {project_id} is completed and can no longer be edited")

    changes = data.model_dump(exclude_unset=True)
    _reject_nulls(changes, NON_NULL_PROJECT_FIELDS)
    if not changes:
        return project
    if changes.get("project_name"):
        changes["project_name"] = changes["project_name"].strip()
    changes["updated_at"] = _utcnow()

    if not conditional_update(db, project, expected_status=project.status, values=changes):
        raise InvalidStateError(f"project {project_id} was changed by another request")
    db.refresh(project)
    return project


def record_progress(
    db: Session,
    *,
    project_id: int,
    instructor_id: int,
    data: schemas.ProgressCreate,
    today: Optional[date] = None,
    correlation_id: Optional[str] = None,
) -> models.ProjectProgress:
    """
    Append a progress entry. The first entry on an assigned project moves it
    to in_progress; completed projects take no further entries.
    """
    project = get_owned_project(db, project_id, instructor_id=instructor_id, for_update=True)

    pct = data.percentage_completed
    if isinstance(pct, bool) or not isinstance(pct, int) or not PERCENTAGE_MIN <= pct <= PERCENTAGE_MAX:
        raise ValidationError.single("percentage_completed", "percentage must be between 0 and 100")

    if project.status == models.ProjectStatus.COMPLETED:
        raise InvalidStateError(f"project {project_id} is completed; progress can no longer be recorded")

    if project.status == models.ProjectStatus.ASSIGNED:
        apply_transition(
            db,
            actor_id=instructor_id,
            actor_role=AccountRole.INSTRUCTOR,
            entity_type="project",
            entity=project,
            to_state=models.ProjectStatus.IN_PROGRESS,
            changes={"updated_at": _utcnow()},
            correlation_id=correlation_id,
        )

    entry = models.ProjectProgress(
        project_id=project.id,
        task_description=data.task_description,
        percentage_completed=pct,
        status=data.status,
        notes=data.notes,
        entry_date=today or _today(),
        recorded_by=instructor_id,
    )
    db.add(entry)
    db.flush()
    return entry


def complete_project(
    db: Session,
    *,
    project_id: int,
    instructor_id: int,
    performance_rating: Any,
    report_path: Optional[str],
    attendance_path: Optional[str],
    today: Optional[date] = None,
    defer: Optional[notification_service.Defer] = None,
    correlation_id: Optional[str] = None,
) -> models.Project:
    """
    Close a project with its rating and both artefacts.

    Writes one Document per artefact, notifies the admin who onboarded the
    instructor (when there is one) and queues the completion email to the
    department addresses with both artefacts attached.
    """
    project = get_owned_project(db, project_id, instructor_id=instructor_id, for_update=True)
    end_date = today or _today()

    apply_transition(
        db,
        actor_id=instructor_id,
        actor_role=AccountRole.INSTRUCTOR,
        entity_type="project",
        entity=project,
        to_state=models.ProjectStatus.COMPLETED,
        changes={
            "performance_rating": performance_rating,
            "project_report_path": report_path,
            "attendance_document_path": attendance_path,
            "end_date": end_date,
            "updated_at": _utcnow(),
        },
        correlation_id=correlation_id,
    )

    trainee = db.get(models.Trainee, project.trainee_id)
    instructor = _instructor(db, instructor_id)
    for path, doc_type, label in (
        (report_path, models.DocumentType.PROJECT_REPORT, "Project Report"),
        (attendance_path, models.DocumentType.ATTENDANCE_RECORD, "Attendance Record"),
    ):
        db.add(
            models.Document(
                trainee_id=project.trainee_id,
                project_id=project.id,
                document_name=f"{project.project_name} - {label}",
                document_type=doc_type,
                file_path=path,
                uploaded_by=instructor_id,
            )
        )
    db.flush()

    duration_days = (project.end_date - project.start_date).days
    payload = {
        "project_id": project.id,
        "project_name": project.project_name,
        "trainee_name": trainee.name,
        "institution_name": trainee.institution_name,
        "mobile": trainee.mobile,
        "instructor_id": instructor.id,
        "instructor_name": instructor.name,
        "creator_admin_id": instructor.created_by,
        "department_emails": department_emails(),
        "performance_rating": project.performance_rating,
        "start_date": project.start_date,
        "end_date": project.end_date,
        "duration_days": duration_days,
        "attachments": [report_path, attendance_path],
    }
    notification_service.fan_out(db, fanout.WorkflowEvent.PROJECT_COMPLETED, payload)
    emails = fanout.build_emails(fanout.WorkflowEvent.PROJECT_COMPLETED, payload)
    if not emails:
        logger.warning(
            "No department email configured for project completion",
            extra={"project_id": project.id},
        )
    notification_service.queue_emails(db, emails, correlation_id=correlation_id, defer=defer)
    return project


def project_duration_days(project: models.Project) -> Optional[int]:
    if project.start_date is None or project.end_date is None:
        return None
    return (project.end_date - project.start_date).days


def list_projects(
    db: Session,
    *,
    instructor_id: int,
    trainee_id: Optional[int] = None,
    status: Optional[models.ProjectStatus] = None,
) -> List[models.Project]:
    qs = db.query(models.Project).filter(models.Project.instructor_id == instructor_id)
    if trainee_id is not None:
        qs = qs.filter(models.Project.trainee_id == trainee_id)
    if status is not None:
        qs = qs.filter(models.Project.status == status)
    return qs.order_by(models.Project.created_at.desc(), models.Project.id.desc()).all()


def list_progress(db: Session, *, project_id: int, instructor_id: int) -> List[models.ProjectProgress]:
    get_owned_project(db, project_id, instructor_id=instructor_id)
    return (
        db.query(models.ProjectProgress)
        .filter(models.ProjectProgress.project_id == project_id)
        .order_by(models.ProjectProgress.entry_date.desc(), models.ProjectProgress.id.desc())
        .all()
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def add_document(
    db: Session,
    *,
    instructor_id: int,
    trainee_id: int,
    file_path: str,
    document_type: models.DocumentType = models.DocumentType.OTHER,
    document_name: Optional[str] = None,
    project_id: Optional[int] = None,
) -> models.Document:
    trainee = get_owned_trainee(db, trainee_id, instructor_id=instructor_id)
    if project_id is not None:
        project = get_owned_project(db, project_id, instructor_id=instructor_id)
        if project.trainee_id != trainee.id:
            raise PreconditionError("project_id", f"project {project_id} does not belong to trainee {trainee_id}")

    document = models.Document(
        trainee_id=trainee.id,
        project_id=project_id,
        document_name=document_name,
        document_type=document_type,
        file_path=file_path,
        uploaded_by=instructor_id,
    )
    db.add(document)
    db.flush()
    return document


def list_documents(
    db: Session,
    *,
    instructor_id: int,
    trainee_id: Optional[int] = None,
    project_id: Optional[int] = None,
    document_type: Optional[models.DocumentType] = None,
) -> List[models.Document]:
    qs = db.query(models.Document).filter(models.Document.uploaded_by == instructor_id)
    if trainee_id is not None:
        qs = qs.filter(models.Document.trainee_id == trainee_id)
    if project_id is not None:
        qs = qs.filter(models.Document.project_id == project_id)
    if document_type is not None:
        qs = qs.filter(models.Document.document_type == document_type)
    return qs.order_by(models.Document.uploaded_at.desc(), models.Document.id.desc()).all()


# ---------------------------------------------------------------------------
# Progress reviews
# ---------------------------------------------------------------------------


def share_progress(
    db: Session,
    *,
    trainee_id: int,
    instructor_id: int,
    summary: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> models.ProgressReview:
    trainee = get_owned_trainee(db, trainee_id, instructor_id=instructor_id)
    instructor = _instructor(db, instructor_id)

    review = models.ProgressReview(
        trainee_id=trainee.id,
        shared_by=instructor_id,
        summary=summary,
        status=models.ProgressReviewStatus.IN_REVIEW,
        shared_at=_utcnow(),
    )
    db.add(review)
    db.flush()

    audit_services.log_event(
        db,
        actor_id=instructor_id,
        actor_role=AccountRole.INSTRUCTOR,
        entity_type="progress_review",
        entity_id=str(review.id),
        action="create",
        after={"status": review.status.value, "trainee_id": trainee.id},
        correlation_id=correlation_id,
    )
    notification_service.fan_out(
        db,
        fanout.WorkflowEvent.PROGRESS_SHARED,
        {
            "admin_ids": account_services.list_admin_ids(db),
            "review_id": review.id,
            "trainee_id": trainee.id,
            "trainee_name": trainee.name,
            "instructor_id": instructor.id,
            "instructor_name": instructor.name,
        },
    )
    return review


def complete_review(
    db: Session,
    *,
    review_id: int,
    admin_id: int,
    comments: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> models.ProgressReview:
    review = get_review(db, review_id, for_update=True)
    apply_transition(
        db,
        actor_id=admin_id,
        actor_role=AccountRole.ADMIN,
        entity_type="progress_review",
        entity=review,
        to_state=models.ProgressReviewStatus.COMPLETED,
        changes={
            "reviewed_by": admin_id,
            "reviewed_at": _utcnow(),
            "review_comments": comments,
        },
        correlation_id=correlation_id,
    )

    trainee = db.get(models.Trainee, review.trainee_id)
    notification_service.fan_out(
        db,
        fanout.WorkflowEvent.REVIEW_COMPLETED,
        {
            "review_id": review.id,
            "trainee_name": trainee.name if trainee else "",
            "instructor_id": review.shared_by,
            "admin_id": admin_id,
            "comments": comments,
        },
    )
    return review


def list_reviews(
    db: Session,
    *,
    status: Optional[models.ProgressReviewStatus] = None,
    trainee_id: Optional[int] = None,
) -> List[models.ProgressReview]:
    qs = db.query(models.ProgressReview)
    if status is not None:
        qs = qs.filter(models.ProgressReview.status == status)
    if trainee_id is not None:
        qs = qs.filter(models.ProgressReview.trainee_id == trainee_id)
    return qs.order_by(models.ProgressReview.shared_at.desc(), models.ProgressReview.id.desc()).all()
