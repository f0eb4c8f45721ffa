# backend/traineedb/apps/training/dashboard.py

"""
Read-only summaries for the admin and instructor landing pages.

Counts are grouped in SQL; nothing here writes or locks rows.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from traineedb.apps.accounts import models as account_models
from traineedb.apps.accounts.models import AccountRole
from traineedb.apps.notifications import service as notification_service
from traineedb.apps.workflow import ValidationError

from . import models

RECENT_ACTIVITY_LIMIT = 10
UPCOMING_DEADLINE_DAYS = 7
UPCOMING_DEADLINE_LIMIT = 5

_ACTIVE_PROJECT_STATUSES = (models.ProjectStatus.ASSIGNED, models.ProjectStatus.IN_PROGRESS)


def _count_by_status(db: Session, column, *filters) -> Dict[Any, int]:
    rows = db.query(column, func.count()).filter(*filters).group_by(column).all()
    return {status: int(count) for status, count in rows}


def _recent_activities(db: Session, *, recipient_id: int, recipient_type: AccountRole):
    items, _, _ = notification_service.list_notifications(
        db,
        recipient_id=recipient_id,
        recipient_type=recipient_type,
        limit=RECENT_ACTIVITY_LIMIT,
    )
    return items


def _trainee_counts(counts: Dict[Any, int]) -> Dict[str, int]:
    return {
        "total_trainees": sum(counts.values()),
        "pending_approvals": counts.get(models.TraineeStatus.PENDING, 0),
        "approved_trainees": counts.get(models.TraineeStatus.APPROVED, 0),
        "rejected_trainees": counts.get(models.TraineeStatus.REJECTED, 0),
    }


def _project_counts(counts: Dict[Any, int]) -> Dict[str, int]:
    return {
        "total_projects": sum(counts.values()),
        "active_projects": sum(counts.get(s, 0) for s in _ACTIVE_PROJECT_STATUSES),
        "completed_projects": counts.get(models.ProjectStatus.COMPLETED, 0),
    }


def department_stats(db: Session) -> List[Dict[str, Any]]:
    """Trainee and completed-project totals per instructor department."""
    stats: Dict[str, Dict[str, Any]] = {}

    def _row(department: str) -> Dict[str, Any]:
        return stats.setdefault(
            department,
            {"department": department, "total_trainees": 0, "approved_trainees": 0, "completed_projects": 0},
        )

    for (department,) in db.query(account_models.Instructor.department).distinct():
        _row(department)

    trainee_rows = (
        db.query(account_models.Instructor.department, models.Trainee.status, func.count(models.Trainee.id))
        .join(models.Trainee, models.Trainee.instructor_id == account_models.Instructor.id)
        .group_by(account_models.Instructor.department, models.Trainee.status)
        .all()
    )
    for department, status, count in trainee_rows:
        row = _row(department)
        row["total_trainees"] += int(count)
        if status == models.TraineeStatus.APPROVED:
            row["approved_trainees"] += int(count)

    project_rows = (
        db.query(account_models.Instructor.department, func.count(models.Project.id))
        .join(models.Project, models.Project.instructor_id == account_models.Instructor.id)
        .filter(models.Project.status == models.ProjectStatus.COMPLETED)
        .group_by(account_models.Instructor.department)
        .all()
    )
    for department, count in project_rows:
        _row(department)["completed_projects"] = int(count)

    return [stats[key] for key in sorted(stats)]


def admin_dashboard(db: Session, *, admin_id: int) -> Dict[str, Any]:
    stats: Dict[str, int] = {
        "total_admins": db.query(func.count(account_models.Admin.id)).scalar() or 0,
        "total_instructors": db.query(func.count(account_models.Instructor.id)).scalar() or 0,
    }
    stats.update(_trainee_counts(_count_by_status(db, models.Trainee.status)))
    stats.update(_project_counts(_count_by_status(db, models.Project.status)))
    stats["pending_reviews"] = (
        db.query(func.count(models.ProgressReview.id))
        .filter(models.ProgressReview.status == models.ProgressReviewStatus.IN_REVIEW)
        .scalar()
        or 0
    )
    return {
        "stats": stats,
        "recent_activities": _recent_activities(db, recipient_id=admin_id, recipient_type=AccountRole.ADMIN),
        "department_stats": department_stats(db),
    }


def instructor_dashboard(db: Session, *, instructor_id: int, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or datetime.now(timezone.utc).date()
    overview = _trainee_counts(
        _count_by_status(db, models.Trainee.status, models.Trainee.instructor_id == instructor_id)
    )
    overview.update(
        _project_counts(
            _count_by_status(db, models.Project.status, models.Project.instructor_id == instructor_id)
        )
    )
    upcoming = (
        db.query(models.Project)
        .filter(
            models.Project.instructor_id == instructor_id,
            models.Project.status != models.ProjectStatus.COMPLETED,
            models.Project.due_date >= today,
            models.Project.due_date <= today + timedelta(days=UPCOMING_DEADLINE_DAYS),
        )
        .order_by(models.Project.due_date.asc(), models.Project.id.asc())
        .limit(UPCOMING_DEADLINE_LIMIT)
        .all()
    )
    return {
        "overview": overview,
        "recent_activities": _recent_activities(
            db, recipient_id=instructor_id, recipient_type=AccountRole.INSTRUCTOR
        ),
        "upcoming_deadlines": upcoming,
    }


def monthly_status(
    db: Session,
    *,
    instructor_id: int,
    month: Optional[int] = None,
    year: Optional[int] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Per approved trainee: whether an attendance record was uploaded in the
    month, how many progress entries were logged in it, and the trainee's
    active and completed project counts. Defaults to the current month.
    """
    today = today or datetime.now(timezone.utc).date()
    month = today.month if month is None else month
    year = today.year if year is None else year
    if not 1 <= month <= 12:
        raise ValidationError.single("month", "month must be between 1 and 12")
    if not 1 <= year <= 9998:
        raise ValidationError.single("year", "year is out of range")

    first_day = date(year, month, 1)
    next_month = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    window_start = datetime.combine(first_day, datetime.min.time(), tzinfo=timezone.utc)
    window_end = datetime.combine(next_month, datetime.min.time(), tzinfo=timezone.utc)

    trainees = (
        db.query(models.Trainee)
        .filter(
            models.Trainee.instructor_id == instructor_id,
            models.Trainee.status == models.TraineeStatus.APPROVED,
        )
        .order_by(models.Trainee.name.asc(), models.Trainee.id.asc())
        .all()
    )
    ids = [trainee.id for trainee in trainees]

    with_attendance = {
        row[0]
        for row in db.query(models.Document.trainee_id)
        .filter(
            models.Document.trainee_id.in_(ids),
            models.Document.document_type == models.DocumentType.ATTENDANCE_RECORD,
            models.Document.uploaded_at >= window_start,
            models.Document.uploaded_at < window_end,
        )
        .distinct()
    }

    projects: Dict[int, Dict[Any, int]] = {}
    for trainee_id, status, count in (
        db.query(models.Project.trainee_id, models.Project.status, func.count(models.Project.id))
        .filter(models.Project.trainee_id.in_(ids))
        .group_by(models.Project.trainee_id, models.Project.status)
    ):
        projects.setdefault(trainee_id, {})[status] = int(count)

    progress = dict(
        db.query(models.Project.trainee_id, func.count(models.ProjectProgress.id))
        .join(models.ProjectProgress, models.ProjectProgress.project_id == models.Project.id)
        .filter(
            models.Project.trainee_id.in_(ids),
            models.ProjectProgress.entry_date >= first_day,
            models.ProjectProgress.entry_date < next_month,
        )
        .group_by(models.Project.trainee_id)
        .all()
    )

    rows = []
    for trainee in trainees:
        counts = projects.get(trainee.id, {})
        rows.append(
            {
                "trainee_id": trainee.id,
                "trainee_name": trainee.name,
                "institution_name": trainee.institution_name,
                "has_attendance_upload": trainee.id in with_attendance,
                "progress_entries": int(progress.get(trainee.id, 0)),
                "active_projects": sum(counts.get(s, 0) for s in _ACTIVE_PROJECT_STATUSES),
                "completed_projects": counts.get(models.ProjectStatus.COMPLETED, 0),
            }
        )
    return {"month": month, "year": year, "trainees": rows}
