from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from traineedb.apps.accounts import models as account_models
from traineedb.apps.accounts.models import AccountRole
from traineedb.apps.notifications import models as notification_models
from traineedb.apps.training import dashboard
from traineedb.apps.training import models as training_models
from traineedb.apps.training import router_admin, router_instructor
from traineedb.apps.workflow import ValidationError
from traineedb.security import Principal

TODAY = date(2025, 3, 10)


def _trainee(db_session, instructor_id, name, status):
    trainee = training_models.Trainee(name=name, mobile="9876543210", instructor_id=instructor_id, status=status)
    db_session.add(trainee)
    db_session.flush()
    return trainee


def _project(db_session, trainee, name, status, due_date=None):
    project = training_models.Project(
        trainee_id=trainee.id,
        instructor_id=trainee.instructor_id,
        project_name=name,
        start_date=date(2025, 1, 1),
        due_date=due_date,
        status=status,
    )
    db_session.add(project)
    db_session.flush()
    return project


@pytest.fixture()
def populated(db_session, admin, instructor):
    finance = account_models.Instructor(
        name="Fatima Instructor",
        email="fatima@example.com",
        hashed_password="hash",
        department="Finance",
        created_by=admin.id,
    )
    db_session.add(finance)
    db_session.flush()

    tara = _trainee(db_session, instructor.id, "Tara", training_models.TraineeStatus.APPROVED)
    ben = _trainee(db_session, instructor.id, "Ben", training_models.TraineeStatus.APPROVED)
    _trainee(db_session, instructor.id, "Pia", training_models.TraineeStatus.PENDING)
    _trainee(db_session, finance.id, "Raj", training_models.TraineeStatus.REJECTED)
    fin = _trainee(db_session, finance.id, "Fin", training_models.TraineeStatus.APPROVED)

    done = _project(db_session, tara, "Ledger Cleanup", training_models.ProjectStatus.COMPLETED)
    running = _project(db_session, tara, "Stock Count", training_models.ProjectStatus.IN_PROGRESS, date(2025, 3, 12))
    _project(db_session, ben, "Payroll", training_models.ProjectStatus.ASSIGNED, date(2025, 3, 30))
    _project(db_session, fin, "Tax Filing", training_models.ProjectStatus.COMPLETED)

    db_session.add_all(
        [
            training_models.ProgressReview(
                trainee_id=tara.id,
                shared_by=instructor.id,
                status=training_models.ProgressReviewStatus.IN_REVIEW,
            ),
            training_models.ProjectProgress(
                project_id=running.id,
                task_description="Counted aisle 1",
                percentage_completed=20,
                entry_date=date(2025, 3, 3),
            ),
            training_models.ProjectProgress(
                project_id=running.id,
                task_description="Counted aisle 2",
                percentage_completed=40,
                entry_date=date(2025, 3, 8),
            ),
            training_models.ProjectProgress(
                project_id=done.id,
                task_description="Closed ledgers",
                percentage_completed=100,
                entry_date=date(2025, 2, 20),
            ),
            training_models.Document(
                trainee_id=tara.id,
                document_type=training_models.DocumentType.ATTENDANCE_RECORD,
                file_path="/uploads/march.pdf",
                uploaded_by=instructor.id,
                uploaded_at=datetime(2025, 3, 5, 9, 0, tzinfo=timezone.utc),
            ),
            training_models.Document(
                trainee_id=ben.id,
                document_type=training_models.DocumentType.ATTENDANCE_RECORD,
                file_path="/uploads/february.pdf",
                uploaded_by=instructor.id,
                uploaded_at=datetime(2025, 2, 27, 9, 0, tzinfo=timezone.utc),
            ),
            notification_models.Notification(
                recipient_id=admin.id,
                recipient_type=AccountRole.ADMIN,
                title="New trainee",
                message="Pia is waiting for approval",
            ),
            notification_models.Notification(
                recipient_id=instructor.id,
                recipient_type=AccountRole.INSTRUCTOR,
                title="Approved",
                message="Tara was approved",
            ),
        ]
    )
    db_session.commit()
    return {"tara": tara, "ben": ben, "running": running}


def test_admin_dashboard_counts_and_departments(db_session, admin, populated):
    result = router_admin.admin_dashboard(
        db=db_session,
        current_user=Principal(role=AccountRole.ADMIN, account=admin),
    )

    assert result.stats.model_dump() == {
        "total_admins": 1,
        "total_instructors": 2,
        "total_trainees": 5,
        "pending_approvals": 1,
        "approved_trainees": 3,
        "rejected_trainees": 1,
        "total_projects": 4,
        "active_projects": 2,
        "completed_projects": 2,
        "pending_reviews": 1,
    }
    assert [n.title for n in result.recent_activities] == ["New trainee"]
    assert [d.model_dump() for d in result.department_stats] == [
        {"department": "Engineering", "total_trainees": 3, "approved_trainees": 2, "completed_projects": 1},
        {"department": "Finance", "total_trainees": 2, "approved_trainees": 1, "completed_projects": 1},
    ]


def test_department_without_trainees_is_listed(db_session, admin, instructor):
    assert dashboard.department_stats(db_session) == [
        {"department": "Engineering", "total_trainees": 0, "approved_trainees": 0, "completed_projects": 0}
    ]


def test_instructor_dashboard_is_scoped_to_instructor(db_session, instructor, populated):
    result = dashboard.instructor_dashboard(db_session, instructor_id=instructor.id, today=TODAY)

    assert result["overview"] == {
        "total_trainees": 3,
        "pending_approvals": 1,
        "approved_trainees": 2,
        "rejected_trainees": 0,
        "total_projects": 3,
        "active_projects": 2,
        "completed_projects": 1,
    }
    assert [n.title for n in result["recent_activities"]] == ["Approved"]
    # due within a week and not completed
    assert [p.project_name for p in result["upcoming_deadlines"]] == ["Stock Count"]


def test_instructor_dashboard_route(db_session, instructor, populated):
    result = router_instructor.instructor_dashboard(
        db=db_session,
        current_user=Principal(role=AccountRole.INSTRUCTOR, account=instructor),
    )
    assert result.overview.total_trainees == 3


def test_monthly_status_for_approved_trainees(db_session, instructor, populated):
    result = dashboard.monthly_status(db_session, instructor_id=instructor.id, month=3, year=2025)

    assert result["month"] == 3 and result["year"] == 2025
    assert result["trainees"] == [
        {
            "trainee_id": populated["ben"].id,
            "trainee_name": "Ben",
            "institution_name": None,
            "has_attendance_upload": False,
            "progress_entries": 0,
            "active_projects": 1,
            "completed_projects": 0,
        },
        {
            "trainee_id": populated["tara"].id,
            "trainee_name": "Tara",
            "institution_name": None,
            "has_attendance_upload": True,
            "progress_entries": 2,
            "active_projects": 1,
            "completed_projects": 1,
        },
    ]


def test_monthly_status_defaults_to_current_month(db_session, instructor, populated):
    result = dashboard.monthly_status(db_session, instructor_id=instructor.id, today=date(2025, 2, 14))

    assert (result["month"], result["year"]) == (2, 2025)
    by_name = {row["trainee_name"]: row for row in result["trainees"]}
    assert by_name["Ben"]["has_attendance_upload"] is True
    assert by_name["Tara"]["has_attendance_upload"] is False
    assert by_name["Tara"]["progress_entries"] == 1


def test_monthly_status_december_rolls_into_next_year(db_session, instructor, populated):
    result = dashboard.monthly_status(db_session, instructor_id=instructor.id, month=12, year=2024)
    assert all(row["progress_entries"] == 0 for row in result["trainees"])


@pytest.mark.parametrize("month", [0, 13])
def test_monthly_status_rejects_bad_month(db_session, instructor, month):
    with pytest.raises(ValidationError) as excinfo:
        router_instructor.monthly_status(
            month=month,
            year=2025,
            db=db_session,
            current_user=Principal(role=AccountRole.INSTRUCTOR, account=instructor),
        )
    assert excinfo.value.detail[0]["field"] == "month"
