from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import update

from traineedb.apps.accounts.models import AccountRole
from traineedb.apps.audit import models as audit_models
from traineedb.apps.training import models as training_models
from traineedb.apps.workflow import (
    InvalidStateError,
    ValidationError,
    apply_transition,
    check_transition,
    conditional_update,
)


def _create_trainee(db_session, instructor, **overrides) -> training_models.Trainee:
    values = dict(
        name="Tara Trainee",
        mobile="9876543210",
        instructor_id=instructor.id,
        status=training_models.TraineeStatus.PENDING,
    )
    values.update(overrides)
    trainee = training_models.Trainee(**values)
    db_session.add(trainee)
    db_session.commit()
    return trainee


def _decision(admin_id):
    return {"approved_by": admin_id, "approved_at": datetime.now(timezone.utc)}


def test_apply_transition_updates_entity_and_writes_audit(db_session, admin, instructor):
    trainee = _create_trainee(db_session, instructor)

    apply_transition(
        db_session,
        actor_id=admin.id,
        actor_role=AccountRole.ADMIN,
        entity_type="trainee",
        entity=trainee,
        to_state=training_models.TraineeStatus.APPROVED,
        changes=_decision(admin.id),
    )
    db_session.commit()

    assert trainee.status == training_models.TraineeStatus.APPROVED
    assert trainee.approved_by == admin.id

    event = (
        db_session.query(audit_models.AuditEvent)
        .filter(audit_models.AuditEvent.entity_type == "trainee", audit_models.AuditEvent.action == "transition")
        .one()
    )
    assert event.before == {"status": "pending"}
    assert event.after["status"] == "approved"
    assert event.actor_role == AccountRole.ADMIN


def test_check_transition_accepts_plain_strings_and_enums():
    check_transition(
        None,
        entity_type="project",
        from_state="assigned",
        to_state=training_models.ProjectStatus.IN_PROGRESS,
        before_obj=None,
        after_obj={},
    )


def test_check_transition_rejects_unknown_move():
    with pytest.raises(InvalidStateError) as excinfo:
        check_transition(
            None,
            entity_type="project",
            from_state=training_models.ProjectStatus.IN_PROGRESS,
            to_state=training_models.ProjectStatus.ASSIGNED,
            before_obj=None,
            after_obj={},
        )
    assert excinfo.value.code == "invalid_transition"


def test_terminal_states_allow_nothing():
    with pytest.raises(InvalidStateError):
        check_transition(
            None,
            entity_type="progress_review",
            from_state="completed",
            to_state="completed",
            before_obj=None,
            after_obj={},
        )


def test_project_completion_guard_reports_every_missing_requirement():
    with pytest.raises(ValidationError) as excinfo:
        check_transition(
            None,
            entity_type="project",
            from_state="in_progress",
            to_state="completed",
            before_obj=None,
            after_obj={"project_report_path": "/tmp/report.pdf", "performance_rating": 11},
        )
    assert excinfo.value.code == "missing_requirements"
    fields = {item["field"] for item in excinfo.value.detail}
    assert fields == {"documents", "performance_rating", "end_date"}
    reasons = {item["reason"] for item in excinfo.value.detail}
    assert "both documents required" in reasons


def test_project_completion_guard_rejects_bool_rating():
    with pytest.raises(ValidationError) as excinfo:
        check_transition(
            None,
            entity_type="project",
            from_state="assigned",
            to_state="completed",
            before_obj=None,
            after_obj={
                "project_report_path": "a.pdf",
                "attendance_document_path": "b.pdf",
                "performance_rating": True,
                "end_date": date(2025, 1, 31),
            },
        )
    assert [item["field"] for item in excinfo.value.detail] == ["performance_rating"]


def test_failed_guard_leaves_entity_unchanged(db_session, admin, instructor):
    trainee = _create_trainee(db_session, instructor)

    with pytest.raises(ValidationError):
        apply_transition(
            db_session,
            actor_id=admin.id,
            actor_role=AccountRole.ADMIN,
            entity_type="trainee",
            entity=trainee,
            to_state=training_models.TraineeStatus.APPROVED,
            changes={"approved_by": admin.id},
        )
    db_session.rollback()

    db_session.refresh(trainee)
    assert trainee.status == training_models.TraineeStatus.PENDING
    assert db_session.query(audit_models.AuditEvent).count() == 0


def test_conditional_update_misses_when_status_moved(db_session, instructor):
    trainee = _create_trainee(db_session, instructor)

    assert conditional_update(
        db_session,
        trainee,
        expected_status=training_models.TraineeStatus.REJECTED,
        values={"approval_comments": "x"},
    ) is False
    assert conditional_update(
        db_session,
        trainee,
        expected_status=training_models.TraineeStatus.PENDING,
        values={"approval_comments": "x"},
    ) is True


def test_stale_entity_loses_race(db_session, admin, instructor):
    trainee = _create_trainee(db_session, instructor)

    # Another writer approves the row; the loaded instance still says pending.
    db_session.execute(
        update(training_models.Trainee)
        .where(training_models.Trainee.id == trainee.id)
        .values(status=training_models.TraineeStatus.APPROVED, approved_by=admin.id)
        .execution_options(synchronize_session=False)
    )
    db_session.commit()
    assert trainee.status == training_models.TraineeStatus.PENDING

    with pytest.raises(InvalidStateError):
        apply_transition(
            db_session,
            actor_id=admin.id,
            actor_role=AccountRole.ADMIN,
            entity_type="trainee",
            entity=trainee,
            to_state=training_models.TraineeStatus.REJECTED,
            changes=_decision(admin.id),
        )
    db_session.rollback()

    db_session.refresh(trainee)
    assert trainee.status == training_models.TraineeStatus.APPROVED
