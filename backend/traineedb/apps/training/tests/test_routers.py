from __future__ import annotations

import asyncio
from datetime import date
import io
import json
from pathlib import Path

import pytest
from fastapi import BackgroundTasks, HTTPException, UploadFile
from starlette.requests import Request

from traineedb.apps.accounts.models import AccountRole
from traineedb.apps.training import models as training_models
from traineedb.apps.training import router_admin, router_instructor
from traineedb.apps.training import schemas as training_schemas
from traineedb.apps.workflow import InvalidStateError, NotFoundError, ValidationError
from traineedb.main import workflow_error_handler
from traineedb.security import Principal


def _upload(name: str, content: bytes = b"%PDF-1.4 test") -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename=name)


def _trainee_folder(trainee_id: int) -> Path:
    return router_instructor._UPLOAD_DIR / f"trainee_{trainee_id}"


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch) -> Path:
    folder = tmp_path.resolve()
    monkeypatch.setattr(router_instructor, "_UPLOAD_DIR", folder)
    return folder


@pytest.fixture()
def as_admin(admin) -> Principal:
    return Principal(role=AccountRole.ADMIN, account=admin)


@pytest.fixture()
def as_instructor(instructor) -> Principal:
    return Principal(role=AccountRole.INSTRUCTOR, account=instructor)


@pytest.fixture()
def running_project(db_session, instructor) -> training_models.Project:
    trainee = training_models.Trainee(
        name="Tara Trainee",
        mobile="9876543210",
        instructor_id=instructor.id,
        status=training_models.TraineeStatus.APPROVED,
    )
    db_session.add(trainee)
    db_session.flush()
    project = training_models.Project(
        trainee_id=trainee.id,
        instructor_id=instructor.id,
        project_name="Inventory Dashboard",
        start_date=date(2025, 1, 1),
        status=training_models.ProjectStatus.IN_PROGRESS,
    )
    db_session.add(project)
    db_session.commit()
    return project


def test_submit_and_decide_through_routers(db_session, as_admin, as_instructor):
    created = router_instructor.create_trainee(
        training_schemas.TraineeCreate(name="Tara Trainee", mobile="9876543210"),
        db=db_session,
        current_user=as_instructor,
    )
    assert created.status == training_models.TraineeStatus.PENDING

    pending = router_admin.list_pending_trainees(db=db_session, current_user=as_admin)
    assert [t.id for t in pending] == [created.id]

    background_tasks = BackgroundTasks()
    decided = router_admin.decide_trainee(
        created.id,
        training_schemas.TraineeDecision(decision="approved", comments="ok"),
        background_tasks,
        db=db_session,
        current_user=as_admin,
    )
    assert decided.status == training_models.TraineeStatus.APPROVED
    assert len(background_tasks.tasks) == 1

    with pytest.raises(InvalidStateError):
        router_admin.decide_trainee(
            created.id,
            training_schemas.TraineeDecision(decision="rejected"),
            BackgroundTasks(),
            db=db_session,
            current_user=as_admin,
        )


def test_complete_project_stores_both_files(db_session, as_instructor, running_project):
    result = router_instructor.complete_project(
        running_project.id,
        BackgroundTasks(),
        performance_rating=9,
        project_report=_upload("report.pdf"),
        attendance_document=_upload("attendance.png"),
        db=db_session,
        current_user=as_instructor,
    )

    assert result.status == training_models.ProjectStatus.COMPLETED
    assert result.performance_rating == 9
    assert result.duration_days == (result.end_date - date(2025, 1, 1)).days
    assert Path(result.project_report_path).is_file()
    assert Path(result.attendance_document_path).is_file()
    assert Path(result.project_report_path).parent == _trainee_folder(running_project.trainee_id).resolve()


def test_complete_project_missing_file_writes_nothing(db_session, as_instructor, running_project):
    with pytest.raises(ValidationError) as excinfo:
        router_instructor.complete_project(
            running_project.id,
            BackgroundTasks(),
            performance_rating=9,
            project_report=_upload("report.pdf"),
            attendance_document=None,
            db=db_session,
            current_user=as_instructor,
        )

    assert [item["field"] for item in excinfo.value.detail] == ["documents"]
    folder = _trainee_folder(running_project.trainee_id)
    assert not folder.exists() or not any(folder.iterdir())
    db_session.refresh(running_project)
    assert running_project.status == training_models.ProjectStatus.IN_PROGRESS


def test_complete_project_rejected_rating_removes_saved_files(db_session, as_instructor, running_project):
    with pytest.raises(ValidationError):
        router_instructor.complete_project(
            running_project.id,
            BackgroundTasks(),
            performance_rating=11,
            project_report=_upload("report.pdf"),
            attendance_document=_upload("attendance.pdf"),
            db=db_session,
            current_user=as_instructor,
        )

    folder = _trainee_folder(running_project.trainee_id)
    assert not folder.exists() or not any(folder.iterdir())


def test_upload_rejects_disallowed_extension(db_session, as_instructor, running_project):
    with pytest.raises(HTTPException) as excinfo:
        router_instructor.upload_document(
            trainee_id=running_project.trainee_id,
            project_id=None,
            document_type=training_models.DocumentType.OTHER,
            document_name=None,
            file=_upload("payload.exe"),
            db=db_session,
            current_user=as_instructor,
        )
    assert excinfo.value.status_code == 400


def test_upload_document_defaults_name_to_filename(db_session, as_instructor, running_project):
    document = router_instructor.upload_document(
        trainee_id=running_project.trainee_id,
        project_id=running_project.id,
        document_type=training_models.DocumentType.OTHER,
        document_name=None,
        file=_upload("weekly-notes.pdf"),
        db=db_session,
        current_user=as_instructor,
    )
    assert document.document_name == "weekly-notes.pdf"
    assert Path(document.file_path).is_file()


def test_instructor_cannot_read_foreign_project(db_session, running_project):
    stranger = Principal(
        role=AccountRole.INSTRUCTOR,
        account=type("Account", (), {"id": 999, "is_active": True})(),
    )
    with pytest.raises(NotFoundError):
        router_instructor.get_project(running_project.id, db=db_session, current_user=stranger)


def test_reads_take_no_row_locks_but_writes_do(db_session, as_admin, as_instructor, running_project, monkeypatch):
    locks = []
    real_get = db_session.get

    def recording_get(model, ident, **kwargs):
        locks.append((model.__name__, bool(kwargs.get("with_for_update"))))
        return real_get(model, ident, **kwargs)

    monkeypatch.setattr(db_session, "get", recording_get)

    router_instructor.get_project(running_project.id, db=db_session, current_user=as_instructor)
    router_instructor.get_trainee(running_project.trainee_id, db=db_session, current_user=as_instructor)
    router_admin.get_trainee(running_project.trainee_id, db=db_session, current_user=as_admin)
    assert locks == [("Project", False), ("Trainee", False), ("Trainee", False)]

    locks.clear()
    router_instructor.update_project(
        running_project.id,
        training_schemas.ProjectUpdate(description="Phase two"),
        db=db_session,
        current_user=as_instructor,
    )
    assert locks[0] == ("Project", True)

def _request(path: str) -> Request:
    return Request({"type": "http", "method": "PUT", "path": path, "headers": [], "query_string": b""})


def test_workflow_error_handler_shapes_response():
    error = ValidationError(
        [
            {"field": "documents", "reason": "both documents required"},
            {"field": "performance_rating", "reason": "performance rating (1-10) required"},
        ]
    )
    response = asyncio.run(workflow_error_handler(_request("/instructor/projects/9/complete"), error))

    assert response.status_code == 422
    body = json.loads(response.body)
    assert body["error"] == "missing_requirements"
    assert [item["field"] for item in body["detail"]] == ["documents", "performance_rating"]


@pytest.mark.parametrize(
    "error,status_code,code",
    [
        (NotFoundError("trainee", 5), 404, "not_found"),
        (InvalidStateError("trainee 5 is approved"), 409, "invalid_transition"),
    ],
)
def test_workflow_error_handler_status_codes(error, status_code, code):
    response = asyncio.run(workflow_error_handler(_request("/admin/trainees/5/decision"), error))
    assert response.status_code == status_code
    assert json.loads(response.body)["error"] == code
