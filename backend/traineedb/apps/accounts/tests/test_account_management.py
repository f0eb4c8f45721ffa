from __future__ import annotations

import pytest
from fastapi import HTTPException

from traineedb.apps.accounts import models, router_admin, router_instructor, schemas, services
from traineedb.apps.accounts.models import AccountRole
from traineedb.apps.training import models as training_models
from traineedb.security import Principal, verify_password


@pytest.fixture()
def as_admin(admin) -> Principal:
    return Principal(role=AccountRole.ADMIN, account=admin)


@pytest.fixture()
def second_admin(db_session) -> models.Admin:
    return services.create_admin(
        db_session,
        schemas.AdminCreate(name="Bela Admin", email="bela@example.com", password="b3la-pass"),
    )


@pytest.fixture()
def lone_instructor(db_session, second_admin) -> models.Instructor:
    return services.create_instructor(
        db_session,
        schemas.InstructorCreate(
            name="Omar Instructor",
            email="omar@example.com",
            password="0mar-pass",
            department="Finance",
        ),
        created_by=second_admin.id,
    )


# ---------------------------------------------------------------------------
# Explicit nulls on required columns
# ---------------------------------------------------------------------------


def test_admin_update_rejects_null_name(db_session, as_admin, second_admin):
    payload = schemas.AdminUpdate.model_validate({"name": None, "title": "Ops"})

    with pytest.raises(HTTPException) as excinfo:
        router_admin.update_admin(second_admin.id, payload, db=db_session, current_user=as_admin)
    assert excinfo.value.status_code == 400
    assert "name" in excinfo.value.detail

    db_session.refresh(second_admin)
    assert second_admin.name == "Bela Admin"
    assert second_admin.title is None


@pytest.mark.parametrize("field", ["name", "department", "is_active"])
def test_instructor_update_rejects_null_required_fields(db_session, as_admin, lone_instructor, field):
    payload = schemas.InstructorUpdate.model_validate({field: None})

    with pytest.raises(HTTPException) as excinfo:
        router_admin.update_instructor(lone_instructor.id, payload, db=db_session, current_user=as_admin)
    assert excinfo.value.status_code == 400

    db_session.refresh(lone_instructor)
    assert lone_instructor.name == "Omar Instructor"
    assert lone_instructor.department == "Finance"
    assert lone_instructor.is_active is True


def test_instructor_update_allows_clearing_optional_fields(db_session, as_admin, lone_instructor):
    lone_instructor.designation = "Lead"
    db_session.commit()

    updated = router_admin.update_instructor(
        lone_instructor.id,
        schemas.InstructorUpdate.model_validate({"designation": None, "department": " Audit "}),
        db=db_session,
        current_user=as_admin,
    )
    assert updated.designation is None
    assert updated.department == "Audit"


# ---------------------------------------------------------------------------
# Deletes
# ---------------------------------------------------------------------------


def test_admin_cannot_delete_self(db_session, admin, as_admin):
    with pytest.raises(HTTPException) as excinfo:
        router_admin.delete_admin(admin.id, db=db_session, current_user=as_admin)
    assert excinfo.value.status_code == 400
    assert db_session.get(models.Admin, admin.id) is not None


def test_admin_who_created_instructors_is_kept(db_session, as_admin, second_admin, lone_instructor):
    with pytest.raises(HTTPException) as excinfo:
        router_admin.delete_admin(second_admin.id, db=db_session, current_user=as_admin)
    assert excinfo.value.status_code == 400
    assert "1 instructor" in excinfo.value.detail


def test_delete_admin(db_session, as_admin, second_admin):
    router_admin.delete_admin(second_admin.id, db=db_session, current_user=as_admin)
    assert db_session.get(models.Admin, second_admin.id) is None

    with pytest.raises(HTTPException) as excinfo:
        router_admin.delete_admin(second_admin.id, db=db_session, current_user=as_admin)
    assert excinfo.value.status_code == 404


def test_instructor_with_trainees_cannot_be_deleted(db_session, as_admin, lone_instructor):
    db_session.add(
        training_models.Trainee(
            name="Tara Trainee",
            mobile="9876543210",
            instructor_id=lone_instructor.id,
            status=training_models.TraineeStatus.REJECTED,
        )
    )
    db_session.commit()

    with pytest.raises(HTTPException) as excinfo:
        router_admin.delete_instructor(lone_instructor.id, db=db_session, current_user=as_admin)
    assert excinfo.value.status_code == 400
    assert db_session.get(models.Instructor, lone_instructor.id) is not None


def test_delete_instructor_without_trainees(db_session, as_admin, lone_instructor):
    router_admin.delete_instructor(lone_instructor.id, db=db_session, current_user=as_admin)
    assert db_session.get(models.Instructor, lone_instructor.id) is None


# ---------------------------------------------------------------------------
# Own profile and password
# ---------------------------------------------------------------------------


def test_admin_profile_update_normalises_email(db_session, second_admin):
    me = Principal(role=AccountRole.ADMIN, account=second_admin)
    assert router_admin.get_profile(current_user=me) is second_admin

    updated = router_admin.update_profile(
        schemas.AdminProfileUpdate(name=" Bela B ", email="Bela.B@Example.com", title="Director"),
        db=db_session,
        current_user=me,
    )
    assert updated.name == "Bela B"
    assert updated.email == "bela.b@example.com"
    assert updated.title == "Director"


def test_profile_email_must_be_unique_across_roles(db_session, second_admin, lone_instructor):
    me = Principal(role=AccountRole.INSTRUCTOR, account=lone_instructor)

    with pytest.raises(HTTPException) as excinfo:
        router_instructor.update_profile(
            schemas.InstructorProfileUpdate(email="bela@example.com"),
            db=db_session,
            current_user=me,
        )
    assert excinfo.value.status_code == 400
    db_session.refresh(lone_instructor)
    assert lone_instructor.email == "omar@example.com"


def test_profile_update_rejects_null_email(db_session, lone_instructor):
    me = Principal(role=AccountRole.INSTRUCTOR, account=lone_instructor)

    with pytest.raises(HTTPException) as excinfo:
        router_instructor.update_profile(
            schemas.InstructorProfileUpdate.model_validate({"email": None}),
            db=db_session,
            current_user=me,
        )
    assert excinfo.value.status_code == 400


def test_instructor_changes_own_password(db_session, lone_instructor):
    me = Principal(role=AccountRole.INSTRUCTOR, account=lone_instructor)
    assert router_instructor.get_profile(current_user=me).department == "Finance"

    with pytest.raises(HTTPException) as excinfo:
        router_instructor.change_password(
            schemas.ChangePasswordRequest(current_password="not-it", new_password="n3w-pass"),
            db=db_session,
            current_user=me,
        )
    assert excinfo.value.status_code == 400
    assert verify_password("0mar-pass", lone_instructor.hashed_password)

    router_instructor.change_password(
        schemas.ChangePasswordRequest(current_password="0mar-pass", new_password="n3w-pass"),
        db=db_session,
        current_user=me,
    )
    db_session.refresh(lone_instructor)
    assert verify_password("n3w-pass", lone_instructor.hashed_password)
    assert not verify_password("0mar-pass", lone_instructor.hashed_password)


def test_admin_changes_own_password(db_session, second_admin):
    me = Principal(role=AccountRole.ADMIN, account=second_admin)

    result = router_admin.change_password(
        schemas.ChangePasswordRequest(current_password="b3la-pass", new_password="fresh-pass"),
        db=db_session,
        current_user=me,
    )
    assert result.detail == "Password changed successfully"
    login = services.authenticate(
        db_session,
        login_req=schemas.LoginRequest(email="bela@example.com", password="fresh-pass", role=AccountRole.ADMIN),
    )
    assert login.id == second_admin.id
