from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import HTTPException

from traineedb import security
from traineedb.apps.accounts.models import AccountRole


def test_password_hash_round_trip():
    hashed = security.get_password_hash("s3cret!")
    assert hashed.startswith("$argon2")
    assert security.verify_password("s3cret!", hashed)
    assert not security.verify_password("wrong", hashed)
    assert not security.verify_password("s3cret!", "not-a-hash")


def test_token_resolves_to_principal(db_session, instructor):
    principal = security.Principal(role=AccountRole.INSTRUCTOR, account=instructor)
    token = security.create_token_for(principal)

    resolved = security.get_current_principal(token=token, db=db_session)
    assert resolved.role == AccountRole.INSTRUCTOR
    assert resolved.id == instructor.id
    assert resolved.is_instructor and not resolved.is_admin


def test_token_role_selects_account_table(db_session, admin, instructor):
    # same numeric id space in both tables; the role claim decides
    token = security.create_access_token(data={"sub": str(admin.id), "role": "admin"})
    resolved = security.get_current_principal(token=token, db=db_session)
    assert resolved.account is admin


@pytest.mark.parametrize(
    "claims",
    [
        {"sub": "1", "role": "trainee"},
        {"sub": "abc", "role": "admin"},
        {"role": "admin"},
    ],
)
def test_malformed_claims_are_unauthorized(db_session, admin, claims):
    token = security.create_access_token(data=claims)
    with pytest.raises(HTTPException) as excinfo:
        security.get_current_principal(token=token, db=db_session)
    assert excinfo.value.status_code == 401


def test_expired_token_is_unauthorized(db_session, admin):
    token = security.create_access_token(
        data={"sub": str(admin.id), "role": "admin"},
        expires_delta=timedelta(seconds=-1),
    )
    with pytest.raises(HTTPException) as excinfo:
        security.get_current_principal(token=token, db=db_session)
    assert excinfo.value.status_code == 401


def test_unknown_account_is_unauthorized(db_session):
    token = security.create_access_token(data={"sub": "999", "role": "instructor"})
    with pytest.raises(HTTPException) as excinfo:
        security.get_current_principal(token=token, db=db_session)
    assert excinfo.value.status_code == 401


def test_inactive_principal_is_blocked(db_session, instructor):
    instructor.is_active = False
    db_session.commit()
    principal = security.Principal(role=AccountRole.INSTRUCTOR, account=instructor)

    with pytest.raises(HTTPException) as excinfo:
        security.get_current_active_principal(principal=principal)
    assert excinfo.value.status_code == 400


def test_role_dependency_rejects_other_role(admin, instructor):
    dependency = security.require_roles(AccountRole.ADMIN)

    assert dependency(principal=security.Principal(role=AccountRole.ADMIN, account=admin)).id == admin.id
    with pytest.raises(HTTPException) as excinfo:
        dependency(principal=security.Principal(role=AccountRole.INSTRUCTOR, account=instructor))
    assert excinfo.value.status_code == 403


def test_require_roles_rejects_unknown_role_name():
    with pytest.raises(ValueError):
        security.require_roles("superuser")
