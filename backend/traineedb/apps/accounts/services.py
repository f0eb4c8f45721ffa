# backend/traineedb/apps/accounts/services.py

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from traineedb.apps.training import models as training_models
from traineedb.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    Principal,
    create_token_for,
    get_password_hash,
    verify_password,
)

from . import models, schemas

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

Account = Union[models.Admin, models.Instructor]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AuthenticationError(Exception):
    """Raised when login credentials or a one-time code are invalid."""


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def _normalise_email(value: str) -> str:
    return value.strip().lower()


def _validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )


def _model_for(role: models.AccountRole):
    if role == models.AccountRole.ADMIN:
        return models.Admin
    if role == models.AccountRole.INSTRUCTOR:
        return models.Instructor
    raise ValueError(f"Unhandled role {role!r}")


def _email_taken(db: Session, email: str) -> bool:
    # One address identifies one person across both account tables.
    for model in (models.Admin, models.Instructor):
        if db.query(model.id).filter(model.email == email).first():
            return True
    return False


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_account_by_email(
    db: Session,
    *,
    role: models.AccountRole,
    email: str,
) -> Optional[Account]:
    model = _model_for(role)
    return db.query(model).filter(model.email == _normalise_email(email)).first()


def list_admin_ids(db: Session, *, active_only: bool = True) -> List[int]:
    qs = db.query(models.Admin.id)
    if active_only:
        qs = qs.filter(models.Admin.is_active.is_(True))
    return [row[0] for row in qs.order_by(models.Admin.id.asc()).all()]


def list_admins(db: Session) -> List[models.Admin]:
    return db.query(models.Admin).order_by(models.Admin.name.asc()).all()


def list_instructors(
    db: Session,
    *,
    department: Optional[str] = None,
    active_only: bool = False,
) -> List[models.Instructor]:
    qs = db.query(models.Instructor)
    if department:
        qs = qs.filter(models.Instructor.department == department)
    if active_only:
        qs = qs.filter(models.Instructor.is_active.is_(True))
    return qs.order_by(models.Instructor.name.asc()).all()


# ---------------------------------------------------------------------------
# Admins
# ---------------------------------------------------------------------------


def create_admin(db: Session, data: schemas.AdminCreate) -> models.Admin:
    email = _normalise_email(data.email)
    if _email_taken(db, email):
        raise ValueError("An account with this email already exists.")

    _validate_password_strength(data.password)
    admin = models.Admin(
        name=data.name.strip(),
        email=email,
        hashed_password=get_password_hash(data.password),
        phone=data.phone,
        date_of_birth=data.date_of_birth,
        title=data.title,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def _apply_changes(
    db: Session,
    account: Account,
    changes: dict,
    *,
    strip: Tuple[str, ...] = (),
    required: Tuple[str, ...] = (),
) -> Account:
    nulls = [field for field in required if field in changes and changes[field] is None]
    if nulls:
        raise ValueError(f"{', '.join(nulls)} cannot be null.")

    for field, value in changes.items():
        if field in strip and value is not None:
            value = value.strip()
        setattr(account, field, value)
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


def update_admin(db: Session, admin: models.Admin, data: schemas.AdminUpdate) -> models.Admin:
    return _apply_changes(
        db,
        admin,
        data.model_dump(exclude_unset=True),
        strip=("name",),
        required=("name", "is_active"),
    )


def delete_admin(db: Session, admin: models.Admin, *, acting_admin_id: int) -> None:
    if admin.id == acting_admin_id:
        raise ValueError("You cannot delete your own account.")
    created = db.query(models.Instructor.id).filter(models.Instructor.created_by == admin.id).count()
    if created:
        raise ValueError(f"Cannot delete an admin who has created {created} instructor(s).")
    db.delete(admin)
    db.commit()
    logger.info("Admin deleted", extra={"admin_id": admin.id, "deleted_by": acting_admin_id})


# ---------------------------------------------------------------------------
# Instructors
# ---------------------------------------------------------------------------


def create_instructor(
    db: Session,
    data: schemas.InstructorCreate,
    *,
    created_by: Optional[int],
) -> models.Instructor:
    email = _normalise_email(data.email)
    if _email_taken(db, email):
        raise ValueError("An account with this email already exists.")

    _validate_password_strength(data.password)
    instructor = models.Instructor(
        name=data.name.strip(),
        email=email,
        hashed_password=get_password_hash(data.password),
        phone=data.phone,
        date_of_birth=data.date_of_birth,
        department=data.department.strip(),
        designation=data.designation,
        created_by=created_by,
        is_active=True,
    )
    db.add(instructor)
    db.commit()
    db.refresh(instructor)
    return instructor


def update_instructor(
    db: Session,
    instructor: models.Instructor,
    data: schemas.InstructorUpdate,
) -> models.Instructor:
    return _apply_changes(
        db,
        instructor,
        data.model_dump(exclude_unset=True),
        strip=("name", "department"),
        required=("name", "department", "is_active"),
    )


def delete_instructor(db: Session, instructor: models.Instructor) -> None:
    """
    Hard delete. Trainees, their projects and documents all point at the
    instructor, so an instructor who still owns trainees is refused and
    should be deactivated instead.
    """
    owned = (
        db.query(training_models.Trainee.id)
        .filter(training_models.Trainee.instructor_id == instructor.id)
        .count()
    )
    if owned:
        raise ValueError(
            f"Cannot delete an instructor who has {owned} trainee(s). Deactivate the account instead."
        )
    db.delete(instructor)
    db.commit()
    logger.info("Instructor deleted", extra={"instructor_id": instructor.id})


# ---------------------------------------------------------------------------
# Own profile (either role)
# ---------------------------------------------------------------------------


def update_profile(
    db: Session,
    account: Account,
    data: Union[schemas.AdminProfileUpdate, schemas.InstructorProfileUpdate],
) -> Account:
    changes = data.model_dump(exclude_unset=True)
    if changes.get("email") is not None:
        email = _normalise_email(changes["email"])
        if email != account.email and _email_taken(db, email):
            raise ValueError("An account with this email already exists.")
        changes["email"] = email
    return _apply_changes(db, account, changes, strip=("name",), required=("name", "email"))


def change_password(
    db: Session,
    account: Account,
    *,
    current_password: str,
    new_password: str,
) -> None:
    if not verify_password(current_password, account.hashed_password):
        raise ValueError("Current password is incorrect.")
    _validate_password_strength(new_password)
    account.hashed_password = get_password_hash(new_password)
    db.add(account)
    db.commit()
    logger.info("Password changed", extra={"account_id": account.id})


# ---------------------------------------------------------------------------
# Authentication and access tokens
# ---------------------------------------------------------------------------


def _mark_logged_in(db: Session, account: Account) -> None:
    account.last_login_at = datetime.now(timezone.utc)
    db.add(account)
    db.commit()
    db.refresh(account)


def authenticate(db: Session, *, login_req: schemas.LoginRequest) -> Principal:
    """
    Password login for an admin or instructor.

    Unknown email, wrong password and deactivated accounts all raise the same
    AuthenticationError so callers cannot tell which accounts exist.
    """
    account = get_account_by_email(db, role=login_req.role, email=login_req.email)
    if account is None or not verify_password(login_req.password, account.hashed_password):
        logger.info("Login failed", extra={"role": login_req.role.value})
        raise AuthenticationError("Invalid email or password")
    if not account.is_active:
        logger.info("Login refused for inactive account", extra={"role": login_req.role.value, "account_id": account.id})
        raise AuthenticationError("Invalid email or password")

    _mark_logged_in(db, account)
    return Principal(role=login_req.role, account=account)


def complete_otp_login(
    db: Session,
    *,
    role: models.AccountRole,
    account_id: int,
) -> Principal:
    account = db.get(_model_for(role), account_id)
    if account is None or not account.is_active:
        raise AuthenticationError("Account not found")
    _mark_logged_in(db, account)
    return Principal(role=role, account=account)


def issue_access_token(principal: Principal) -> Tuple[str, int]:
    """Returns (token, expires_in_seconds)."""
    return create_token_for(principal), ACCESS_TOKEN_EXPIRE_MINUTES * 60
