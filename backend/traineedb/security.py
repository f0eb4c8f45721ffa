# backend/traineedb/security.py

"""
Security helpers for the trainee workflow backend.

Responsibilities:
- Password hashing and verification
- JWT access token creation and decoding
- FastAPI dependencies resolving the acting principal (admin or instructor)
- Role-based access helpers for router dependencies

Admins and instructors live in separate tables, so a token carries both the
account id (`sub`) and its `role`; the role picks the table to load from.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Set, Union

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHash
import bcrypt

from .database import get_db
from traineedb.apps.accounts import models as account_models
from traineedb.apps.accounts.models import AccountRole

# ---------------------------------------------------------------------------
# CONFIG
# ---------------------------------------------------------------------------

# In production, ALWAYS override these via environment variables.
SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

try:
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440")
    )
except ValueError:
    ACCESS_TOKEN_EXPIRE_MINUTES = 1440

# Used by FastAPI's OAuth2 docs / OpenAPI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

Account = Union[account_models.Admin, account_models.Instructor]


# ---------------------------------------------------------------------------
# PASSWORD HASHING
# ---------------------------------------------------------------------------

_pwd_hasher = PasswordHasher(
    time_cost=int(os.getenv("ARGON2_TIME_COST", "3")),
    memory_cost=int(os.getenv("ARGON2_MEMORY_COST", "65536")),  # KiB (64MB)
    parallelism=int(os.getenv("ARGON2_PARALLELISM", "2")),
    hash_len=int(os.getenv("ARGON2_HASH_LEN", "32")),
    salt_len=int(os.getenv("ARGON2_SALT_LEN", "16")),
)


def _is_argon2_hash(hashed_password: str) -> bool:
    return isinstance(hashed_password, str) and hashed_password.startswith("$argon2")


def _is_bcrypt_hash(hashed_password: str) -> bool:
    return isinstance(hashed_password, str) and hashed_password.startswith(("$2a$", "$2b$", "$2y$"))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if the plain password matches the hash."""
    if not plain_password or not hashed_password:
        return False

    if _is_argon2_hash(hashed_password):
        try:
            return _pwd_hasher.verify(hashed_password, plain_password)
        except (VerifyMismatchError, VerificationError, InvalidHash):
            return False

    # Accounts imported from the previous system carry bcrypt hashes
    if _is_bcrypt_hash(hashed_password):
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8"),
                hashed_password.encode("utf-8"),
            )
        except ValueError:
            return False

    return False


def get_password_hash(password: str) -> str:
    """Hash a password for storing in the database (Argon2id)."""
    return _pwd_hasher.hash(password)


# ---------------------------------------------------------------------------
# JWT TOKENS
# ---------------------------------------------------------------------------


def create_access_token(
    *,
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT.

    The `data` dict should already include the subject and role, e.g.:
        {"sub": str(admin.id), "role": "admin"}
    """
    to_encode = data.copy()

    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def create_token_for(principal: "Principal") -> str:
    return create_access_token(data={"sub": str(principal.id), "role": principal.role.value})


# ---------------------------------------------------------------------------
# PRINCIPAL
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Principal:
    """The authenticated actor of a request."""

    role: AccountRole
    account: Account

    @property
    def id(self) -> int:
        return self.account.id

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMIN

    @property
    def is_instructor(self) -> bool:
        return self.role == AccountRole.INSTRUCTOR


def load_principal(db: Session, role: AccountRole, account_id: int) -> Optional[Principal]:
    if role == AccountRole.ADMIN:
        account = db.get(account_models.Admin, account_id)
    elif role == AccountRole.INSTRUCTOR:
        account = db.get(account_models.Instructor, account_id)
    else:
        raise ValueError(f"Unhandled role {role!r}")
    if account is None:
        return None
    return Principal(role=role, account=account)


# ---------------------------------------------------------------------------
# FASTAPI DEPENDENCIES
# ---------------------------------------------------------------------------


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_principal(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Principal:
    """
    Decode the JWT access token and load the admin or instructor it names.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
        subject = payload.get("sub")
        role = AccountRole(payload.get("role"))
        account_id = int(subject)
    except (JWTError, ValueError, TypeError):
        raise _credentials_exception()

    principal = load_principal(db, role, account_id)
    if principal is None:
        raise _credentials_exception()
    return principal


def get_current_active_principal(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Deactivated accounts are blocked here rather than deeper in the app."""
    if not getattr(principal.account, "is_active", False):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive account",
        )
    return principal


# ---------------------------------------------------------------------------
# ROLE-BASED ACCESS HELPER
# ---------------------------------------------------------------------------


def check_role(principal: Principal, allowed: Set[AccountRole]) -> Principal:
    if principal.role not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions for this operation",
        )
    return principal


def require_roles(
    *allowed_roles: Union[AccountRole, str],
) -> Callable[[Principal], Principal]:
    """
    Dependency factory to enforce that the principal has one of the given roles.

    Usage:
        @router.put(...)
        def endpoint(
            current_user: Principal = Depends(require_roles(AccountRole.ADMIN))
        ):
            ...
    """
    normalised_roles: Set[AccountRole] = set()
    for r in allowed_roles:
        if isinstance(r, AccountRole):
            normalised_roles.add(r)
        else:
            try:
                normalised_roles.add(AccountRole(r))
            except ValueError:
                raise ValueError(f"Unknown role {r!r} passed to require_roles()")

    def dependency(
        principal: Principal = Depends(get_current_active_principal),
    ) -> Principal:
        return check_role(principal, normalised_roles)

    return dependency


require_admin = require_roles(AccountRole.ADMIN)
require_instructor = require_roles(AccountRole.INSTRUCTOR)
