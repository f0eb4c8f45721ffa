# backend/traineedb/apps/accounts/models.py

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from traineedb.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class AccountRole(str, enum.Enum):
    """Closed set of actor kinds.

    Admins and instructors live in separate tables; the role tells callers
    which table an `(id, role)` pair points into.
    """

    ADMIN = "admin"
    INSTRUCTOR = "instructor"


# ---------------------------------------------------------------------------
# ADMIN
# ---------------------------------------------------------------------------


class Admin(Base):
    """
    Back-office user who approves trainees and signs off progress reviews.
    """

    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    phone = Column(String(15), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    title = Column(String(100), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    created_instructors = relationship(
        "Instructor",
        back_populates="creator",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Admin id={self.id} email={self.email}>"


# ---------------------------------------------------------------------------
# INSTRUCTOR
# ---------------------------------------------------------------------------


class Instructor(Base):
    """
    Registers trainees, assigns their projects and reports their progress.

    `created_by` is the admin who onboarded the instructor; that admin is the
    in-app recipient of project completion notices.
    """

    __tablename__ = "instructors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    phone = Column(String(15), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    department = Column(String(100), nullable=False)
    designation = Column(String(100), nullable=True)

    created_by = Column(
        Integer,
        ForeignKey("admins.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    creator = relationship("Admin", back_populates="created_instructors")
    trainees = relationship(
        "Trainee",
        back_populates="instructor",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Instructor id={self.id} email={self.email} department={self.department}>"
