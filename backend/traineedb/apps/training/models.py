# backend/traineedb/apps/training/models.py

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ...database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class TraineeStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProjectStatus(str, enum.Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ProgressEntryStatus(str, enum.Enum):
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    NOT_COMPLETED = "not_completed"


class ProgressReviewStatus(str, enum.Enum):
    IN_REVIEW = "in_review"
    COMPLETED = "completed"


class DocumentType(str, enum.Enum):
    PROJECT_REPORT = "project_report"
    ATTENDANCE_RECORD = "attendance_record"
    OTHER = "other"


# ---------------------------------------------------------------------------
# TRAINEE
# ---------------------------------------------------------------------------


class Trainee(Base):
    """
    A person in training, registered by one instructor and approved (or
    rejected) once by an admin.

    approved_by / approved_at are populated for both outcomes; they record
    who resolved the application, not only approvals.
    """

    __tablename__ = "trainees"
    __table_args__ = (
        Index("ix_trainees_instructor_status", "instructor_id", "status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    institution_name = Column(String(200), nullable=True)
    degree = Column(String(100), nullable=True)
    mobile = Column(String(15), nullable=False)
    email = Column(String(255), nullable=True)

    joining_date = Column(Date, nullable=True)
    expected_completion_date = Column(Date, nullable=True)

    local_guardian_name = Column(String(100), nullable=True)
    local_guardian_phone = Column(String(15), nullable=True)
    local_guardian_email = Column(String(255), nullable=True)
    reference_person_name = Column(String(100), nullable=True)
    reference_person_phone = Column(String(15), nullable=True)
    reference_person_email = Column(String(255), nullable=True)

    instructor_id = Column(
        Integer,
        ForeignKey("instructors.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    status = Column(
        Enum(TraineeStatus, name="trainee_status_enum", native_enum=False),
        nullable=False,
        default=TraineeStatus.PENDING,
        index=True,
    )

    approved_by = Column(
        Integer,
        ForeignKey("admins.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    approval_comments = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    instructor = relationship("Instructor", back_populates="trainees")
    approver = relationship("Admin", foreign_keys=[approved_by])
    projects = relationship(
        "Project",
        back_populates="trainee",
        lazy="selectin",
        order_by="Project.id",
    )
    documents = relationship(
        "Document",
        back_populates="trainee",
        lazy="selectin",
    )
    progress_reviews = relationship(
        "ProgressReview",
        back_populates="trainee",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Trainee id={self.id} status={self.status} instructor={self.instructor_id}>"


# ---------------------------------------------------------------------------
# PROJECT
# ---------------------------------------------------------------------------


class Project(Base):
    """
    A piece of work assigned to an approved trainee.

    Completion is terminal and carries the rating plus both artefacts
    (project report and attendance record).
    """

    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_trainee_status", "trainee_id", "status"),
        CheckConstraint(
            "performance_rating IS NULL OR (performance_rating >= 1 AND performance_rating <= 10)",
            name="ck_projects_performance_rating_range",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    trainee_id = Column(
        Integer,
        ForeignKey("trainees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    instructor_id = Column(
        Integer,
        ForeignKey("instructors.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    project_name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)

    status = Column(
        Enum(ProjectStatus, name="project_status_enum", native_enum=False),
        nullable=False,
        default=ProjectStatus.ASSIGNED,
        index=True,
    )
    performance_rating = Column(Integer, nullable=True)
    project_report_path = Column(String(512), nullable=True)
    attendance_document_path = Column(String(512), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    trainee = relationship("Trainee", back_populates="projects")
    instructor = relationship("Instructor")
    progress_entries = relationship(
        "ProjectProgress",
        back_populates="project",
        lazy="selectin",
        order_by="ProjectProgress.id",
    )
    documents = relationship(
        "Document",
        back_populates="project",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id} status={self.status} trainee={self.trainee_id}>"


class ProjectProgress(Base):
    """
    Append-only progress log for a project. Rows are never edited or deleted.
    """

    __tablename__ = "project_progress"
    __table_args__ = (
        CheckConstraint(
            "percentage_completed >= 0 AND percentage_completed <= 100",
            name="ck_project_progress_percentage_range",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_description = Column(Text, nullable=False)
    percentage_completed = Column(Integer, nullable=False, default=0)
    status = Column(
        Enum(ProgressEntryStatus, name="progress_entry_status_enum", native_enum=False),
        nullable=False,
        default=ProgressEntryStatus.IN_PROGRESS,
    )
    notes = Column(Text, nullable=True)
    entry_date = Column(Date, nullable=False)
    recorded_by = Column(
        Integer,
        ForeignKey("instructors.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    project = relationship("Project", back_populates="progress_entries")

    def __repr__(self) -> str:
        return f"<ProjectProgress id={self.id} project={self.project_id} pct={self.percentage_completed}>"


# ---------------------------------------------------------------------------
# PROGRESS REVIEW
# ---------------------------------------------------------------------------


class ProgressReview(Base):
    __tablename__ = "progress_reviews"
    __table_args__ = (
        Index("ix_progress_reviews_status_shared", "status", "shared_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    trainee_id = Column(
        Integer,
        ForeignKey("trainees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    shared_by = Column(
        Integer,
        ForeignKey("instructors.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    summary = Column(Text, nullable=True)
    status = Column(
        Enum(ProgressReviewStatus, name="progress_review_status_enum", native_enum=False),
        nullable=False,
        default=ProgressReviewStatus.IN_REVIEW,
        index=True,
    )
    shared_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    reviewed_by = Column(
        Integer,
        ForeignKey("admins.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_comments = Column(Text, nullable=True)

    trainee = relationship("Trainee", back_populates="progress_reviews")
    sharer = relationship("Instructor", foreign_keys=[shared_by])
    reviewer = relationship("Admin", foreign_keys=[reviewed_by])

    def __repr__(self) -> str:
        return f"<ProgressReview id={self.id} status={self.status} trainee={self.trainee_id}>"


# ---------------------------------------------------------------------------
# DOCUMENTS
# ---------------------------------------------------------------------------


class Document(Base):
    """
    Metadata for an uploaded file. The file itself lives under the upload
    directory; rows are written once and never changed.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_trainee_type", "trainee_id", "document_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    trainee_id = Column(
        Integer,
        ForeignKey("trainees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id = Column(
        Integer,
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    document_name = Column(String(200), nullable=True)
    document_type = Column(
        Enum(DocumentType, name="document_type_enum", native_enum=False),
        nullable=False,
        default=DocumentType.OTHER,
    )
    file_path = Column(String(512), nullable=False)
    uploaded_by = Column(
        Integer,
        ForeignKey("instructors.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    trainee = relationship("Trainee", back_populates="documents")
    project = relationship("Project", back_populates="documents")

    def __repr__(self) -> str:
        return f"<Document id={self.id} type={self.document_type} trainee={self.trainee_id}>"
