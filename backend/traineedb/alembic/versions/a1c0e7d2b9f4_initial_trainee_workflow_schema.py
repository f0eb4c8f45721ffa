"""
Initial schema: accounts, trainees, projects, progress reviews, documents,
notifications, email logs and audit events.

Revision ID: a1c0e7d2b9f4
Revises:
Create Date: 2025-01-06
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1c0e7d2b9f4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _role_enum(name: str) -> sa.Enum:
    return sa.Enum("ADMIN", "INSTRUCTOR", name=name, native_enum=False)


def upgrade() -> None:
    op.create_table(
        "admins",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=15), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("title", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_admins_email", "admins", ["email"], unique=True)
    op.create_index("ix_admins_is_active", "admins", ["is_active"])

    op.create_table(
        "instructors",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=15), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("department", sa.String(length=100), nullable=False),
        sa.Column("designation", sa.String(length=100), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_instructors_email", "instructors", ["email"], unique=True)
    op.create_index("ix_instructors_created_by", "instructors", ["created_by"])
    op.create_index("ix_instructors_is_active", "instructors", ["is_active"])

    op.create_table(
        "trainees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("institution_name", sa.String(length=200), nullable=True),
        sa.Column("degree", sa.String(length=100), nullable=True),
        sa.Column("mobile", sa.String(length=15), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("joining_date", sa.Date(), nullable=True),
        sa.Column("expected_completion_date", sa.Date(), nullable=True),
        sa.Column("local_guardian_name", sa.String(length=100), nullable=True),
        sa.Column("local_guardian_phone", sa.String(length=15), nullable=True),
        sa.Column("local_guardian_email", sa.String(length=255), nullable=True),
        sa.Column("reference_person_name", sa.String(length=100), nullable=True),
        sa.Column("reference_person_phone", sa.String(length=15), nullable=True),
        sa.Column("reference_person_email", sa.String(length=255), nullable=True),
        sa.Column("instructor_id", sa.Integer(), sa.ForeignKey("instructors.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "APPROVED", "REJECTED", name="trainee_status_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("approved_by", sa.Integer(), sa.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True),
        sa.Column("approval_comments", sa.Text(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_trainees_instructor_id", "trainees", ["instructor_id"])
    op.create_index("ix_trainees_status", "trainees", ["status"])
    op.create_index("ix_trainees_approved_by", "trainees", ["approved_by"])
    op.create_index("ix_trainees_instructor_status", "trainees", ["instructor_id", "status"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trainee_id", sa.Integer(), sa.ForeignKey("trainees.id", ondelete="CASCADE"), nullable=False),
        sa.Column("instructor_id", sa.Integer(), sa.ForeignKey("instructors.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("project_name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("ASSIGNED", "IN_PROGRESS", "COMPLETED", name="project_status_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("performance_rating", sa.Integer(), nullable=True),
        sa.Column("project_report_path", sa.String(length=512), nullable=True),
        sa.Column("attendance_document_path", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "performance_rating IS NULL OR (performance_rating >= 1 AND performance_rating <= 10)",
            name="ck_projects_performance_rating_range",
        ),
    )
    op.create_index("ix_projects_trainee_id", "projects", ["trainee_id"])
    op.create_index("ix_projects_instructor_id", "projects", ["instructor_id"])
    op.create_index("ix_projects_status", "projects", ["status"])
    op.create_index("ix_projects_trainee_status", "projects", ["trainee_id", "status"])

    op.create_table(
        "project_progress",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("task_description", sa.Text(), nullable=False),
        sa.Column("percentage_completed", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("COMPLETED", "IN_PROGRESS", "NOT_COMPLETED", name="progress_entry_status_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("recorded_by", sa.Integer(), sa.ForeignKey("instructors.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "percentage_completed >= 0 AND percentage_completed <= 100",
            name="ck_project_progress_percentage_range",
        ),
    )
    op.create_index("ix_project_progress_project_id", "project_progress", ["project_id"])

    op.create_table(
        "progress_reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trainee_id", sa.Integer(), sa.ForeignKey("trainees.id", ondelete="CASCADE"), nullable=False),
        sa.Column("shared_by", sa.Integer(), sa.ForeignKey("instructors.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("IN_REVIEW", "COMPLETED", name="progress_review_status_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("shared_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviewed_by", sa.Integer(), sa.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_comments", sa.Text(), nullable=True),
    )
    op.create_index("ix_progress_reviews_trainee_id", "progress_reviews", ["trainee_id"])
    op.create_index("ix_progress_reviews_shared_by", "progress_reviews", ["shared_by"])
    op.create_index("ix_progress_reviews_status", "progress_reviews", ["status"])
    op.create_index("ix_progress_reviews_reviewed_by", "progress_reviews", ["reviewed_by"])
    op.create_index("ix_progress_reviews_status_shared", "progress_reviews", ["status", "shared_at"])

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trainee_id", sa.Integer(), sa.ForeignKey("trainees.id", ondelete="CASCADE"), nullable=False),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True),
        sa.Column("document_name", sa.String(length=200), nullable=True),
        sa.Column(
            "document_type",
            sa.Enum("PROJECT_REPORT", "ATTENDANCE_RECORD", "OTHER", name="document_type_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("file_path", sa.String(length=512), nullable=False),
        sa.Column("uploaded_by", sa.Integer(), sa.ForeignKey("instructors.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_documents_trainee_id", "documents", ["trainee_id"])
    op.create_index("ix_documents_project_id", "documents", ["project_id"])
    op.create_index("ix_documents_uploaded_by", "documents", ["uploaded_by"])
    op.create_index("ix_documents_uploaded_at", "documents", ["uploaded_at"])
    op.create_index("ix_documents_trainee_type", "documents", ["trainee_id", "document_type"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("recipient_id", sa.Integer(), nullable=False),
        sa.Column("recipient_type", _role_enum("notification_party_enum"), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=True),
        sa.Column("sender_type", _role_enum("notification_party_enum"), nullable=True),
        sa.Column(
            "type",
            sa.Enum(
                "TRAINEE_CREATED",
                "TRAINEE_APPROVED",
                "TRAINEE_REJECTED",
                "PROGRESS_SHARED",
                "PROGRESS_REVIEWED",
                "PROJECT_COMPLETED",
                "GENERAL",
                name="notification_type_enum",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_type", sa.String(length=64), nullable=True),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_notifications_type", "notifications", ["type"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])
    op.create_index("ix_notifications_recipient", "notifications", ["recipient_type", "recipient_id", "is_read"])
    op.create_index(
        "ix_notifications_recipient_created",
        "notifications",
        ["recipient_type", "recipient_id", "created_at"],
    )

    op.create_table(
        "email_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("recipient", sa.String(length=255), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("template_key", sa.String(length=128), nullable=False),
        sa.Column(
            "status",
            sa.Enum("QUEUED", "SENT", "FAILED", "SKIPPED_NO_PROVIDER", name="email_status_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("context_json", sa.JSON(), nullable=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True),
    )
    op.create_index("ix_email_logs_created_at", "email_logs", ["created_at"])
    op.create_index("ix_email_logs_status", "email_logs", ["status"])
    op.create_index("ix_email_logs_correlation_id", "email_logs", ["correlation_id"])
    op.create_index("ix_email_logs_status_created", "email_logs", ["status", "created_at"])
    op.create_index("ix_email_logs_template", "email_logs", ["template_key"])
    op.create_index("ix_email_logs_recipient", "email_logs", ["recipient"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("actor_role", _role_enum("audit_actor_role_enum"), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_events_entity_type", "audit_events", ["entity_type"])
    op.create_index("ix_audit_events_entity_id", "audit_events", ["entity_id"])
    op.create_index("ix_audit_events_occurred_at", "audit_events", ["occurred_at"])
    op.create_index("ix_audit_events_correlation_id", "audit_events", ["correlation_id"])
    op.create_index("ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"])
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("ix_audit_events_time_desc", "audit_events", [sa.text("occurred_at DESC")])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("email_logs")
    op.drop_table("notifications")
    op.drop_table("documents")
    op.drop_table("progress_reviews")
    op.drop_table("project_progress")
    op.drop_table("projects")
    op.drop_table("trainees")
    op.drop_table("instructors")
    op.drop_table("admins")
