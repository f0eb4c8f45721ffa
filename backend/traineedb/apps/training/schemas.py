# backend/traineedb/apps/training/schemas.py

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from traineedb.apps.notifications.schemas import NotificationRead

from .models import (
    DocumentType,
    ProgressEntryStatus,
    ProgressReviewStatus,
    ProjectStatus,
    TraineeStatus,
)

# ---------------------------------------------------------------------------
# TRAINEES
# ---------------------------------------------------------------------------


class TraineeBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    institution_name: Optional[str] = Field(None, max_length=200)
    degree: Optional[str] = Field(None, max_length=100)
    mobile: str = Field(..., min_length=7, max_length=15)
    email: Optional[EmailStr] = None
    joining_date: Optional[date] = None
    expected_completion_date: Optional[date] = None

    local_guardian_name: Optional[str] = None
    local_guardian_phone: Optional[str] = Field(None, max_length=15)
    local_guardian_email: Optional[EmailStr] = None
    reference_person_name: Optional[str] = None
    reference_person_phone: Optional[str] = Field(None, max_length=15)
    reference_person_email: Optional[EmailStr] = None


class TraineeCreate(TraineeBase):
    pass


class TraineeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    institution_name: Optional[str] = Field(None, max_length=200)
    degree: Optional[str] = Field(None, max_length=100)
    mobile: Optional[str] = Field(None, min_length=7, max_length=15)
    email: Optional[EmailStr] = None
    joining_date: Optional[date] = None
    expected_completion_date: Optional[date] = None

    local_guardian_name: Optional[str] = None
    local_guardian_phone: Optional[str] = Field(None, max_length=15)
    local_guardian_email: Optional[EmailStr] = None
    reference_person_name: Optional[str] = None
    reference_person_phone: Optional[str] = Field(None, max_length=15)
    reference_person_email: Optional[EmailStr] = None


class TraineeRead(TraineeBase):
    id: int
    instructor_id: int
    status: TraineeStatus
    approved_by: Optional[int] = None
    approval_comments: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    # Loose email validation on read: rows imported from older data may not
    # satisfy EmailStr.
    email: Optional[str] = None
    local_guardian_email: Optional[str] = None
    reference_person_email: Optional[str] = None

    class Config:
        from_attributes = True


class TraineeDecision(BaseModel):
    decision: str = Field(..., description="'approved' or 'rejected'")
    comments: Optional[str] = None


# ---------------------------------------------------------------------------
# PROJECTS
# ---------------------------------------------------------------------------


class ProjectCreate(BaseModel):
    trainee_id: int
    project_name: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = None
    due_date: Optional[date] = None


class ProjectUpdate(BaseModel):
    project_name: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = None
    due_date: Optional[date] = None


class ProjectRead(BaseModel):
    id: int
    trainee_id: int
    instructor_id: int
    project_name: str
    description: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    due_date: Optional[date] = None
    status: ProjectStatus
    performance_rating: Optional[int] = None
    project_report_path: Optional[str] = None
    attendance_document_path: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectCompletionRead(ProjectRead):
    duration_days: int


# ---------------------------------------------------------------------------
# PROGRESS
# ---------------------------------------------------------------------------


class ProgressCreate(BaseModel):
    task_description: str = Field(..., min_length=1)
    # Range is enforced by the service so the error carries the workflow shape.
    percentage_completed: int
    status: ProgressEntryStatus = ProgressEntryStatus.IN_PROGRESS
    notes: Optional[str] = None


class ProgressRead(BaseModel):
    id: int
    project_id: int
    task_description: str
    percentage_completed: int
    status: ProgressEntryStatus
    notes: Optional[str] = None
    entry_date: date
    recorded_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# PROGRESS REVIEWS
# ---------------------------------------------------------------------------


class ShareProgressRequest(BaseModel):
    trainee_id: int
    summary: Optional[str] = None


class ReviewComplete(BaseModel):
    comments: Optional[str] = None


class ProgressReviewRead(BaseModel):
    id: int
    trainee_id: int
    shared_by: int
    summary: Optional[str] = None
    status: ProgressReviewStatus
    shared_at: datetime
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_comments: Optional[str] = None

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# DOCUMENTS
# ---------------------------------------------------------------------------


class DocumentRead(BaseModel):
    id: int
    trainee_id: int
    project_id: Optional[int] = None
    document_name: Optional[str] = None
    document_type: DocumentType
    file_path: str
    uploaded_by: int
    uploaded_at: datetime

    class Config:
        from_attributes = True


class TraineeDetail(TraineeRead):
    projects: List[ProjectRead] = []
    documents: List[DocumentRead] = []
    progress_reviews: List[ProgressReviewRead] = []


# ---------------------------------------------------------------------------
# DASHBOARDS
# ---------------------------------------------------------------------------


class AdminDashboardStats(BaseModel):
    total_admins: int
    total_instructors: int
    total_trainees: int
    pending_approvals: int
    approved_trainees: int
    rejected_trainees: int
    total_projects: int
    active_projects: int
    completed_projects: int
    pending_reviews: int


class DepartmentStat(BaseModel):
    department: str
    total_trainees: int
    approved_trainees: int
    completed_projects: int


class AdminDashboard(BaseModel):
    stats: AdminDashboardStats
    recent_activities: List[NotificationRead]
    department_stats: List[DepartmentStat]


class InstructorDashboardOverview(BaseModel):
    total_trainees: int
    pending_approvals: int
    approved_trainees: int
    rejected_trainees: int
    total_projects: int
    active_projects: int
    completed_projects: int


class InstructorDashboard(BaseModel):
    overview: InstructorDashboardOverview
    recent_activities: List[NotificationRead]
    upcoming_deadlines: List[ProjectRead]


class MonthlyTraineeStatus(BaseModel):
    trainee_id: int
    trainee_name: str
    institution_name: Optional[str] = None
    has_attendance_upload: bool
    progress_entries: int
    active_projects: int
    completed_projects: int


class MonthlyStatus(BaseModel):
    month: int
    year: int
    trainees: List[MonthlyTraineeStatus]
