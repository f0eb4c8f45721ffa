# backend/traineedb/apps/training/router_instructor.py

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional
import uuid

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    UploadFile,
    status,
)
from sqlalchemy.orm import Session

from traineedb.database import get_db
from traineedb.security import Principal, require_instructor

from . import dashboard, models, schemas, services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/instructor", tags=["instructor"])

# Files are stored under this directory, one folder per trainee, e.g.:
#   TRAINEE_UPLOAD_DIR=/var/lib/traineedb/uploads
_UPLOAD_DIR = Path(os.getenv("TRAINEE_UPLOAD_DIR", "uploads")).resolve()
_UPLOAD_DIR.mkdir(parents=True, exist_ok=True)

_MAX_UPLOAD_BYTES = int(os.getenv("TRAINEE_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)) or "0")

_ALLOWED_EXTS = {".pdf", ".doc", ".docx", ".jpg", ".jpeg", ".png"}


# ---------------------------------------------------------------------------
# UPLOAD HELPERS
# ---------------------------------------------------------------------------


def _ensure_safe_path(path: Path) -> Path:
    resolved = path.resolve()
    if not str(resolved).startswith(str(_UPLOAD_DIR)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid upload path.",
        )
    return resolved


def _validated_ext(file: UploadFile) -> str:
    ext = Path(file.filename or "").suffix.lower()
    if ext not in _ALLOWED_EXTS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type {ext or '(none)'} is not allowed. Allowed types: {', '.join(sorted(_ALLOWED_EXTS))}",
        )
    return ext


def _save_upload(
    *,
    file: UploadFile,
    dest_path: Path,
) -> None:
    total = 0
    try:
        with dest_path.open("wb") as out:
            while True:
                chunk = file.file.read(1024 * 1024)
                if not chunk:
                    break
                total += len(chunk)
                if _MAX_UPLOAD_BYTES and total > _MAX_UPLOAD_BYTES:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail="Upload exceeds maximum file size.",
                    )
                out.write(chunk)
    except HTTPException:
        _delete_if_exists(str(dest_path))
        raise


def _store(file: UploadFile, *, trainee_id: int, kind: str) -> str:
    ext = _validated_ext(file)
    folder = (_UPLOAD_DIR / f"trainee_{trainee_id}").resolve()
    folder.mkdir(parents=True, exist_ok=True)
    dest_path = _ensure_safe_path(folder / f"{kind}_{uuid.uuid4().hex}{ext}")
    _save_upload(file=file, dest_path=dest_path)
    return str(dest_path)


def _delete_if_exists(path: Optional[str]) -> None:
    if not path:
        return
    try:
        p = Path(path)
        if p.exists():
            p.unlink()
    except OSError:
        logger.warning("Could not remove orphaned upload", extra={"path": path})


# ---------------------------------------------------------------------------
# DASHBOARD
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_model=schemas.InstructorDashboard)
def instructor_dashboard(
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    return schemas.InstructorDashboard.model_validate(
        dashboard.instructor_dashboard(db, instructor_id=current_user.id),
        from_attributes=True,
    )


@router.get("/monthly-status", response_model=schemas.MonthlyStatus)
def monthly_status(
    month: Optional[int] = None,
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    return schemas.MonthlyStatus.model_validate(
        dashboard.monthly_status(db, instructor_id=current_user.id, month=month, year=year)
    )


# ---------------------------------------------------------------------------
# TRAINEES
# ---------------------------------------------------------------------------


@router.post("/trainees", response_model=schemas.TraineeRead, status_code=status.HTTP_201_CREATED)
def create_trainee(
    payload: schemas.TraineeCreate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    trainee = services.submit_trainee(db, instructor_id=current_user.id, data=payload)
    db.commit()
    db.refresh(trainee)
    return trainee


@router.get("/trainees", response_model=List[schemas.TraineeRead])
def list_trainees(
    status: Optional[models.TraineeStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    return services.list_trainees(db, instructor_id=current_user.id, status=status, search=search)


@router.get("/trainees/{trainee_id}", response_model=schemas.TraineeDetail)
def get_trainee(
    trainee_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    return services.get_owned_trainee(db, trainee_id, instructor_id=current_user.id)


@router.put("/trainees/{trainee_id}", response_model=schemas.TraineeRead)
def update_trainee(
    trainee_id: int,
    payload: schemas.TraineeUpdate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    trainee = services.update_trainee(
        db,
        trainee_id=trainee_id,
        instructor_id=current_user.id,
        data=payload,
    )
    db.commit()
    db.refresh(trainee)
    return trainee


# ---------------------------------------------------------------------------
# PROJECTS
# ---------------------------------------------------------------------------


@router.post("/projects", response_model=schemas.ProjectRead, status_code=status.HTTP_201_CREATED)
def create_project(
    payload: schemas.ProjectCreate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    project = services.create_project(db, instructor_id=current_user.id, data=payload)
    db.commit()
    db.refresh(project)
    return project


@router.get("/projects", response_model=List[schemas.ProjectRead])
def list_projects(
    trainee_id: Optional[int] = None,
    status: Optional[models.ProjectStatus] = None,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    return services.list_projects(db, instructor_id=current_user.id, trainee_id=trainee_id, status=status)


@router.get("/projects/{project_id}", response_model=schemas.ProjectRead)
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    return services.get_owned_project(db, project_id, instructor_id=current_user.id)


@router.put("/projects/{project_id}", response_model=schemas.ProjectRead)
def update_project(
    project_id: int,
    payload: schemas.ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    project = services.update_project(db, project_id=project_id, instructor_id=current_user.id, data=payload)
    db.commit()
    db.refresh(project)
    return project


@router.put("/projects/{project_id}/start", response_model=schemas.ProjectRead)
def start_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    project = services.start_project(db, project_id=project_id, instructor_id=current_user.id)
    db.commit()
    db.refresh(project)
    return project


@router.put("/projects/{project_id}/complete", response_model=schemas.ProjectCompletionRead)
def complete_project(
    project_id: int,
    background_tasks: BackgroundTasks,
    performance_rating: int = Form(...),
    project_report: Optional[UploadFile] = File(None),
    attendance_document: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    """
    Complete a project. Both files are required; when either is missing
    nothing is written to disk and the workflow reports the missing
    documents.
    """
    project = services.get_owned_project(db, project_id, instructor_id=current_user.id)

    report_path = attendance_path = None
    if project_report is not None and attendance_document is not None:
        report_path = _store(project_report, trainee_id=project.trainee_id, kind="project_report")
        try:
            attendance_path = _store(attendance_document, trainee_id=project.trainee_id, kind="attendance_record")
        except Exception:
            _delete_if_exists(report_path)
            raise

    try:
        project = services.complete_project(
            db,
            project_id=project_id,
            instructor_id=current_user.id,
            performance_rating=performance_rating,
            report_path=report_path,
            attendance_path=attendance_path,
            defer=background_tasks.add_task,
        )
        db.commit()
    except Exception:
        db.rollback()
        _delete_if_exists(report_path)
        _delete_if_exists(attendance_path)
        raise

    db.refresh(project)
    return schemas.ProjectCompletionRead(
        **schemas.ProjectRead.model_validate(project).model_dump(),
        duration_days=services.project_duration_days(project),
    )


# ---------------------------------------------------------------------------
# PROGRESS
# ---------------------------------------------------------------------------


@router.post(
    "/projects/{project_id}/progress",
    response_model=schemas.ProgressRead,
    status_code=status.HTTP_201_CREATED,
)
def record_progress(
    project_id: int,
    payload: schemas.ProgressCreate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    entry = services.record_progress(db, project_id=project_id, instructor_id=current_user.id, data=payload)
    db.commit()
    db.refresh(entry)
    return entry


@router.get("/projects/{project_id}/progress", response_model=List[schemas.ProgressRead])
def list_progress(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    return services.list_progress(db, project_id=project_id, instructor_id=current_user.id)


@router.post("/share-progress", response_model=schemas.ProgressReviewRead, status_code=status.HTTP_201_CREATED)
def share_progress(
    payload: schemas.ShareProgressRequest,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    review = services.share_progress(
        db,
        trainee_id=payload.trainee_id,
        instructor_id=current_user.id,
        summary=payload.summary,
    )
    db.commit()
    db.refresh(review)
    return review


# ---------------------------------------------------------------------------
# DOCUMENTS
# ---------------------------------------------------------------------------


@router.post("/documents", response_model=schemas.DocumentRead, status_code=status.HTTP_201_CREATED)
def upload_document(
    trainee_id: int = Form(...),
    project_id: Optional[int] = Form(None),
    document_type: models.DocumentType = Form(models.DocumentType.OTHER),
    document_name: Optional[str] = Form(None),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    services.get_owned_trainee(db, trainee_id, instructor_id=current_user.id)
    path = _store(file, trainee_id=trainee_id, kind=document_type.value)
    try:
        document = services.add_document(
            db,
            instructor_id=current_user.id,
            trainee_id=trainee_id,
            project_id=project_id,
            document_type=document_type,
            document_name=document_name or file.filename,
            file_path=path,
        )
        db.commit()
    except Exception:
        db.rollback()
        _delete_if_exists(path)
        raise
    db.refresh(document)
    return document


@router.get("/documents", response_model=List[schemas.DocumentRead])
def list_documents(
    trainee_id: Optional[int] = None,
    project_id: Optional[int] = None,
    document_type: Optional[models.DocumentType] = None,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    return services.list_documents(
        db,
        instructor_id=current_user.id,
        trainee_id=trainee_id,
        project_id=project_id,
        document_type=document_type,
    )
