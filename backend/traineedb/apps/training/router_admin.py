# backend/traineedb/apps/training/router_admin.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from traineedb.apps.audit.schemas import AuditEventRead
from traineedb.database import get_db
from traineedb.security import Principal, require_admin

from . import dashboard, models, schemas, services

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard", response_model=schemas.AdminDashboard)
def admin_dashboard(
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    return schemas.AdminDashboard.model_validate(
        dashboard.admin_dashboard(db, admin_id=current_user.id),
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# TRAINEES
# ---------------------------------------------------------------------------


@router.get("/trainees/pending", response_model=List[schemas.TraineeRead])
def list_pending_trainees(
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    return services.list_trainees(db, status=models.TraineeStatus.PENDING)


@router.get("/trainees", response_model=List[schemas.TraineeRead])
def list_trainees(
    status: Optional[models.TraineeStatus] = None,
    instructor_id: Optional[int] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    return services.list_trainees(db, instructor_id=instructor_id, status=status, search=search)


@router.get("/trainees/{trainee_id}", response_model=schemas.TraineeDetail)
def get_trainee(
    trainee_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    return services.get_trainee(db, trainee_id)


@router.put("/trainees/{trainee_id}/decision", response_model=schemas.TraineeRead)
def decide_trainee(
    trainee_id: int,
    payload: schemas.TraineeDecision,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    trainee = services.decide_trainee(
        db,
        trainee_id=trainee_id,
        admin_id=current_user.id,
        decision=payload.decision,
        comments=payload.comments,
        defer=background_tasks.add_task,
    )
    db.commit()
    db.refresh(trainee)
    return trainee


@router.get("/trainees/{trainee_id}/history", response_model=List[AuditEventRead])
def trainee_history(
    trainee_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    return services.trainee_history(db, trainee_id)


# ---------------------------------------------------------------------------
# PROGRESS REVIEWS
# ---------------------------------------------------------------------------


@router.get("/progress-reviews", response_model=List[schemas.ProgressReviewRead])
def list_progress_reviews(
    status: Optional[models.ProgressReviewStatus] = None,
    trainee_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    return services.list_reviews(db, status=status, trainee_id=trainee_id)


@router.put("/progress-reviews/{review_id}/complete", response_model=schemas.ProgressReviewRead)
def complete_progress_review(
    review_id: int,
    payload: schemas.ReviewComplete,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    review = services.complete_review(
        db,
        review_id=review_id,
        admin_id=current_user.id,
        comments=payload.comments,
    )
    db.commit()
    db.refresh(review)
    return review
