# backend/traineedb/apps/accounts/router_instructor.py

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from traineedb.database import get_db
from traineedb.security import Principal, require_instructor

from . import schemas, services

router = APIRouter(prefix="/instructor", tags=["instructor"])


@router.get("/profile", response_model=schemas.InstructorRead)
def get_profile(current_user: Principal = Depends(require_instructor)):
    return current_user.account


@router.put("/profile", response_model=schemas.InstructorRead)
def update_profile(
    payload: schemas.InstructorProfileUpdate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    try:
        return services.update_profile(db, current_user.account, payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.put("/change-password", response_model=schemas.PasswordChanged)
def change_password(
    payload: schemas.ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_instructor),
):
    try:
        services.change_password(
            db,
            current_user.account,
            current_password=payload.current_password,
            new_password=payload.new_password,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return schemas.PasswordChanged()
