# backend/traineedb/apps/accounts/router_admin.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from traineedb.database import get_db
from traineedb.security import Principal, require_admin

from . import models, schemas, services

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_or_404(db: Session, admin_id: int) -> models.Admin:
    admin = db.get(models.Admin, admin_id)
    if not admin:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin not found.")
    return admin


def _get_instructor_or_404(db: Session, instructor_id: int) -> models.Instructor:
    instructor = db.get(models.Instructor, instructor_id)
    if not instructor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Instructor not found.")
    return instructor


# ---------------------------------------------------------------------------
# ADMINS
# ---------------------------------------------------------------------------


@router.get("/admins", response_model=List[schemas.AdminRead])
def list_admins(
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    return services.list_admins(db)


@router.post("/admins", response_model=schemas.AdminRead, status_code=status.HTTP_201_CREATED)
def create_admin(
    payload: schemas.AdminCreate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    try:
        return services.create_admin(db, payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.put("/admins/{admin_id}", response_model=schemas.AdminRead)
def update_admin(
    admin_id: int,
    payload: schemas.AdminUpdate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    admin = _get_admin_or_404(db, admin_id)
    if admin.id == current_user.id and payload.is_active is False:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate your own account.",
        )
    try:
        return services.update_admin(db, admin, payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.delete("/admins/{admin_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_admin(
    admin_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    admin = _get_admin_or_404(db, admin_id)
    try:
        services.delete_admin(db, admin, acting_admin_id=current_user.id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return


# ---------------------------------------------------------------------------
# INSTRUCTORS
# ---------------------------------------------------------------------------


@router.get("/instructors", response_model=List[schemas.InstructorRead])
def list_instructors(
    department: Optional[str] = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    return services.list_instructors(db, department=department, active_only=active_only)


@router.get("/instructors/{instructor_id}", response_model=schemas.InstructorRead)
def get_instructor(
    instructor_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    return _get_instructor_or_404(db, instructor_id)


@router.post("/instructors", response_model=schemas.InstructorRead, status_code=status.HTTP_201_CREATED)
def create_instructor(
    payload: schemas.InstructorCreate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    try:
        return services.create_instructor(db, payload, created_by=current_user.id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.put("/instructors/{instructor_id}", response_model=schemas.InstructorRead)
def update_instructor(
    instructor_id: int,
    payload: schemas.InstructorUpdate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    instructor = _get_instructor_or_404(db, instructor_id)
    try:
        return services.update_instructor(db, instructor, payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.delete("/instructors/{instructor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_instructor(
    instructor_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    instructor = _get_instructor_or_404(db, instructor_id)
    try:
        services.delete_instructor(db, instructor)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return


# ---------------------------------------------------------------------------
# OWN PROFILE
# ---------------------------------------------------------------------------


@router.get("/profile", response_model=schemas.AdminRead)
def get_profile(current_user: Principal = Depends(require_admin)):
    return current_user.account


@router.put("/profile", response_model=schemas.AdminRead)
def update_profile(
    payload: schemas.AdminProfileUpdate,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    try:
        return services.update_profile(db, current_user.account, payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.put("/change-password", response_model=schemas.PasswordChanged)
def change_password(
    payload: schemas.ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
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
