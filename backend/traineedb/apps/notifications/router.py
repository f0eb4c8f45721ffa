from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status as http_status
from sqlalchemy.orm import Session

from traineedb.database import get_db
from traineedb.security import Principal, get_current_active_principal, require_admin

from . import models, schemas, service


router = APIRouter(prefix="/notifications", tags=["notifications"])

# Mounted under /admin by main.py
admin_router = APIRouter(prefix="/admin", tags=["notifications"])


@router.get("", response_model=schemas.NotificationPage)
def list_notifications(
    is_read: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_active_principal),
):
    items, total, unread = service.list_notifications(
        db,
        recipient_id=current_user.id,
        recipient_type=current_user.role,
        is_read=is_read,
        page=page,
        limit=limit,
    )
    return schemas.NotificationPage(
        items=[schemas.NotificationRead.model_validate(item) for item in items],
        total=total,
        unread_count=unread,
        page=page,
        limit=limit,
    )


@router.get("/stats", response_model=List[schemas.NotificationTypeStat])
def notification_stats(
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_active_principal),
):
    return service.notification_stats(db, recipient_id=current_user.id, recipient_type=current_user.role)


@router.put("/read-all", response_model=schemas.MarkAllReadResult)
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_active_principal),
):
    updated = service.mark_all_read(db, recipient_id=current_user.id, recipient_type=current_user.role)
    db.commit()
    return schemas.MarkAllReadResult(updated=updated)


@router.put("/{notification_id}/read", response_model=schemas.NotificationRead)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_active_principal),
):
    notification = service.mark_read(
        db,
        notification_id,
        recipient_id=current_user.id,
        recipient_type=current_user.role,
    )
    db.commit()
    db.refresh(notification)
    return notification


@router.delete("/{notification_id}", status_code=http_status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_active_principal),
):
    service.delete_notification(
        db,
        notification_id,
        recipient_id=current_user.id,
        recipient_type=current_user.role,
    )
    db.commit()
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)


@admin_router.get("/email-logs", response_model=List[schemas.EmailLogRead])
def list_email_logs(
    status: Optional[models.EmailStatus] = None,
    template_key: Optional[str] = None,
    recipient: Optional[str] = None,
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    qs = db.query(models.EmailLog)
    if status:
        qs = qs.filter(models.EmailLog.status == status)
    if template_key:
        qs = qs.filter(models.EmailLog.template_key == template_key)
    if recipient:
        qs = qs.filter(models.EmailLog.recipient.ilike(f"%{recipient}%"))
    if start:
        qs = qs.filter(models.EmailLog.created_at >= start)
    if end:
        qs = qs.filter(models.EmailLog.created_at <= end)
    return qs.order_by(models.EmailLog.created_at.desc()).all()
