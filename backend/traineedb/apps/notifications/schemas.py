from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from traineedb.apps.accounts.models import AccountRole

from .models import EmailStatus, NotificationType


class NotificationRead(BaseModel):
    id: int
    recipient_id: int
    recipient_type: AccountRole
    sender_id: Optional[int] = None
    sender_type: Optional[AccountRole] = None
    type: NotificationType
    title: str
    message: str
    related_type: Optional[str] = None
    related_id: Optional[int] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationPage(BaseModel):
    items: List[NotificationRead]
    total: int
    unread_count: int
    page: int
    limit: int


class NotificationTypeStat(BaseModel):
    type: NotificationType
    count: int
    unread_count: int


class MarkAllReadResult(BaseModel):
    updated: int


class EmailLogRead(BaseModel):
    id: int
    created_at: datetime
    sent_at: Optional[datetime] = None
    recipient: str
    subject: str
    template_key: str
    status: EmailStatus
    error: Optional[str] = None
    context_json: Optional[dict] = None
    correlation_id: Optional[str] = None

    class Config:
        from_attributes = True
