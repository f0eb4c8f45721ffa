# backend/traineedb/apps/accounts/schemas.py

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, EmailStr, Field

from .models import AccountRole

# ---------------------------------------------------------------------------
# ADMINS
# ---------------------------------------------------------------------------


class AdminBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=15)
    date_of_birth: Optional[date] = None
    title: Optional[str] = None


class AdminCreate(AdminBase):
    password: str = Field(..., min_length=6)


class AdminUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=15)
    date_of_birth: Optional[date] = None
    title: Optional[str] = None
    is_active: Optional[bool] = None


class AdminRead(AdminBase):
    id: int
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# INSTRUCTORS
# ---------------------------------------------------------------------------


class InstructorBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=15)
    date_of_birth: Optional[date] = None
    department: str = Field(..., min_length=1, max_length=100)
    designation: Optional[str] = None


class InstructorCreate(InstructorBase):
    password: str = Field(..., min_length=6)


class InstructorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=15)
    date_of_birth: Optional[date] = None
    department: Optional[str] = Field(None, min_length=1, max_length=100)
    designation: Optional[str] = None
    is_active: Optional[bool] = None


class InstructorRead(InstructorBase):
    id: int
    created_by: Optional[int] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# OWN PROFILE
# ---------------------------------------------------------------------------


class AdminProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=15)
    date_of_birth: Optional[date] = None
    title: Optional[str] = None


class InstructorProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=15)
    date_of_birth: Optional[date] = None
    designation: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class PasswordChanged(BaseModel):
    detail: str = "Password changed successfully"


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    role: AccountRole


class SendOtpRequest(BaseModel):
    email: EmailStr
    role: AccountRole


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    role: AccountRole
    otp: str = Field(..., min_length=4, max_length=10)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    role: AccountRole
    user: Union[AdminRead, InstructorRead]


class MeRead(BaseModel):
    role: AccountRole
    user: Union[AdminRead, InstructorRead]


class OtpSent(BaseModel):
    detail: str = "OTP sent to your email address"
    expires_in: int
