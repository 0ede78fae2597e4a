"""Pydantic schemas for signup, login and user payloads."""

import re
import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from tickoff.db.models import as_utc

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError("Enter a valid email address")
    return v


class SignupRequest(BaseModel):
    name: str = Field(..., max_length=100)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _normalize_email(v)


class LoginRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _normalize_email(v)


class UserRead(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class AuthResponse(BaseModel):
    user: UserRead


class RefreshResponse(BaseModel):
    user_id: uuid.UUID
