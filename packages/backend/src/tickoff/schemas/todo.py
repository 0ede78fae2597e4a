"""Pydantic schemas for todos.

Separate schemas for create/update/read keep the API explicit:
- TodoCreate: what you POST
- TodoUpdate: what you PUT (every field optional, only sent fields apply)
- TodoRead / TodoPage: what the API returns
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from tickoff.db.models import as_utc

TodoStatus = Literal["pending", "done"]


def clean_title(v: Optional[str]) -> str:
    """Trim a title, rejecting missing or blank ones with ValueError."""
    if v is None or not v.strip():
        raise ValueError("Title is required")
    return v.strip()


class TodoCreate(BaseModel):
    title: str = Field(..., max_length=200)
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return clean_title(v)


class TodoUpdate(BaseModel):
    """Partial update — only fields present in the request body are applied.

    Sending `"description": null` clears the description; title and status
    cannot be nulled.
    """

    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    status: Optional[TodoStatus] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> str:
        return clean_title(v)

    @field_validator("status")
    @classmethod
    def status_not_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("Status cannot be null")
        return v


class TodoRead(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str]
    status: TodoStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def timestamps_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class TodoPage(BaseModel):
    items: list[TodoRead]
    total: int
    page: int
    limit: int
    pages: int
