from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    PlainSerializer,
    StringConstraints,
    field_validator,
)
from pydantic.alias_generators import to_camel

Priority = Literal["low", "medium", "high"]
SortField = Literal["createdAt", "updatedAt", "dueDate", "priority", "title"]
SortOrder = Literal["asc", "desc"]

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)]
Tag = Annotated[str, StringConstraints(strip_whitespace=True, max_length=20)]


def _as_naive_utc(v: datetime | None) -> datetime | None:
    if v is not None and v.tzinfo is not None:
        v = v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


def _iso_utc(v: datetime) -> str:
    # stored naive UTC; always send an explicit offset
    if v.tzinfo is None:
        v = v.replace(tzinfo=timezone.utc)
    return v.isoformat()


UtcDateTime = Annotated[datetime, PlainSerializer(_iso_utc, return_type=str, when_used="json")]


def _validate_strong_password(pw: str) -> str:
    # >=8, at least 1 digit, 1 uppercase, 1 lowercase
    if len(pw) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not re.search(r"[a-z]", pw):
        raise ValueError("Password must include a lowercase letter")
    if not re.search(r"[A-Z]", pw):
        raise ValueError("Password must include an uppercase letter")
    if not re.search(r"\d", pw):
        raise ValueError("Password must include a number")
    return pw


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- auth ---


class RegisterIn(CamelModel):
    name: Name
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return _validate_strong_password(v)


class LoginIn(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdate(CamelModel):
    name: Name | None = None
    email: EmailStr | None = None

    @field_validator("name", "email")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class ChangePasswordIn(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def strong_new_password(cls, v: str) -> str:
        return _validate_strong_password(v)


class UserOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    is_active: bool
    last_login: UtcDateTime | None = None
    created_at: UtcDateTime
    updated_at: UtcDateTime


class OwnerOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str


# --- todos ---


class TodoCreate(CamelModel):
    title: Title
    description: Description = ""
    priority: Priority = "medium"
    due_date: datetime | None = None
    tags: list[Tag] = Field(default_factory=list)

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v):
        return _as_naive_utc(v)


class TodoUpdate(CamelModel):
    """Partial update: only the fields present in the request are applied."""

    title: Title | None = None
    description: Description | None = None
    priority: Priority | None = None
    due_date: datetime | None = None
    tags: list[Tag] | None = None
    completed: bool | None = None

    # dueDate may be sent as null to clear it; the rest may not
    @field_validator("title", "description", "priority", "tags", "completed")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v):
        return _as_naive_utc(v)


class TodoOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    completed: bool
    priority: str
    due_date: UtcDateTime | None = None
    tags: list[str]
    user_id: str
    # the owning user, read from the ORM "owner" relationship
    user: OwnerOut = Field(validation_alias="owner")
    completed_at: UtcDateTime | None = None
    created_at: UtcDateTime
    updated_at: UtcDateTime


class TodoStats(CamelModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    high_priority: int = 0
    medium_priority: int = 0
    low_priority: int = 0


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total_count: int) -> Pagination:
        total_pages = -(-total_count // limit)  # ceil
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total_count,
            limit=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


# --- envelope ---


def dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


def success(data: dict[str, Any] | None = None, message: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"status": "success"}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
