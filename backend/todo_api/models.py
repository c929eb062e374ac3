from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

PRIORITIES = ("low", "medium", "high")


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    # naive UTC; SQLite drops tzinfo anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True)  # stored lower-cased
    password_hash = Column(String(255), nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class Todo(Base):
    __tablename__ = "todos"
    __table_args__ = (
        Index("ix_todos_user_created", "user_id", "created_at"),
        Index("ix_todos_user_completed", "user_id", "completed"),
        Index("ix_todos_user_priority", "user_id", "priority"),
        Index("ix_todos_user_due", "user_id", "due_date"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    owner = relationship("User", lazy="joined")
    title = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=False, default="")
    completed = Column(Boolean, nullable=False, default=False)
    priority = Column(String(8), nullable=False, default="medium")  # low|medium|high
    due_date = Column(DateTime, nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    # non-null exactly while completed is true
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
