"""Owner-scoped persistence and queries for todos.

Every statement that touches a single todo filters on both the todo id and
the owner id, so a todo belonging to somebody else looks exactly like one
that does not exist.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import case, delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .errors import NotFound
from .models import Todo, User, utcnow
from .schemas import TodoStats

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "priority", "due_date", "tags", "completed")

# largest OFFSET a 64-bit signed integer column type accepts
MAX_OFFSET = 2**63 - 1

PRIORITY_RANK = {"low": 0, "medium": 1, "high": 2}

SORT_COLUMNS = {
    "createdAt": Todo.created_at,
    "updatedAt": Todo.updated_at,
    "dueDate": Todo.due_date,
    "title": Todo.title,
    "priority": case(PRIORITY_RANK, value=Todo.priority, else_=-1),
}


def set_completed(todo: Todo, completed: bool, now: datetime) -> None:
    """Set the completion flag and keep completed_at in step with it."""
    if completed:
        if not todo.completed or todo.completed_at is None:
            todo.completed_at = now
    else:
        todo.completed_at = None
    todo.completed = completed


class TodoRepository:
    def __init__(self, engine: Engine):
        self._session = sessionmaker(bind=engine, expire_on_commit=False)

    @staticmethod
    def _owned(owner_id: str, todo_id: str):
        return select(Todo).where(Todo.id == todo_id, Todo.user_id == owner_id)

    def create(self, owner_id: str, attrs: dict[str, Any]) -> Todo:
        now = utcnow()
        t = Todo(
            user_id=owner_id,
            title=attrs["title"],
            description=attrs.get("description") or "",
            priority=attrs.get("priority") or "medium",
            due_date=attrs.get("due_date"),
            tags=list(attrs.get("tags") or []),
            completed=False,
            completed_at=None,
            created_at=now,
            updated_at=now,
        )
        with self._session() as s:
            t.owner = s.get(User, owner_id)
            if t.owner is None:
                raise NotFound("User not found")
            s.add(t)
            s.commit()
        logger.debug("user %s created todo %s", owner_id, t.id)
        return t

    def find_by_id(self, owner_id: str, todo_id: str) -> Todo:
        with self._session() as s:
            t = s.execute(self._owned(owner_id, todo_id)).scalars().first()
        if t is None:
            raise NotFound("Todo not found")
        return t

    def list_page(
        self,
        owner_id: str,
        *,
        completed: bool | None = None,
        priority: str | None = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Todo], int]:
        """Return one page of the owner's todos and the size of the filtered set."""
        conds = [Todo.user_id == owner_id]
        if completed is not None:
            conds.append(Todo.completed.is_(completed))
        if priority is not None:
            conds.append(Todo.priority == priority)

        key = SORT_COLUMNS[sort_by]
        ordering = key.desc() if sort_order == "desc" else key.asc()
        tiebreak = Todo.id.desc() if sort_order == "desc" else Todo.id.asc()

        offset = (page - 1) * limit

        with self._session() as s:
            rows = []
            # past any page the database could address: nothing to return
            if offset <= MAX_OFFSET:
                rows = (
                    s.execute(
                        select(Todo)
                        .where(*conds)
                        .order_by(ordering, tiebreak)
                        .offset(offset)
                        .limit(limit)
                    )
                    .scalars()
                    .all()
                )
            total = s.execute(select(func.count()).select_from(Todo).where(*conds)).scalar_one()
        return list(rows), int(total)

    def update(self, owner_id: str, todo_id: str, patch: dict[str, Any]) -> Todo:
        now = utcnow()
        with self._session() as s:
            t = s.execute(self._owned(owner_id, todo_id)).scalars().first()
            if t is None:
                raise NotFound("Todo not found")
            for key in UPDATABLE_FIELDS:
                if key not in patch:
                    continue
                if key == "completed":
                    set_completed(t, bool(patch[key]), now)
                elif key == "tags":
                    t.tags = list(patch[key])
                else:
                    setattr(t, key, patch[key])
            t.updated_at = now
            s.commit()
        return t

    def toggle_completion(self, owner_id: str, todo_id: str) -> Todo:
        now = utcnow()
        with self._session() as s:
            t = s.execute(self._owned(owner_id, todo_id)).scalars().first()
            if t is None:
                raise NotFound("Todo not found")
            set_completed(t, not t.completed, now)
            t.updated_at = now
            s.commit()
        return t

    def delete(self, owner_id: str, todo_id: str) -> None:
        with self._session() as s:
            res = s.execute(delete(Todo).where(Todo.id == todo_id, Todo.user_id == owner_id))
            removed = res.rowcount
            s.commit()
        if removed == 0:
            raise NotFound("Todo not found")

    def delete_all_completed(self, owner_id: str) -> int:
        with self._session() as s:
            res = s.execute(
                delete(Todo).where(Todo.user_id == owner_id, Todo.completed.is_(True))
            )
            removed = int(res.rowcount)
            s.commit()
        logger.info("user %s cleared %d completed todo(s)", owner_id, removed)
        return removed

    def stats(self, owner_id: str) -> TodoStats:
        def count_if(cond):
            return func.coalesce(func.sum(case((cond, 1), else_=0)), 0)

        stmt = select(
            func.count(Todo.id),
            count_if(Todo.completed.is_(True)),
            count_if(Todo.completed.is_(False)),
            count_if(Todo.priority == "high"),
            count_if(Todo.priority == "medium"),
            count_if(Todo.priority == "low"),
        ).where(Todo.user_id == owner_id)

        with self._session() as s:
            total, done, pending, high, medium, low = s.execute(stmt).one()
        return TodoStats(
            total=int(total),
            completed=int(done),
            pending=int(pending),
            high_priority=int(high),
            medium_priority=int(medium),
            low_priority=int(low),
        )
