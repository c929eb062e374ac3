from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from .deps import get_current_user, get_todo_repo
from .models import User
from .schemas import (
    Pagination,
    Priority,
    SortField,
    SortOrder,
    TodoCreate,
    TodoOut,
    TodoUpdate,
    dump,
    success,
)
from .todos import TodoRepository

router = APIRouter(prefix="/todos", tags=["todos"])


def _todo(t) -> dict:
    return dump(TodoOut.model_validate(t))


@router.get("")
def list_todos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    completed: bool | None = Query(None),
    priority: Priority | None = Query(None),
    sort_by: SortField = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    user: User = Depends(get_current_user),
    repo: TodoRepository = Depends(get_todo_repo),
):
    rows, total = repo.list_page(
        user.id,
        completed=completed,
        priority=priority,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return success(
        {
            "todos": [_todo(t) for t in rows],
            "pagination": dump(Pagination.build(page, limit, total)),
        }
    )


@router.get("/stats")
def todo_stats(
    user: User = Depends(get_current_user),
    repo: TodoRepository = Depends(get_todo_repo),
):
    return success({"stats": dump(repo.stats(user.id))})


@router.get("/{todo_id}")
def get_todo(
    todo_id: str,
    user: User = Depends(get_current_user),
    repo: TodoRepository = Depends(get_todo_repo),
):
    return success({"todo": _todo(repo.find_by_id(user.id, todo_id))})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_todo(
    body: TodoCreate,
    user: User = Depends(get_current_user),
    repo: TodoRepository = Depends(get_todo_repo),
):
    t = repo.create(user.id, body.model_dump())
    return success({"todo": _todo(t)}, "Todo created successfully")


@router.put("/{todo_id}")
def update_todo(
    todo_id: str,
    body: TodoUpdate,
    user: User = Depends(get_current_user),
    repo: TodoRepository = Depends(get_todo_repo),
):
    t = repo.update(user.id, todo_id, body.model_dump(exclude_unset=True))
    return success({"todo": _todo(t)}, "Todo updated successfully")


@router.patch("/{todo_id}/toggle")
def toggle_todo(
    todo_id: str,
    user: User = Depends(get_current_user),
    repo: TodoRepository = Depends(get_todo_repo),
):
    t = repo.toggle_completion(user.id, todo_id)
    state = "completed" if t.completed else "pending"
    return success({"todo": _todo(t)}, f"Todo marked as {state}")


@router.delete("/{todo_id}")
def delete_todo(
    todo_id: str,
    user: User = Depends(get_current_user),
    repo: TodoRepository = Depends(get_todo_repo),
):
    repo.delete(user.id, todo_id)
    return success(message="Todo deleted successfully")


@router.delete("")
def delete_completed(
    user: User = Depends(get_current_user),
    repo: TodoRepository = Depends(get_todo_repo),
):
    n = repo.delete_all_completed(user.id)
    return success({"deletedCount": n}, f"{n} completed todos deleted successfully")
