from __future__ import annotations

import logging

from fastapi import Depends, Header, Request
from sqlalchemy.engine import Engine

from .auth import decode_token
from .config import Settings
from .errors import ServiceUnavailable, Unauthenticated
from .models import User
from .todos import TodoRepository
from .users import UserStore

logger = logging.getLogger(__name__)


def authenticate(authorization: str | None, *, secret: str, users: UserStore) -> User:
    """Resolve an ``Authorization: Bearer <token>`` header to an active user."""
    if not authorization:
        raise Unauthenticated("Access denied. No token provided.")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthenticated("Invalid Authorization header format. Expected: Bearer <token>")
    user_id = decode_token(parts[1], secret=secret)
    u = users.get_active(user_id)
    if u is None:
        logger.warning("token for unknown or inactive user %s", user_id)
        raise Unauthenticated("Invalid token. User not found.")
    return u


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_engine(request: Request) -> Engine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise ServiceUnavailable()
    return engine


def get_user_store(
    engine: Engine = Depends(get_engine), settings: Settings = Depends(get_settings)
) -> UserStore:
    return UserStore(engine, pbkdf2_iters=settings.pbkdf2_iters)


def get_todo_repo(engine: Engine = Depends(get_engine)) -> TodoRepository:
    return TodoRepository(engine)


def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
    users: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings),
) -> User:
    u = authenticate(authorization, secret=settings.jwt_secret, users=users)
    request.state.user = u
    return u
