from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from .auth import PBKDF2_ITERS, hash_password, verify_password
from .errors import AccountDisabled, DuplicateEmail, InvalidCredentials, NotFound
from .models import User, utcnow

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "email")


def normalize_email(email: str) -> str:
    return email.strip().lower()


@lru_cache(maxsize=None)
def _dummy_hash(iters: int) -> str:
    return hash_password("not-a-real-password", iters)


class UserStore:
    """Users and their credentials."""

    def __init__(self, engine: Engine, *, pbkdf2_iters: int = PBKDF2_ITERS):
        self._session = sessionmaker(bind=engine, expire_on_commit=False)
        self._iters = pbkdf2_iters

    def register(self, name: str, email: str, password: str) -> User:
        email = normalize_email(email)
        now = utcnow()
        with self._session() as s:
            existing = s.execute(select(User.id).where(User.email == email)).first()
            if existing is not None:
                raise DuplicateEmail()
            u = User(
                name=name.strip(),
                email=email,
                password_hash=hash_password(password, self._iters),
                is_active=True,
                last_login=None,
                created_at=now,
                updated_at=now,
            )
            s.add(u)
            try:
                s.commit()
            except IntegrityError as exc:
                # lost a race with a concurrent registration
                s.rollback()
                raise DuplicateEmail() from exc
        logger.info("registered user %s", u.id)
        return u

    def verify_credentials(self, email: str, password: str) -> User:
        email = normalize_email(email)
        with self._session() as s:
            u = s.execute(select(User).where(User.email == email)).scalars().first()
            if u is None:
                # burn the same pbkdf2 work as a real comparison
                verify_password(password, _dummy_hash(self._iters))
                logger.warning("failed login (unknown email)")
                raise InvalidCredentials()
            if not verify_password(password, u.password_hash):
                logger.warning("failed login for user %s", u.id)
                raise InvalidCredentials()
            if not u.is_active:
                raise AccountDisabled()

            u.last_login = utcnow()
            s.commit()
        return u

    def get_active(self, user_id: str) -> User | None:
        with self._session() as s:
            return (
                s.execute(select(User).where(User.id == user_id, User.is_active.is_(True)))
                .scalars()
                .first()
            )

    def update_profile(self, user_id: str, fields: dict[str, Any]) -> User:
        with self._session() as s:
            u = s.get(User, user_id)
            if u is None:
                raise NotFound("User not found")
            for key in PROFILE_FIELDS:
                if key not in fields:
                    continue
                value = fields[key]
                if key == "email":
                    value = normalize_email(value)
                    taken = s.execute(
                        select(User.id).where(User.email == value, User.id != user_id)
                    ).first()
                    if taken is not None:
                        raise DuplicateEmail()
                elif key == "name":
                    value = value.strip()
                setattr(u, key, value)
            u.updated_at = utcnow()
            try:
                s.commit()
            except IntegrityError as exc:
                s.rollback()
                raise DuplicateEmail() from exc
        return u

    def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        with self._session() as s:
            u = s.get(User, user_id)
            if u is None or not verify_password(old_password, u.password_hash):
                raise InvalidCredentials("Current password is incorrect")
            u.password_hash = hash_password(new_password, self._iters)
            u.updated_at = utcnow()
            s.commit()
        logger.info("password changed for user %s", user_id)

