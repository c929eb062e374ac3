from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from .auth import make_token
from .config import Settings
from .deps import get_current_user, get_settings, get_user_store
from .models import User
from .schemas import ChangePasswordIn, LoginIn, ProfileUpdate, RegisterIn, UserOut, dump, success
from .users import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_and_token(u: User, settings: Settings) -> dict:
    token = make_token(u.id, secret=settings.jwt_secret, ttl_seconds=settings.jwt_ttl_seconds)
    return {"user": dump(UserOut.model_validate(u)), "token": token}


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterIn,
    users: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings),
):
    u = users.register(body.name, body.email, body.password)
    return success(_user_and_token(u, settings), "User registered successfully")


@router.post("/login")
def login(
    body: LoginIn,
    users: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings),
):
    u = users.verify_credentials(body.email, body.password)
    logger.info("user %s logged in", u.id)
    return success(_user_and_token(u, settings), "Login successful")


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return success({"user": dump(UserOut.model_validate(user))})


@router.put("/profile")
def update_profile(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
):
    u = users.update_profile(user.id, body.model_dump(exclude_unset=True))
    return success({"user": dump(UserOut.model_validate(u))}, "Profile updated successfully")


@router.put("/change-password")
def change_password(
    body: ChangePasswordIn,
    user: User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
):
    users.change_password(user.id, body.current_password, body.new_password)
    return success(message="Password changed successfully")
