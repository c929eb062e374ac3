from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import time
from typing import Any

import jwt

from .errors import TokenExpired, TokenInvalid

JWT_ALG = "HS256"
JWT_TTL_SECONDS = 604800  # 7d

PBKDF2_ITERS = 200000


def _b64(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).decode("utf-8").rstrip("=")


def _b64d(s: str) -> bytes:
    pad = "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode((s + pad).encode("utf-8"))


def hash_password(pw: str, iters: int = PBKDF2_ITERS) -> str:
    # Format: pbkdf2_sha256$iters$salt$hash
    salt = secrets.token_bytes(16)
    dk = hashlib.pbkdf2_hmac("sha256", pw.encode("utf-8"), salt, iters, dklen=32)
    return f"pbkdf2_sha256${iters}${_b64(salt)}${_b64(dk)}"


def verify_password(pw: str, pw_hash: str) -> bool:
    try:
        algo, iters_s, salt_s, hash_s = pw_hash.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        iters = int(iters_s)
        salt = _b64d(salt_s)
        expected = _b64d(hash_s)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", pw.encode("utf-8"), salt, iters, dklen=len(expected))
    return hmac.compare_digest(dk, expected)


def make_token(user_id: str, *, secret: str, ttl_seconds: int = JWT_TTL_SECONDS) -> str:
    now = int(time.time())
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + ttl_seconds,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALG)


def decode_token(token: str, *, secret: str) -> str:
    """Return the user id a token was issued for.

    Raises TokenExpired once ``exp`` has passed and TokenInvalid for anything
    else PyJWT rejects (bad signature, garbage, missing claims).
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALG],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpired() from exc
    except jwt.InvalidTokenError as exc:
        raise TokenInvalid() from exc
    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        raise TokenInvalid()
    return sub
