from __future__ import annotations

import logging
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    database_url: str | None = None
    jwt_secret: str = "dev-secret-change-me"
    jwt_ttl_seconds: int = 604800  # 7d
    pbkdf2_iters: int = 200000
    db_connect_timeout: int = 10
    db_init_retries: int = 30
    cors_origins: tuple[str, ...] = ("*",)
    redis_url: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        origins = tuple(
            o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()
        )
        return cls(
            database_url=os.environ.get("DATABASE_URL") or None,
            jwt_secret=os.environ.get("JWT_SECRET", "dev-secret-change-me"),
            jwt_ttl_seconds=int(os.environ.get("JWT_TTL_SECONDS", "604800")),
            pbkdf2_iters=int(os.environ.get("PBKDF2_ITERS", "200000")),
            db_connect_timeout=int(os.environ.get("DB_CONNECT_TIMEOUT", "10")),
            db_init_retries=int(os.environ.get("DB_INIT_RETRIES", "30")),
            cors_origins=origins or ("*",),
            redis_url=os.environ.get("REDIS_URL") or None,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("todo_api").setLevel(level)
