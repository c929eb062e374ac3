from __future__ import annotations

import logging
import time

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .config import Settings
from .models import Base

logger = logging.getLogger(__name__)


def get_engine(settings: Settings) -> Engine:
    url = settings.database_url
    if not url:
        raise RuntimeError("DATABASE_URL is required")
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": settings.db_connect_timeout}}
        # in-memory databases live as long as their single connection
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args={"connect_timeout": settings.db_connect_timeout},
    )


def init_db(settings: Settings) -> Engine:
    """Create the engine and the tables, retrying while the database boots.

    The database container might not accept connections yet when the API
    starts, so this retries once a second before failing hard.
    """
    last_exc: Exception | None = None
    attempts = max(settings.db_init_retries, 1)
    for attempt in range(1, attempts + 1):
        engine = None
        try:
            engine = get_engine(settings)
            Base.metadata.create_all(bind=engine)
            logger.info("database ready after %d attempt(s)", attempt)
            return engine
        except RuntimeError:
            raise
        except Exception as exc:  # noqa: BLE001
            last_exc = exc
            logger.warning("database not ready (attempt %d): %s", attempt, exc)
            if engine is not None:
                engine.dispose()
            if attempt < attempts:
                time.sleep(1.0)
    raise RuntimeError(f"DB init failed after retries: {last_exc}")


def ping(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:  # noqa: BLE001
        logger.warning("database ping failed", exc_info=True)
        return False
