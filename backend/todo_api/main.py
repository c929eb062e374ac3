from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from . import auth_routes, todo_routes
from .config import Settings, configure_logging
from .db import init_db, ping
from .errors import install_error_handlers
from .schemas import success

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # retries sleep between attempts; keep them off the event loop
        app.state.engine = await run_in_threadpool(init_db, settings)
        app.state.redis = None
        if settings.redis_url:
            app.state.redis = redis.Redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=settings.db_connect_timeout,
            )
        logger.info("todo api started")
        try:
            yield
        finally:
            if app.state.redis is not None:
                app.state.redis.close()
            app.state.engine.dispose()
            app.state.engine = None
            logger.info("todo api stopped")

    app = FastAPI(title="Todo API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = None
    app.state.redis = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    @app.get("/api/health")
    def health(request: Request):
        engine = request.app.state.engine
        r = request.app.state.redis
        redis_ok = None
        if r is not None:
            try:
                r.ping()
                redis_ok = True
            except redis.RedisError:
                redis_ok = False
        return success(
            {"database": engine is not None and ping(engine), "redis": redis_ok},
            "Server is running",
        )

    app.include_router(auth_routes.router, prefix="/api")
    app.include_router(todo_routes.router, prefix="/api")
    return app


app = create_app()
