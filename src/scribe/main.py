"""FastAPI application factory and lifespan management."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scribe import __version__
from scribe.config import settings
from scribe.db.engine import create_all, create_db_engine, create_session_factory
from scribe.logging_config import configure_logging
from scribe.services.container import build_sql_services

configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database, wire services, start the retry sweeper; undo on shutdown."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # SQLite has no migrations; create tables on startup
    if db_url.startswith("sqlite"):
        await create_all(engine)
        logger.info("SQLite tables created (local mode)")

    session_factory = create_session_factory(engine)
    app.state.db_engine = engine
    app.state.db_session_factory = session_factory
    app.state.services = build_sql_services(session_factory)

    app.state.redis = None
    if not settings.local_mode:
        import redis.asyncio as aioredis

        app.state.redis = aioredis.from_url(settings.redis_url, decode_responses=True)

    from scribe.workers.retry_sweeper import run_retry_sweeper

    sweeper_task = asyncio.create_task(run_retry_sweeper(app))

    logger.info("Scribe dispatch started (db=%s)", "sqlite" if db_url.startswith("sqlite") else "postgresql")
    yield

    sweeper_task.cancel()
    try:
        await sweeper_task
    except asyncio.CancelledError:
        pass
    if app.state.redis is not None:
        await app.state.redis.aclose()
    await engine.dispose()
    logger.info("Scribe dispatch shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Scribe Dispatch",
        version=__version__,
        description="Signed webhook fan-out and user notifications for Slack Summary Scribe.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from scribe.api.middleware.trace_id import TraceIdMiddleware

    app.add_middleware(TraceIdMiddleware)

    from scribe.errors.handlers import register_exception_handlers

    register_exception_handlers(app)

    from scribe.api.router import api_router

    app.include_router(api_router)

    return app


app = create_app()
