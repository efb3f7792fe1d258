"""Collybrix ASGI application.

``create_app`` wires configuration, middleware, the error envelope and
every router into one FastAPI instance; ``collybrix serve`` hands the
result to uvicorn.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from collybrix import __version__
from collybrix.config import CollybrixConfig
from collybrix.database.connection import get_engine, get_session_factory
from collybrix.integrations.identity import IdentityClient
from collybrix.logging import get_logger
from collybrix.web.envelope import register_exception_handlers
from collybrix.web.middleware import RequestLoggingMiddleware
from collybrix.web.routes.dashboard import create_dashboard_router
from collybrix.web.routes.directory import create_directory_router
from collybrix.web.routes.estimations import create_estimations_router
from collybrix.web.routes.health import create_health_router
from collybrix.web.routes.metrics import create_metrics_router
from collybrix.web.routes.pm_users import create_pm_users_router
from collybrix.web.routes.projects import create_projects_router
from collybrix.web.routes.retrospective import create_retrospective_router
from collybrix.web.routes.seed import create_seed_router
from collybrix.web.routes.sprints import create_sprints_router
from collybrix.web.routes.tags import create_tags_router
from collybrix.web.routes.tasks import create_tasks_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)

ROUTER_FACTORIES = (
    create_health_router,
    create_projects_router,
    create_estimations_router,
    create_tasks_router,
    create_sprints_router,
    create_retrospective_router,
    create_metrics_router,
    create_tags_router,
    create_pm_users_router,
    create_directory_router,
    create_seed_router,
    create_dashboard_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the database pool for the lifetime of the server.

    A session factory preset on ``app.state`` (the test suite injects an
    in-memory SQLite one) is left alone and not disposed.
    """
    config: CollybrixConfig = app.state.config
    owned_engine = None

    if app.state.session_factory is None:
        owned_engine = get_engine(config.database)
        app.state.session_factory = get_session_factory(owned_engine)
        logger.info(
            "database_pool_opened",
            pool_size=config.database.pool_size,
            max_overflow=config.database.max_overflow,
        )

    try:
        yield
    finally:
        await app.state.identity_client.close()
        if owned_engine is not None:
            await owned_engine.dispose()
            logger.info("database_pool_closed")


def create_app(config: CollybrixConfig | None = None) -> FastAPI:
    """Build the API and dashboard application.

    Args:
        config: Settings to run with; defaults plus environment when None.
    """
    config = config or CollybrixConfig()

    app = FastAPI(
        title="Collybrix",
        version=__version__,
        description="Agency projects, estimations and project management",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.session_factory = None
    app.state.identity_client = IdentityClient(config.identity)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Added last, so it runs first and logs every request including CORS preflights
    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    for factory in ROUTER_FACTORIES:
        app.include_router(factory())

    logger.info("app_created", version=__version__, routers=len(ROUTER_FACTORIES))
    return app
