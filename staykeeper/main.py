# staykeeper/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import init_db
from .errors import register_error_handlers
from .logging_config import configure_logging

from .middleware.request_id import RequestIdMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.entities import router as entities_router
from .routers.changes import router as changes_router

from .routers.properties import router as properties_router
from .routers.inventory import router as inventory_router
from .routers.templates import router as templates_router
from .routers.inspections import router as inspections_router
from .routers.damage_reports import router as damage_reports_router

from .routers.users import router as users_router
from .routers.dashboard import router as dashboard_router

from .services.change_feed import ChangeFeed, feed as default_feed

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def create_app(*, feed: Optional[ChangeFeed] = None, create_tables: bool = True) -> FastAPI:
    configure_logging()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if create_tables:
            init_db()
        yield

    app = FastAPI(title="StayKeeper", version=settings.app_version, lifespan=lifespan)
    app.state.feed = feed or default_feed

    # middleware runs last-added first: request id must be set before the log line
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(entities_router, prefix=API_PREFIX)
    app.include_router(changes_router, prefix=API_PREFIX)

    # Operations
    app.include_router(properties_router, prefix=API_PREFIX)
    app.include_router(inventory_router, prefix=API_PREFIX)
    app.include_router(templates_router, prefix=API_PREFIX)
    app.include_router(inspections_router, prefix=API_PREFIX)
    app.include_router(damage_reports_router, prefix=API_PREFIX)

    # Admin
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(dashboard_router, prefix=API_PREFIX)

    return app


app = create_app()
