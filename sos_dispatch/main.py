"""sos-dispatch FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sos_dispatch.api import admin, health, sos, volunteers, ws
from sos_dispatch.core.broadcaster import Broadcaster
from sos_dispatch.core.config import settings
from sos_dispatch.core.ws_manager import SubscriberRegistry
from sos_dispatch.db.base import Base
from sos_dispatch.db.session import SessionLocal, engine
from sos_dispatch.models import Admin, ChatMessage, SosRequest, Volunteer  # noqa: F401 - register for create_all
from sos_dispatch.services.auth_service import ensure_bootstrap_admin

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        ensure_bootstrap_admin(db)
    finally:
        db.close()

    # Subscriptions are process-local and start empty on every boot
    registry = SubscriberRegistry()
    broadcaster = Broadcaster(registry)
    app.state.registry = registry
    app.state.broadcaster = broadcaster
    await broadcaster.start()
    try:
        yield
    finally:
        await broadcaster.stop()
        registry.clear()


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(sos.router, prefix=settings.api_prefix)
app.include_router(volunteers.router, prefix=settings.api_prefix)
app.include_router(admin.router, prefix=settings.api_prefix)
app.include_router(ws.router)
