"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ecoquest.config import get_settings
from ecoquest.database import close_db, get_session_factory, init_db
from ecoquest.gamification.catalog import get_catalog
from ecoquest.gamification.router import router as progression_router
from ecoquest.gamification.seed import seed_challenges
from ecoquest.health.router import router as health_router
from ecoquest.middleware import setup_middleware
from ecoquest.realtime.manager import manager
from ecoquest.realtime.notifier import ChangeNotifier
from ecoquest.realtime.refresher import RealtimeRefresher
from ecoquest.realtime.router import router as ws_router
from ecoquest.redis_client import close_redis, init_redis
from ecoquest.social.router import router as social_router
from ecoquest.store.profile_store import ProfileStore
from ecoquest.users.router import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    notifier = ChangeNotifier(await init_redis(settings))

    # Seed challenges (idempotent) and warm the catalog
    try:
        async with get_session_factory()() as session:
            store = ProfileStore.from_settings(session, settings, notifier)
            if settings.seed_challenges_on_startup:
                await seed_challenges(store)
            await get_catalog(store, reload=True)
    except Exception:
        logger.warning("Challenge seeding failed (tables may not exist yet)", exc_info=True)

    # Re-read views on table changes and push them to WebSocket clients
    refresher = None
    refresher_task = None
    if notifier.redis is not None:
        refresher = RealtimeRefresher(notifier, manager, get_session_factory(), settings)
        refresher_task = asyncio.create_task(refresher.start())

    yield

    if refresher is not None and refresher_task is not None:
        await refresher.stop()
        refresher_task.cancel()
        try:
            await refresher_task
        except asyncio.CancelledError:
            pass

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="EcoQuest API",
        description="Progression engine for the EcoQuest sustainability app",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(progression_router)
    app.include_router(social_router)
    app.include_router(ws_router)

    return app


app = create_app()
