"""Shared FastAPI dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ecoquest.config import get_settings
from ecoquest.database import get_session
from ecoquest.gamification.catalog import ChallengeCatalog, get_catalog
from ecoquest.gamification.engine import ProgressionEngine
from ecoquest.realtime.notifier import ChangeNotifier
from ecoquest.redis_client import get_optional_redis
from ecoquest.store.profile_store import ProfileStore


async def get_store(session: AsyncSession = Depends(get_session)) -> ProfileStore:  # noqa: B008
    """ProfileStore bound to the request's session, publishing change events when Redis is up."""
    return ProfileStore.from_settings(session, get_settings(), ChangeNotifier(get_optional_redis()))


async def get_challenge_catalog(store: ProfileStore = Depends(get_store)) -> ChallengeCatalog:  # noqa: B008
    return await get_catalog(store)


async def get_progression_engine(
    store: ProfileStore = Depends(get_store),  # noqa: B008
    catalog: ChallengeCatalog = Depends(get_challenge_catalog),  # noqa: B008
) -> ProgressionEngine:
    return ProgressionEngine(store, catalog)
