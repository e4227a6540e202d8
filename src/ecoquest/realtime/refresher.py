"""Re-reads affected views when the profile store reports a table change.

Change events carry only the table name. For each one the refresher maps
the table to the view channels it feeds, rebuilds those views from the
store and pushes them to subscribed WebSocket clients. Challenge boards
are per-user, so that channel only gets a "refresh" hint.
"""

import asyncio
from collections.abc import Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ecoquest.config import Settings
from ecoquest.gamification import service
from ecoquest.realtime.manager import ConnectionManager
from ecoquest.realtime.notifier import ChangeNotifier
from ecoquest.social.feed_service import list_posts
from ecoquest.store.profile_store import ProfileStore

logger = structlog.get_logger()

TABLE_VIEWS: dict[str, tuple[str, ...]] = {
    "users": ("leaderboard",),
    "challenge_participants": ("challenges",),
    "posts": ("feed",),
}


class RealtimeRefresher:
    """Subscribes to table change events and pushes fresh views to clients."""

    def __init__(
        self,
        notifier: ChangeNotifier,
        connections: ConnectionManager,
        session_factory: Callable[[], AsyncSession],
        settings: Settings,
    ) -> None:
        self.notifier = notifier
        self.connections = connections
        self.session_factory = session_factory
        self.settings = settings
        self._running = False

    async def start(self) -> None:
        """Listen for change events until stopped or cancelled."""
        self._running = True
        logger.info("realtime_refresher_started", tables=list(TABLE_VIEWS))
        try:
            async for table in self.notifier.subscribe(TABLE_VIEWS):
                if not self._running:
                    break
                try:
                    await self.handle_change(table)
                except Exception:
                    logger.exception("realtime_refresh_failed", table=table)
        except asyncio.CancelledError:
            pass
        finally:
            logger.info("realtime_refresher_stopped")

    async def stop(self) -> None:
        self._running = False

    async def handle_change(self, table: str) -> int:
        """Refresh every view fed by ``table``. Returns the number of messages sent."""
        sent = 0
        for channel in TABLE_VIEWS.get(table, ()):
            if not self.connections.has_subscribers(channel):
                continue
            message = await self._build_view(channel)
            reached = await self.connections.broadcast_to_channel(channel, message)
            sent += reached
            logger.debug("realtime_refresh", table=table, channel=channel, recipients=reached)
        return sent

    async def _build_view(self, channel: str) -> dict:
        if channel == "challenges":
            return {"type": "refresh", "view": "challenges"}

        async with self.session_factory() as session:
            store = ProfileStore.from_settings(session, self.settings)
            if channel == "leaderboard":
                entries = await service.get_leaderboard(store, self.settings.leaderboard_size)
                return {"type": "leaderboard", "entries": entries}
            posts = await list_posts(store)
            return {"type": "feed", "posts": posts}
