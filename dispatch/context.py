"""
Application container

Owns the process-wide collaborators (stores, change feed, auth channel,
invalidator) so consumers receive them explicitly instead of importing
module-level singletons.
"""

import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import sessionmaker

from . import config
from .realtime.feed import ChangeFeed, LocalChangeFeed, RedisChangeFeed
from .realtime.invalidator import RealtimeCacheInvalidator
from .session.channel import AuthChannel, InMemoryAuthChannel, RedisAuthChannel
from .stores.admin_store import AdminStore
from .stores.missions_store import MissionsStore
from .stores.sources import SqlDataSource

logger = logging.getLogger(__name__)


class DispatchContext:
    def __init__(
        self,
        session_factory: sessionmaker,
        feed: Optional[ChangeFeed] = None,
        auth_channel: Optional[AuthChannel] = None,
    ):
        self.session_factory = session_factory
        self.feed = feed or LocalChangeFeed()
        self.auth_channel = auth_channel or InMemoryAuthChannel()
        source = SqlDataSource(session_factory)
        self.missions_store = MissionsStore(source)
        self.admin_store = AdminStore(source)
        self.invalidator = RealtimeCacheInvalidator(
            self.feed, self.missions_store, self.admin_store
        )

    @property
    def stores(self) -> list:
        return [self.missions_store, self.admin_store]

    @classmethod
    def from_config(cls, session_factory: sessionmaker) -> "DispatchContext":
        """Build the context for the configured realtime backend"""
        if config.REALTIME_BACKEND == "redis":
            from .redis_client import get_redis_client

            client = get_redis_client()
            feed = RedisChangeFeed(client)
            feed.listen()
            logger.info("📡 Realtime backend: redis")
            return cls(session_factory, feed=feed, auth_channel=RedisAuthChannel(client))

        logger.info("📡 Realtime backend: local")
        return cls(session_factory)

    async def start(self) -> None:
        self.invalidator.start()
        await self.missions_store.refresh()
        await self.admin_store.refresh()

    def stop(self) -> None:
        self.invalidator.stop()
        if isinstance(self.feed, RedisChangeFeed):
            self.feed.close()


def get_context(request: Request) -> DispatchContext:
    return request.app.state.context


def get_session(request: Request):
    db = get_context(request).session_factory()
    try:
        yield db
    finally:
        db.close()
