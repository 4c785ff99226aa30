"""
Realtime cache invalidation

Every change on a watched collection triggers a full refresh of the store
that displays it. Payloads are never merged into the cache. A sign-out resets
both stores so no authenticated data survives into a signed-out view.
"""

import asyncio
import logging
from typing import Callable, Optional

from .feed import SIGNED_OUT, AuthEvent, ChangeEvent, ChangeFeed

logger = logging.getLogger(__name__)

MISSIONS_STORE = "missions"
ADMIN_STORE = "admin"

# collection -> store refreshed when it changes
COLLECTION_TARGETS = {
    "missions": MISSIONS_STORE,
    "mission_assignments": MISSIONS_STORE,
    "users": ADMIN_STORE,
    "billing": ADMIN_STORE,
    "availability": ADMIN_STORE,
}


class InvalidatorHandle:
    """Returned by ``start``; holds every subscription opened for the session"""

    def __init__(self, invalidator: "RealtimeCacheInvalidator", subscriptions: list):
        self._invalidator = invalidator
        self.subscriptions = subscriptions

    @property
    def active(self) -> bool:
        return any(sub.active for sub in self.subscriptions)

    def stop(self) -> None:
        self._invalidator.stop()


class RealtimeCacheInvalidator:
    def __init__(self, feed: ChangeFeed, missions_store, admin_store):
        self.feed = feed
        self.stores = {MISSIONS_STORE: missions_store, ADMIN_STORE: admin_store}
        self._handle: Optional[InvalidatorHandle] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._in_flight: set[asyncio.Task] = set()

    @property
    def is_subscribed(self) -> bool:
        return self._handle is not None

    def start(self) -> InvalidatorHandle:
        """
        Open the five collection subscriptions and the auth observer, once.

        Must be called from the event loop that will run the refreshes.
        """
        if self._handle is not None:
            return self._handle

        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError("Realtime sync must be started from a running event loop") from None

        subscriptions = []
        try:
            for table in COLLECTION_TARGETS:
                subscriptions.append(
                    self.feed.subscribe(f"{table}_changes", table, self._on_change)
                )
            subscriptions.append(self.feed.on_auth_state_change(self._on_auth))
        except Exception:
            for subscription in subscriptions:
                subscription.unsubscribe()
            raise

        self._handle = InvalidatorHandle(self, subscriptions)
        logger.info(f"✅ Realtime sync started ({len(subscriptions)} subscriptions)")
        return self._handle

    def stop(self) -> None:
        """Tear every subscription down together, even if one of them fails"""
        if self._handle is None:
            return

        failures = []
        for subscription in self._handle.subscriptions:
            try:
                subscription.unsubscribe()
            except Exception as e:
                failures.append(subscription.name)
                logger.error(f"❌ Failed to close {subscription.name}: {e}")

        self._handle = None
        if failures:
            logger.warning(f"⚠️ Realtime sync stopped with errors on: {', '.join(failures)}")
        else:
            logger.info("Realtime sync stopped")

    async def drain(self) -> None:
        """Wait for every refresh triggered so far to settle"""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def _on_change(self, event: ChangeEvent) -> None:
        target = COLLECTION_TARGETS.get(event.table)
        if target is None:
            return
        logger.info(f"🔄 Change detected on {event.table} ({event.kind}), refreshing {target} store")
        self._run_on_loop(lambda: self._spawn(self.stores[target].refresh))

    def _on_auth(self, event: AuthEvent) -> None:
        if event.kind != SIGNED_OUT:
            return
        logger.info("👋 Signed out, resetting stores")
        self._run_on_loop(self._reset_stores)

    def _reset_stores(self) -> None:
        for store in self.stores.values():
            store.reset()

    def _run_on_loop(self, fn: Callable[[], None]) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None and running is self._loop:
            fn()
        elif self._loop is None or self._loop.is_closed():
            logger.warning("⚠️ Event loop closed, change dropped")
        else:
            self._loop.call_soon_threadsafe(fn)

    def _spawn(self, refresh) -> None:
        task = self._loop.create_task(refresh())
        self._in_flight.add(task)
        task.add_done_callback(self._on_refresh_done)

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"❌ Store refresh failed: {task.exception()}")
