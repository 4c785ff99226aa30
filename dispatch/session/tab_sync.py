"""
Cross-session logout propagation

Only sign-out propagates: a sibling that receives ``authenticated=False``
while it still believes it is signed in drops its cached data and goes back
to the entry point. A sibling receiving ``authenticated=True`` does nothing,
so a session can never become authenticated through another one.
"""

import logging
from collections.abc import Iterable
from typing import Callable, Optional

from .channel import AuthChannel, AuthMessage
from .state import SessionState

logger = logging.getLogger(__name__)

UNAUTHENTICATED_ENTRY_POINT = "/"


class TabSessionSynchronizer:
    def __init__(
        self,
        session: SessionState,
        channel: AuthChannel,
        stores: Iterable,
        navigate: Callable[[str], None],
        entry_point: str = UNAUTHENTICATED_ENTRY_POINT,
        on_resume: Optional[Callable[[], None]] = None,
    ):
        self.session = session
        self.channel = channel
        self.stores = list(stores)
        self.navigate = navigate
        self.entry_point = entry_point
        self.on_resume = on_resume
        self._subscription = None

    @property
    def is_listening(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def start(self) -> None:
        if self.is_listening:
            return
        self._subscription = self.channel.subscribe(self.session.session_id, self.handle_message)

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def handle_message(self, message: AuthMessage) -> None:
        logger.info(f"🔄 Auth change detected in session {message.origin}")
        if message.authenticated or not self.session.authenticated:
            return

        logger.info(f"👋 Sign-out detected in another session, leaving session {self.session.session_id}")
        for store in self.stores:
            store.reset()
        self.session.clear()
        self.navigate(self.entry_point)

    def force_sync(self) -> None:
        """Rewrite the persisted flag with the current in-memory state"""
        self.channel.publish(self.session.to_message())

    def on_visibility_change(self, hidden: bool) -> None:
        if not hidden and self.session.authenticated:
            logger.info("👀 Session visible again, synchronizing")
            self._resume()

    def on_focus(self) -> None:
        if self.session.authenticated:
            logger.info("👀 Session focused, checking authentication")
            self._resume()

    def _resume(self) -> None:
        if self.on_resume is None:
            return
        try:
            self.on_resume()
        except Exception as e:
            logger.warning(f"⚠️ Resume hook failed: {e}")
