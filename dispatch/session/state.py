"""In-memory authentication state of one session"""

import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Optional

from ..config import SESSION_INIT_MAX_ATTEMPTS
from .channel import AuthChannel, AuthMessage

logger = logging.getLogger(__name__)


class SessionState:
    """
    The session's view of whether a user is signed in.

    Writes go through ``sign_in``/``sign_out`` so the persisted flag stays in
    step with the in-memory one; ``clear`` only touches local state.
    """

    def __init__(self, channel: Optional[AuthChannel] = None, session_id: Optional[str] = None):
        self.session_id = session_id or uuid.uuid4().hex
        self.channel = channel
        self.authenticated = False
        self.user_id: Optional[str] = None
        self.loading = True

    async def initialize(
        self,
        auth_check: Callable[[], Awaitable[Optional[str]]],
        max_attempts: int = SESSION_INIT_MAX_ATTEMPTS,
        retry_delay: float = 0.5,
    ) -> bool:
        """
        Establish the session from the auth provider.

        ``auth_check`` returns the signed-in user id or None. Failures are
        retried up to ``max_attempts`` times, after which the session proceeds
        unauthenticated.
        """
        for attempt in range(1, max_attempts + 1):
            try:
                user_id = await auth_check()
            except Exception as e:
                logger.warning(f"⚠️ Session initialization attempt {attempt}/{max_attempts} failed: {e}")
                if attempt < max_attempts and retry_delay:
                    await asyncio.sleep(retry_delay * attempt)
                continue

            self.user_id = user_id
            self.authenticated = user_id is not None
            self.loading = False
            return self.authenticated

        logger.error(f"❌ Could not establish session after {max_attempts} attempts, continuing signed out")
        self.clear()
        return False

    def sign_in(self, user_id: str) -> None:
        self.user_id = user_id
        self.authenticated = True
        self.loading = False
        self._persist()

    def sign_out(self) -> None:
        logger.info(f"👋 Signing out session {self.session_id}")
        self.clear()
        self._persist()

    def clear(self) -> None:
        self.user_id = None
        self.authenticated = False
        self.loading = False

    def to_message(self) -> AuthMessage:
        return AuthMessage(
            authenticated=self.authenticated, origin=self.session_id, user_id=self.user_id
        )

    def _persist(self) -> None:
        if self.channel is not None:
            self.channel.publish(self.to_message())
