"""
Auth broadcast channel

The authenticated flag is persisted under a well-known key and every write is
broadcast to the other sessions watching that key. The writer never receives
its own message.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from ..shared.subscriptions import Subscription

logger = logging.getLogger(__name__)

AUTH_STORAGE_KEY = "auth-storage"

AuthCallback = Callable[["AuthMessage"], None]


@dataclass(frozen=True)
class AuthMessage:
    authenticated: bool
    origin: str
    user_id: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw) -> "AuthMessage":
        """Parse a persisted payload; raises ValueError when it is malformed"""
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            data = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid auth payload: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("authenticated"), bool):
            raise ValueError("Auth payload must carry a boolean 'authenticated' flag")
        return cls(
            authenticated=data["authenticated"],
            origin=str(data.get("origin", "")),
            user_id=data.get("user_id"),
        )


class AuthChannel(ABC):
    """Persisted key plus change notification to every other session"""

    key: str = AUTH_STORAGE_KEY

    def __init__(self):
        self._subscribers: dict[int, tuple[str, AuthCallback]] = {}
        self._next_token = 0
        self._lock = threading.Lock()

    @abstractmethod
    def publish(self, message: AuthMessage) -> None:
        """Persist ``message`` and notify sibling sessions"""

    @abstractmethod
    def read(self) -> Optional[AuthMessage]:
        """Return the last persisted message, if any"""

    def subscribe(self, session_id: str, callback: AuthCallback) -> Subscription:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = (session_id, callback)
            first = len(self._subscribers) == 1
        if first:
            self._on_first_subscriber()
        return Subscription(f"{self.key}:{session_id}", lambda: self._remove(token))

    def _remove(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)
            empty = not self._subscribers
        if empty:
            self._on_last_unsubscribe()

    def _deliver(self, message: AuthMessage) -> None:
        with self._lock:
            targets = [cb for sid, cb in self._subscribers.values() if sid != message.origin]
        for callback in targets:
            try:
                callback(message)
            except Exception as e:
                logger.error(f"❌ Auth listener failed: {e}")

    def _on_first_subscriber(self) -> None:
        pass

    def _on_last_unsubscribe(self) -> None:
        pass


class InMemoryAuthChannel(AuthChannel):
    """Process-local channel; every session in the process shares one instance"""

    def __init__(self, key: str = AUTH_STORAGE_KEY):
        super().__init__()
        self.key = key
        self._stored: Optional[str] = None

    def publish(self, message: AuthMessage) -> None:
        self._stored = message.to_json()
        self._deliver(message)

    def read(self) -> Optional[AuthMessage]:
        if self._stored is None:
            return None
        return AuthMessage.from_json(self._stored)


class RedisAuthChannel(AuthChannel):
    """
    Channel backed by Redis: the blob is kept with SET and broadcast with
    PUBLISH on a channel of the same name. A listener thread is started on the
    first subscription and stopped with the last one.
    """

    def __init__(self, client, key: str = AUTH_STORAGE_KEY, poll_interval: float = 0.05):
        super().__init__()
        self.key = key
        self.client = client
        self.poll_interval = poll_interval
        self._pubsub = None
        self._thread = None

    def publish(self, message: AuthMessage) -> None:
        payload = message.to_json()
        self.client.set(self.key, payload)
        self.client.publish(self.key, payload)
        logger.debug(f"📡 Auth state published on {self.key}: {message.authenticated}")

    def read(self) -> Optional[AuthMessage]:
        raw = self.client.get(self.key)
        if raw is None:
            return None
        try:
            return AuthMessage.from_json(raw)
        except ValueError as e:
            logger.warning(f"⚠️ Ignoring malformed auth blob: {e}")
            return None

    def handle_raw(self, message: dict) -> None:
        """Pub/sub handler; malformed payloads are logged and dropped"""
        try:
            parsed = AuthMessage.from_json(message.get("data"))
        except ValueError as e:
            logger.error(f"❌ Error parsing auth payload: {e}")
            return
        self._deliver(parsed)

    def _on_first_subscriber(self) -> None:
        self._pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        self._pubsub.subscribe(**{self.key: self.handle_raw})
        self._thread = self._pubsub.run_in_thread(sleep_time=self.poll_interval, daemon=True)
        logger.info(f"🔄 Listening for auth changes on {self.key}")

    def _on_last_unsubscribe(self) -> None:
        if self._thread is not None:
            self._thread.stop()
            self._thread = None
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None
