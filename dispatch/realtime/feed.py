"""
Change-notification transport

A feed delivers one ``ChangeEvent`` per inserted, updated or deleted row of a
watched table, plus ``AuthEvent``s for sign-in and sign-out. Payloads are
opaque to consumers: the only thing that matters is that a change happened.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

from ..shared.subscriptions import Subscription

logger = logging.getLogger(__name__)

CHANGE_KINDS = ("INSERT", "UPDATE", "DELETE")
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    kind: str
    record: Optional[dict] = None


@dataclass(frozen=True)
class AuthEvent:
    kind: str
    user_id: Optional[str] = None


ChangeCallback = Callable[[ChangeEvent], Any]
AuthCallback = Callable[[AuthEvent], Any]


class ChangeFeed(ABC):
    """Subscriber registry shared by the feed implementations"""

    def __init__(self):
        self._tables: dict[str, dict[int, tuple[str, ChangeCallback]]] = {}
        self._auth_listeners: dict[int, AuthCallback] = {}
        self._next_token = 0
        self._lock = threading.Lock()

    @abstractmethod
    def publish(self, table: str, kind: str, record: Optional[dict] = None) -> None:
        """Announce a row change on ``table``"""

    @abstractmethod
    def emit_auth(self, kind: str, user_id: Optional[str] = None) -> None:
        """Announce an authentication state transition"""

    def subscribe(self, channel: str, table: str, callback: ChangeCallback) -> Subscription:
        with self._lock:
            token = self._take_token()
            self._tables.setdefault(table, {})[token] = (channel, callback)
        logger.debug(f"🔔 Channel {channel} subscribed to {table}")
        return Subscription(channel, lambda: self._drop_table_listener(table, token))

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        with self._lock:
            token = self._take_token()
            self._auth_listeners[token] = callback
        return Subscription("auth_state", lambda: self._drop_auth_listener(token))

    def subscriber_count(self, table: Optional[str] = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._tables.get(table, {}))
            return sum(len(listeners) for listeners in self._tables.values()) + len(
                self._auth_listeners
            )

    def _take_token(self) -> int:
        token = self._next_token
        self._next_token += 1
        return token

    def _drop_table_listener(self, table: str, token: int) -> None:
        with self._lock:
            self._tables.get(table, {}).pop(token, None)

    def _drop_auth_listener(self, token: int) -> None:
        with self._lock:
            self._auth_listeners.pop(token, None)

    def _deliver_change(self, event: ChangeEvent) -> None:
        with self._lock:
            listeners = list(self._tables.get(event.table, {}).values())
        for channel, callback in listeners:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"❌ Listener {channel} failed on {event.table} {event.kind}: {e}")

    def _deliver_auth(self, event: AuthEvent) -> None:
        with self._lock:
            listeners = list(self._auth_listeners.values())
        for callback in listeners:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"❌ Auth listener failed on {event.kind}: {e}")


def _check_kind(kind: str) -> str:
    kind = kind.upper()
    if kind not in CHANGE_KINDS:
        raise ValueError(f"Unknown change kind '{kind}'")
    return kind


class LocalChangeFeed(ChangeFeed):
    """In-process feed; events are delivered synchronously in publish order"""

    def publish(self, table: str, kind: str, record: Optional[dict] = None) -> None:
        self._deliver_change(ChangeEvent(table=table, kind=_check_kind(kind), record=record))

    def emit_auth(self, kind: str, user_id: Optional[str] = None) -> None:
        self._deliver_auth(AuthEvent(kind=kind, user_id=user_id))


class RedisChangeFeed(ChangeFeed):
    """
    Feed shared between worker processes through Redis pub/sub.

    Changes go out on ``<prefix>:<table>`` and auth transitions on
    ``<prefix>:auth``. Reconnection is left to the redis client.
    """

    def __init__(self, client, prefix: str = "realtime", poll_interval: float = 0.05):
        super().__init__()
        self.client = client
        self.prefix = prefix
        self.poll_interval = poll_interval
        self._pubsub = None
        self._thread = None

    @property
    def auth_channel(self) -> str:
        return f"{self.prefix}:auth"

    def publish(self, table: str, kind: str, record: Optional[dict] = None) -> None:
        event = ChangeEvent(table=table, kind=_check_kind(kind), record=record)
        self.client.publish(f"{self.prefix}:{table}", json.dumps(asdict(event), default=str))

    def emit_auth(self, kind: str, user_id: Optional[str] = None) -> None:
        self.client.publish(self.auth_channel, json.dumps(asdict(AuthEvent(kind, user_id))))

    def listen(self) -> None:
        if self._thread is not None:
            return
        self._pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        self._pubsub.psubscribe(**{f"{self.prefix}:*": self.handle_raw})
        self._thread = self._pubsub.run_in_thread(sleep_time=self.poll_interval, daemon=True)
        logger.info(f"🔄 Listening for realtime changes on {self.prefix}:*")

    def close(self) -> None:
        if self._thread is not None:
            self._thread.stop()
            self._thread = None
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None

    def handle_raw(self, message: dict) -> None:
        channel = message.get("channel")
        if isinstance(channel, bytes):
            channel = channel.decode("utf-8")
        try:
            data = json.loads(message.get("data"))
        except (TypeError, json.JSONDecodeError) as e:
            logger.error(f"❌ Dropping malformed realtime payload on {channel}: {e}")
            return

        if channel == self.auth_channel:
            self._deliver_auth(AuthEvent(kind=data.get("kind"), user_id=data.get("user_id")))
        else:
            self._deliver_change(
                ChangeEvent(table=data.get("table"), kind=data.get("kind"), record=data.get("record"))
            )
