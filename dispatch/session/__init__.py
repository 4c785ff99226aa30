"""Session state shared between sibling sessions of the same user"""

from .channel import AUTH_STORAGE_KEY, AuthChannel, AuthMessage, InMemoryAuthChannel, RedisAuthChannel
from .state import SessionState
from .tab_sync import TabSessionSynchronizer

__all__ = [
    "AUTH_STORAGE_KEY",
    "AuthChannel",
    "AuthMessage",
    "InMemoryAuthChannel",
    "RedisAuthChannel",
    "SessionState",
    "TabSessionSynchronizer",
]
