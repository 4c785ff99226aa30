"""Realtime change notifications and the store invalidation built on them"""

from .feed import AuthEvent, ChangeEvent, ChangeFeed, LocalChangeFeed, RedisChangeFeed
from .invalidator import COLLECTION_TARGETS, InvalidatorHandle, RealtimeCacheInvalidator

__all__ = [
    "AuthEvent",
    "COLLECTION_TARGETS",
    "ChangeEvent",
    "ChangeFeed",
    "InvalidatorHandle",
    "LocalChangeFeed",
    "RealtimeCacheInvalidator",
    "RedisChangeFeed",
]
