"""In-memory caches of domain collections, refreshed from the backend of record"""

from .admin_store import AdminSnapshot, AdminStore
from .missions_store import MissionsSnapshot, MissionsStore

__all__ = ["AdminSnapshot", "AdminStore", "MissionsSnapshot", "MissionsStore"]
