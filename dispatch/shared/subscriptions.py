"""Subscription handles shared by the auth channel and the change feed"""

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by ``subscribe``; ``unsubscribe`` is safe to call twice"""

    def __init__(self, name: str, on_unsubscribe: Optional[Callable[[], None]] = None):
        self.name = name
        self._on_unsubscribe = on_unsubscribe
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._on_unsubscribe is not None:
            self._on_unsubscribe()
        logger.debug(f"🔕 Unsubscribed from {self.name}")

    def __repr__(self) -> str:
        state = "active" if self.active else "closed"
        return f"<Subscription {self.name} ({state})>"
