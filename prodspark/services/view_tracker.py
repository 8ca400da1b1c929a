"""
Session-scoped view de-duplication.

A product's view counter goes up at most once per session. The session is
whatever the client sends in X-Session-ID (the frontend keeps one per
browser tab session). Two sessions belonging to the same user still count
separately.
"""
import logging
import time
from typing import Callable, Dict, Optional, Tuple

from prodspark.core.config import settings

logger = logging.getLogger(__name__)


class ViewTracker:
    """In-process record of which sessions already viewed which products."""

    def __init__(self, ttl_seconds: int = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.view_session_ttl_seconds
        self._clock = clock
        self._seen: Dict[Tuple[str, str], float] = {}

    def claim(self, session_id: Optional[str], product_id: str) -> bool:
        """
        Record a view for (session, product).

        Returns True if this view should be counted. Anonymous requests
        (no session id) are always counted. Check and set happen without a
        suspension point, so concurrent requests in one event loop cannot
        both claim the same key.
        """
        if not session_id:
            return True

        now = self._clock()
        key = (session_id, str(product_id))
        seen_at = self._seen.get(key)
        if seen_at is not None and now - seen_at < self.ttl_seconds:
            return False

        self._seen[key] = now
        if len(self._seen) % 1000 == 0:
            self.prune()
        return True

    def release(self, session_id: Optional[str], product_id: str) -> None:
        """Forget a claim, e.g. when the increment it guarded failed."""
        if session_id:
            self._seen.pop((session_id, str(product_id)), None)

    def prune(self) -> int:
        """Drop expired claims. Returns how many were removed."""
        cutoff = self._clock() - self.ttl_seconds
        expired = [key for key, seen_at in self._seen.items() if seen_at <= cutoff]
        for key in expired:
            del self._seen[key]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired view claims")
        return len(expired)

    def __len__(self):
        return len(self._seen)


# Global tracker instance
view_tracker = ViewTracker()
