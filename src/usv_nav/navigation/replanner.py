"""
Re-plan scheduling.

Collisions and map changes can fire many times in a burst. Requests are
coalesced: while one planning pass is pending, further requests only
bump a counter. The pass becomes due `delay` seconds after the first
request.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class ReplanScheduler:
    """
    Debounced re-plan trigger.

    Usage:
        scheduler = ReplanScheduler(delay=0.5)
        scheduler.request("collision", now)

        if scheduler.due(now):
            planner.plan(...)
            scheduler.complete()
    """

    def __init__(self, delay: float = 0.5):
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.delay = delay

        self._due_at: Optional[float] = None
        self._reason: Optional[str] = None

        self.requested = 0
        self.coalesced = 0
        self.completed = 0

    @property
    def pending(self) -> bool:
        return self._due_at is not None

    @property
    def reason(self) -> Optional[str]:
        """Reason given by the request that scheduled the pending pass."""
        return self._reason

    def request(self, reason: str, now: float) -> bool:
        """
        Ask for a planning pass.

        Returns:
            True if a pass was scheduled, False if merged into a pending one
        """
        self.requested += 1
        if self._due_at is not None:
            self.coalesced += 1
            logger.debug("[Nav] Re-plan request (%s) merged into pending pass", reason)
            return False

        self._due_at = now + self.delay
        self._reason = reason
        logger.debug("[Nav] Re-plan scheduled at t=%.2f (%s)", self._due_at, reason)
        return True

    def due(self, now: float) -> bool:
        return self._due_at is not None and now >= self._due_at

    def complete(self):
        """Mark the pending pass as done."""
        if self._due_at is None:
            return
        self._due_at = None
        self._reason = None
        self.completed += 1
