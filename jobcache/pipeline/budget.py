"""Request budget: daily ceiling on outbound provider calls.

The counter is process-scoped and keyed by the clock's local date, so it
resets by itself at day rollover. Inject a clock to simulate the rollover.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime

from jobcache.core.config import BudgetConfig

logger = logging.getLogger(__name__)


class RequestBudget:
    """Enforces the daily provider request limit.

    Usage::

        budget = RequestBudget(BudgetConfig(max_requests_per_day=90))
        if budget.can_request():
            budget.record_request()
            ...  # call the provider
    """

    def __init__(
        self,
        config: BudgetConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._limit = (config or BudgetConfig()).max_requests_per_day
        self._clock = clock
        self._day: date = clock().date()
        self._used = 0

    def _roll_over(self) -> None:
        today = self._clock().date()
        if today != self._day:
            logger.debug("New day %s - resetting request budget (%d used)", today, self._used)
            self._day = today
            self._used = 0

    def can_request(self) -> bool:
        """Return True if another provider request fits in today's budget."""
        self._roll_over()
        allowed = self._used < self._limit
        if not allowed:
            logger.info("Request budget reached: %d/%d today", self._used, self._limit)
        return allowed

    def remaining(self) -> int:
        self._roll_over()
        return max(0, self._limit - self._used)

    def record_request(self) -> None:
        """Count one outbound request against today's budget."""
        self._roll_over()
        self._used += 1
        logger.debug("Recorded provider request %d/%d", self._used, self._limit)
