"""Circuit breaker for calls to the Pinpoint backend.

After ``failure_threshold`` consecutive failures the breaker opens and calls
are skipped until ``cooldown_seconds`` have passed; the next call is a probe.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class CircuitBreaker:
    failure_threshold: int = 3
    cooldown_seconds: float = 60.0
    label: str = "backend"
    clock: Callable[[], float] = time.monotonic

    _failures: int = field(default=0, init=False, repr=False)
    _opened_at: Optional[float] = field(default=None, init=False, repr=False)

    @property
    def is_open(self) -> bool:
        return self._opened_at is not None and not self._cooled_down()

    def _cooled_down(self) -> bool:
        return (self.clock() - self._opened_at) >= self.cooldown_seconds

    def allow(self) -> bool:
        if self._failures < self.failure_threshold:
            return True
        return self._opened_at is not None and self._cooled_down()

    def record_success(self) -> None:
        if self._opened_at is not None:
            logger.info("Circuit breaker for %s closed again", self.label)
        self._failures = 0
        self._opened_at = None

    def record_failure(self) -> None:
        self._failures += 1
        if self._failures < self.failure_threshold:
            return
        # A failed probe restarts the cooldown
        self._opened_at = self.clock()
        logger.warning(
            "Circuit breaker for %s open after %d failures, skipping calls for %.0fs",
            self.label, self._failures, self.cooldown_seconds,
        )
