"""Fixed-cadence pacing for outbound Steam Web API calls."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable


LOGGER = logging.getLogger(__name__)

# Stays under one request per second to the Steam Web API.
POLITE_DELAY_SECONDS = 1.4


@dataclass
class FixedIntervalRateLimit:
    """Sleep a flat interval before every outbound request.

    This bounds throughput only; there is no token bucket and no adaptive
    backoff.
    """

    interval_seconds: float = POLITE_DELAY_SECONDS
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    calls: int = 0

    def wait(self) -> None:
        self.calls += 1
        LOGGER.debug("Pausing %.2fs before request #%s", self.interval_seconds, self.calls)
        self.sleep(self.interval_seconds)
