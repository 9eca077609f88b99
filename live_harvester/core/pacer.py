"""
Paces consecutive cycles so that manifest refreshes track real playback time.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

log = logging.getLogger(__name__)


def compute_slack(
    elapsed: float, segment_duration: float, update_duration: float
) -> float:
    """
    Seconds left before the next cycle should start.

    The processing period is the elapsed time minus the nominal manifest
    update period; whatever remains of one segment duration is slack.
    """
    return segment_duration - (elapsed - update_duration)


class CyclePacer:
    """Measures a cycle and sleeps for the remainder of the segment interval."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._clock = clock
        self._sleep = sleep
        self._start: float | None = None

    def start(self) -> None:
        self._start = self._clock()

    def elapsed(self) -> float:
        if self._start is None:
            return 0.0
        return self._clock() - self._start

    async def pace(self, segment_duration: float, update_duration: float) -> float:
        """
        Sleeps for the positive slack of the cycle.

        Returns:
            The number of seconds slept (0 if the cycle ran long).
        """
        elapsed = self.elapsed()
        log.debug(f"{elapsed - update_duration:.3f} second(s) elapsed")
        slack = compute_slack(elapsed, segment_duration, update_duration)
        if slack <= 0:
            return 0.0
        log.debug(f"Sleeping for {slack:.3f}s...")
        await self._sleep(slack)
        return slack
