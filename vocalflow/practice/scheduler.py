"""Tick scheduling - drives an engine one frame at a time."""

import logging
import time
from typing import Callable, Optional

from .engine import Engine, TickResult
from ..core.constants import DEFAULT_TICK_MS

logger = logging.getLogger(__name__)


class TickSource:
    """Cooperative frame driver.

    Calls ``engine.tick()`` in order, never overlapping ticks. ``stop()`` is
    honoured before the next tick starts, so a tick is never cut short.
    """

    def __init__(
        self,
        interval_s: float = DEFAULT_TICK_MS / 1000.0,
        on_tick: Optional[Callable[[TickResult], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize TickSource.

        Args:
            interval_s: Target time between ticks; 0 runs as fast as possible
            on_tick: Called with each tick result after the tick completes
            clock: Monotonic time function
            sleep: Sleep function
        """
        self.interval_s = interval_s
        self.on_tick = on_tick
        self._clock = clock
        self._sleep = sleep
        self._stop_requested = False
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Request that no further ticks run."""
        self._stop_requested = True

    def run(self, engine: Engine, max_ticks: Optional[int] = None) -> int:
        """
        Drive the engine until stopped, completed, exhausted or max_ticks.

        Starts the engine if it is not running yet. A stop requested before
        the call runs no ticks; the request is cleared once the loop exits.

        Returns:
            Number of ticks executed
        """
        count = 0
        try:
            if self._stop_requested:
                return count
            if not engine.running:
                engine.start()

            self._running = True
            next_time = self._clock()
            while not self._stop_requested and engine.running:
                if max_ticks is not None and count >= max_ticks:
                    break

                result = engine.tick()
                if result is None:
                    break
                count += 1

                if self.on_tick is not None:
                    self.on_tick(result)
                if result.completed:
                    break

                if self.interval_s > 0:
                    next_time += self.interval_s
                    delay = next_time - self._clock()
                    if delay > 0:
                        self._sleep(delay)
                    else:
                        # Running behind; don't try to catch up with a burst
                        next_time = self._clock()
        finally:
            self._running = False
            self._stop_requested = False
            logger.debug(f"Tick loop finished after {count} ticks")

        return count
