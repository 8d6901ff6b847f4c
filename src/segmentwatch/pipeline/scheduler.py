from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Protocol

from segmentwatch.schemas.core import PollResult


logger = logging.getLogger(__name__)


class Poller(Protocol):
    name: str

    def setup(self) -> None: ...

    def tick(self, iteration: int) -> PollResult: ...

    def finish(self, completed: int) -> None: ...


class PollScheduler:
    """
    Fixed-count, fixed-cadence tick loop for one feed: INIT -> RUNNING (1..K) -> DONE.

    - The delay between ticks is measured from tick start and never goes negative, so a slow
      tick shortens the following wait instead of stretching the cadence.
    - `stop_event` is checked before every tick and doubles as the inter-tick wait, so a stop
      request interrupts the wait immediately; the in-flight tick always completes.
    - `clock` and `wait` are injectable so tests can run many ticks without real delay.
    """

    def __init__(
        self,
        poller: Poller,
        *,
        iterations: int,
        interval_s: float,
        stop_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
        wait: Optional[Callable[[float], object]] = None,
    ) -> None:
        if iterations < 1:
            raise ValueError("iterations must be >= 1")
        self._poller = poller
        self._iterations = int(iterations)
        self._interval_s = max(float(interval_s), 0.0)
        self._stop = stop_event or threading.Event()
        self._clock = clock
        self._wait = wait or self._stop.wait
        self.state = "INIT"
        self.completed = 0
        self._initialized = False

    @property
    def name(self) -> str:
        return self._poller.name

    def stop(self) -> None:
        self._stop.set()

    def initialize(self) -> None:
        # SetupFailure propagates: nothing has been written and no tick may start.
        if self._initialized:
            return
        self._poller.setup()
        self._initialized = True

    def run(self) -> int:
        self.initialize()
        self.state = "RUNNING"
        logger.info("%s: starting %s ticks every %.1fs", self.name, self._iterations, self._interval_s)

        for iteration in range(1, self._iterations + 1):
            if self._stop.is_set():
                logger.info("%s: stop requested before tick %s", self.name, iteration)
                break

            started = self._clock()
            self._poller.tick(iteration)
            self.completed = iteration

            if iteration == self._iterations:
                break
            elapsed = self._clock() - started
            remaining = max(self._interval_s - elapsed, 0.0)
            if remaining > 0:
                logger.debug("%s: sleeping %.1fs", self.name, remaining)
                self._wait(remaining)

        self.state = "DONE"
        logger.info("%s: finished after %s of %s ticks", self.name, self.completed, self._iterations)
        self._poller.finish(self.completed)
        return self.completed
