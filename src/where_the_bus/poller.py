import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 30  # seconds

OnCycle = Callable[[int], Awaitable[object]]


class Poller:
    """Fixed-period scheduler for refresh cycles.

    Every cycle, timer-driven or manual, gets the next id from a monotonic
    counter so the receiver can discard results from superseded cycles.
    Cycles run as their own tasks: stopping the poller cancels the timer
    but leaves in-flight cycles to finish.
    """

    def __init__(self):
        self._cycle = 0
        self._on_cycle: OnCycle | None = None
        self._timer: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()
        self.interval: float | None = None

    @property
    def cycle(self) -> int:
        """Id of the most recently started cycle (0 before the first)."""
        return self._cycle

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def start(
        self,
        interval: float = DEFAULT_INTERVAL,
        on_cycle: OnCycle | None = None,
        run_immediately: bool = True,
    ) -> None:
        if self.running:
            raise RuntimeError("Poller already started")
        if on_cycle is not None:
            self._on_cycle = on_cycle
        if self._on_cycle is None:
            raise ValueError("on_cycle callback is required")
        self.interval = interval
        self._timer = asyncio.create_task(self._run(interval, run_immediately))

    async def _run(self, interval: float, run_immediately: bool):
        logger.info("Poller starting, refreshing every %gs", interval)
        try:
            if not run_immediately:
                await asyncio.sleep(interval)
            while True:
                self.trigger()
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.info("Poller shutting down")
            raise

    def trigger(self) -> int:
        """Start a cycle now and return its id."""
        if self._on_cycle is None:
            raise RuntimeError("Poller has no on_cycle callback; call start() first")
        self._cycle += 1
        cycle_id = self._cycle
        task = asyncio.create_task(self._run_cycle(cycle_id))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return cycle_id

    async def _run_cycle(self, cycle_id: int):
        try:
            await self._on_cycle(cycle_id)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Refresh cycle %d failed", cycle_id)

    async def stop(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        try:
            await self._timer
        except asyncio.CancelledError:
            pass
        self._timer = None

    async def wait_idle(self) -> None:
        """Wait for every in-flight cycle to finish."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
