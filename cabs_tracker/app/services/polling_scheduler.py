from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence

from cabs_tracker.domain.models import VehicleSnapshot

logger = logging.getLogger(__name__)

Vehicles = tuple[VehicleSnapshot, ...]

# Returning None means there is nothing to poll this cycle (e.g. no route).
FetchFn = Callable[[], Awaitable[Sequence[VehicleSnapshot] | None]]


@dataclass(slots=True)
class PollingScheduler:
    """Fetches the latest vehicle set on a fixed interval.

    Each cycle is: fetch, deliver, sleep. A failed fetch is handed to
    `on_error` and retried on the next cycle. Results are delivered only while
    the cycle that requested them is still current.
    """

    on_result: Callable[[Vehicles], None]
    on_error: Callable[[Exception], None]
    confirmed: Callable[[], Sequence[VehicleSnapshot]]
    interval_s: float = 3.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    _generation: int = field(default=0, init=False, repr=False)
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _tasks: set[asyncio.Task[None]] = field(
        default_factory=set, init=False, repr=False
    )
    _fetching: bool = field(default=False, init=False, repr=False)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, fetch: FetchFn, interval_s: float | None = None) -> None:
        """Begin polling immediately, replacing any running cycle."""

        self.stop()
        if interval_s is not None:
            self.interval_s = float(interval_s)

        generation = self._generation
        self._fetching = False
        task = asyncio.get_running_loop().create_task(self._run(generation, fetch))
        self._task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def stop(self) -> None:
        """Halt polling.

        A fetch already in flight runs to completion but its outcome is
        discarded.
        """

        self._generation += 1
        task = self._task
        self._task = None
        if task is not None and not self._fetching:
            task.cancel()

    async def aclose(self) -> None:
        self.stop()
        tasks = set(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)

    def deliver(self, vehicles: Sequence[VehicleSnapshot]) -> bool:
        """Apply one fetch result; returns False when it was suppressed.

        An empty result is ignored while the confirmed set is empty too, so
        injected data survives an upstream that legitimately reports nothing.
        """

        result = tuple(vehicles)
        if not result and not self.confirmed():
            logger.debug("Empty vehicle fetch with nothing confirmed; skipping")
            return False
        self.on_result(result)
        return True

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _run(self, generation: int, fetch: FetchFn) -> None:
        while self._is_current(generation):
            self._fetching = True
            try:
                vehicles = await fetch()
            except Exception as exc:
                if self._is_current(generation):
                    logger.warning("Vehicle fetch failed: %s", exc)
                    self.on_error(exc)
            else:
                if vehicles is not None and self._is_current(generation):
                    self.deliver(vehicles)
            finally:
                if self._is_current(generation):
                    self._fetching = False

            if not self._is_current(generation):
                logger.debug("Polling cycle %d stopped", generation)
                return

            await self.sleep(self.interval_s)
