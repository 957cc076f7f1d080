from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from cabs_tracker.domain.algorithms.interpolation import (
    ease_out_cubic,
    interpolate_vehicles,
)
from cabs_tracker.domain.models import VehicleSnapshot

logger = logging.getLogger(__name__)

Vehicles = tuple[VehicleSnapshot, ...]


@dataclass(slots=True)
class AnimationLoop:
    """Animates the displayed vehicle set toward a target set.

    Only one transition runs at a time: `begin()` supersedes whatever is in
    flight. Each transition task carries the generation it was started with
    and stops writing as soon as that generation is no longer current.

    The loop never owns the displayed set. It reads it through `current` and
    writes whole frames through `on_frame`.
    """

    current: Callable[[], Vehicles]
    on_frame: Callable[[Vehicles], None]
    on_complete: Callable[[Vehicles], None]
    duration_s: float = 0.8
    frame_interval_s: float = 1.0 / 60.0
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    _generation: int = field(default=0, init=False, repr=False)
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _tasks: set[asyncio.Task[None]] = field(
        default_factory=set, init=False, repr=False
    )
    _target: Vehicles = field(default=(), init=False, repr=False)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def target(self) -> Vehicles:
        return self._target

    def begin(self, target: Vehicles) -> None:
        """Start a transition from the current display to `target`.

        Must be called from inside a running event loop.
        """

        self.cancel()

        target = tuple(target)
        displayed = tuple(self.current())
        start = displayed if displayed else target

        self._target = target
        generation = self._generation
        started_at = self.clock()

        task = asyncio.get_running_loop().create_task(
            self._run(generation, start, target, started_at)
        )
        self._task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def cancel(self) -> None:
        """Stop emitting frames; the display keeps the last frame written."""

        self._generation += 1
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def wait(self) -> None:
        """Wait until the current transition completes or is cancelled."""

        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def aclose(self) -> None:
        self.cancel()
        tasks = set(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _run(
        self,
        generation: int,
        start: Vehicles,
        target: Vehicles,
        started_at: float,
    ) -> None:
        duration = max(self.duration_s, 1e-9)

        while self._is_current(generation):
            elapsed = self.clock() - started_at
            progress = min(elapsed / duration, 1.0)

            if progress >= 1.0:
                if self._task is asyncio.current_task():
                    self._task = None
                self.on_frame(target)
                self.on_complete(target)
                return

            self.on_frame(
                interpolate_vehicles(start, target, ease_out_cubic(progress))
            )

            await self.sleep(self.frame_interval_s)

        logger.debug("Transition %d superseded", generation)
