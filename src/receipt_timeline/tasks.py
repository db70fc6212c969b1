"""Cooperative tasks, schedulers and generation-based cancellation.

Long-running work (index builds, aggregation scans, bucket walks) is written
as a generator that ``yield``s at suspension points and ``return``s its
result. A task that finds its :class:`CancellationToken` superseded when it
resumes returns ``None`` without touching shared state; schedulers never
deliver ``None`` to a completion callback.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Generator
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

CooperativeTask = Generator[None, None, Any]
CompletionCallback = Callable[[Any], None]


class GenerationCounter:
    """Monotonically increasing counter; each ``advance`` supersedes older tokens."""

    def __init__(self) -> None:
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def advance(self) -> CancellationToken:
        self._value += 1
        return CancellationToken(counter=self, generation=self._value)

    def current(self) -> CancellationToken:
        return CancellationToken(counter=self, generation=self._value)


@dataclass(frozen=True)
class CancellationToken:
    counter: GenerationCounter
    generation: int

    @property
    def cancelled(self) -> bool:
        return self.counter.value != self.generation


def run_until_complete(task: Generator[None, None, T]) -> T:
    while True:
        try:
            next(task)
        except StopIteration as stop:
            return stop.value


class Scheduler(Protocol):
    def submit(self, task: CooperativeTask, on_done: CompletionCallback | None = None) -> None:
        ...


class ImmediateScheduler:
    """Runs each task to completion inside ``submit``."""

    def submit(self, task: CooperativeTask, on_done: CompletionCallback | None = None) -> None:
        result = run_until_complete(task)
        if result is not None and on_done is not None:
            on_done(result)


class StepScheduler:
    """Round-robin scheduler advanced one chunk at a time by the caller.

    Only one chunk of one task runs per :meth:`step`, which makes
    interleavings (a request superseded mid-scan) reproducible without timers.
    """

    def __init__(self) -> None:
        self._jobs: deque[tuple[CooperativeTask, CompletionCallback | None]] = deque()
        self.steps_run = 0

    @property
    def pending(self) -> int:
        return len(self._jobs)

    def submit(self, task: CooperativeTask, on_done: CompletionCallback | None = None) -> None:
        self._jobs.append((task, on_done))

    def step(self) -> bool:
        if not self._jobs:
            return False
        task, on_done = self._jobs.popleft()
        self.steps_run += 1
        try:
            next(task)
        except StopIteration as stop:
            if stop.value is not None and on_done is not None:
                on_done(stop.value)
        else:
            self._jobs.append((task, on_done))
        return True

    def run(self, max_steps: int | None = None) -> int:
        executed = 0
        while max_steps is None or executed < max_steps:
            if not self.step():
                break
            executed += 1
        return executed


async def drive(task: Generator[None, None, T], *, pause: float = 0.0) -> T:
    """Advance ``task`` on the running event loop, sleeping between chunks."""
    while True:
        try:
            next(task)
        except StopIteration as stop:
            return stop.value
        await asyncio.sleep(pause)


class AsyncioScheduler:
    """Schedules tasks on the running asyncio loop; must be used from a coroutine."""

    def __init__(self, *, pause: float = 0.0) -> None:
        self.pause = pause
        self._running: set[asyncio.Task[Any]] = set()

    def submit(self, task: CooperativeTask, on_done: CompletionCallback | None = None) -> None:
        loop = asyncio.get_running_loop()
        handle = loop.create_task(self._run(task, on_done))
        self._running.add(handle)
        handle.add_done_callback(self._running.discard)

    async def _run(self, task: CooperativeTask, on_done: CompletionCallback | None) -> None:
        result = await drive(task, pause=self.pause)
        if result is not None and on_done is not None:
            on_done(result)

    async def join(self) -> None:
        # Completion callbacks may submit follow-up tasks; wait for those too.
        while True:
            pending = [handle for handle in self._running if not handle.done()]
            if not pending:
                return
            await asyncio.gather(*pending)
