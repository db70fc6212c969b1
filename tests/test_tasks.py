from __future__ import annotations

import asyncio
from collections.abc import Generator

from receipt_timeline.tasks import (
    AsyncioScheduler,
    CancellationToken,
    GenerationCounter,
    ImmediateScheduler,
    StepScheduler,
    drive,
    run_until_complete,
)


def _counting_task(
    n_chunks: int, token: CancellationToken, log: list[int]
) -> Generator[None, None, int | None]:
    for chunk in range(n_chunks):
        if chunk:
            yield
            if token.cancelled:
                return None
        log.append(chunk)
    return n_chunks


def test_generation_counter_supersedes_older_tokens() -> None:
    counter = GenerationCounter()
    first = counter.advance()
    assert not first.cancelled
    second = counter.advance()
    assert first.cancelled
    assert not second.cancelled
    assert counter.current() == second


def test_run_until_complete_returns_task_result() -> None:
    log: list[int] = []
    assert run_until_complete(_counting_task(3, GenerationCounter().advance(), log)) == 3
    assert log == [0, 1, 2]


def test_immediate_scheduler_skips_callback_for_abandoned_tasks() -> None:
    counter = GenerationCounter()
    token = counter.advance()
    counter.advance()
    results: list[int] = []

    ImmediateScheduler().submit(_counting_task(3, token, []), results.append)

    assert results == []


def test_step_scheduler_interleaves_and_abandons_superseded_work() -> None:
    counter = GenerationCounter()
    scheduler = StepScheduler()
    first_log: list[int] = []
    second_log: list[int] = []
    results: list[int] = []

    scheduler.submit(_counting_task(5, counter.advance(), first_log), results.append)
    assert scheduler.step()
    scheduler.submit(_counting_task(2, counter.advance(), second_log), results.append)
    scheduler.run()

    assert first_log == [0]
    assert second_log == [0, 1]
    assert results == [2]
    assert scheduler.pending == 0
    assert not scheduler.step()


def test_asyncio_scheduler_drives_tasks_on_event_loop() -> None:
    results: list[int] = []

    async def _main() -> int | None:
        scheduler = AsyncioScheduler()
        scheduler.submit(_counting_task(4, GenerationCounter().advance(), []), results.append)
        await scheduler.join()
        return await drive(_counting_task(2, GenerationCounter().advance(), []))

    assert asyncio.run(_main()) == 2
    assert results == [4]
