from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Mapping, Optional


@dataclass
class FanoutResult:
    results: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, BaseException] = field(default_factory=dict)
    pending: list[str] = field(default_factory=list)

    @property
    def timed_out(self) -> bool:
        return bool(self.pending)

    def first_error(self) -> Optional[BaseException]:
        return next(iter(self.errors.values()), None)


async def gather_within(coros: Mapping[str, Awaitable[Any]], timeout: Optional[float]) -> FanoutResult:
    """Run every awaitable concurrently and collect them under one deadline.

    Results and errors are keyed by name, in the order the awaitables were
    given rather than the order they finished. When the deadline passes the
    stragglers are cancelled and listed in ``pending``; whatever already
    finished is kept. Cancelling the caller cancels every child.
    """
    names = list(coros)
    tasks = {name: asyncio.ensure_future(coros[name]) for name in names}
    try:
        await asyncio.wait(tasks.values(), timeout=timeout)
    except asyncio.CancelledError:
        for task in tasks.values():
            task.cancel()
        raise

    outcome = FanoutResult()
    for name in names:
        task = tasks[name]
        if not task.done():
            task.cancel()
            outcome.pending.append(name)
        elif task.cancelled():
            outcome.errors[name] = asyncio.CancelledError(f"{name} was cancelled")
        elif task.exception() is not None:
            outcome.errors[name] = task.exception()
        else:
            outcome.results[name] = task.result()
    return outcome
