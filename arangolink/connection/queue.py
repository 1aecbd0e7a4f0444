"""Pending requests and the in-flight bound that gates their dispatch."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .transport import RawResponse, RequestSpec


@dataclass(slots=True, eq=False)
class Task:
    """One logical request, queued or in flight.

    ``host`` pins the task to a host index. Unpinned tasks are routed by
    the scheduler's cursors.
    """

    spec: RequestSpec
    future: asyncio.Future
    host: int | None = None
    allow_dirty_read: bool = False
    retries: int = 0
    transform: Callable[[RawResponse], Any] | None = None
    stack: str | None = None

    def resolve(self, value: Any) -> None:
        if not self.future.done():
            self.future.set_result(value)

    def reject(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)


@dataclass(slots=True)
class TaskQueue:
    """FIFO of pending tasks paired with a counter of in-flight tasks."""

    max_active: int
    active: int = 0
    _pending: deque[Task] = field(default_factory=deque)

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def can_dispatch(self) -> bool:
        return bool(self._pending) and self.active < self.max_active

    def push(self, task: Task) -> None:
        self._pending.append(task)

    def pop(self) -> Task:
        return self._pending.popleft()

    def started(self) -> None:
        self.active += 1

    def finished(self) -> None:
        self.active -= 1
