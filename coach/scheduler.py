from __future__ import annotations

import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple


@dataclass(order=True)
class _Pending:
    due: float
    seq: int
    callback: Callable[..., Any] = field(compare=False)
    args: Tuple[Any, ...] = field(compare=False, default=())


class Scheduler:
    """Cooperative, single-threaded timer queue.

    Nothing runs on its own: the owner calls :meth:`run_due` (the web app does
    so on every request) or :meth:`run_all`. Callbacks scheduled from inside a
    callback are picked up in the same pass once they are due.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self.clock = clock or time.monotonic
        self._queue: List[_Pending] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        heapq.heappush(
            self._queue, _Pending(self.clock() + max(0.0, delay), next(self._seq), callback, args)
        )

    def pending(self) -> int:
        return len(self._queue)

    def run_due(self) -> int:
        ran = 0
        while self._queue and self._queue[0].due <= self.clock():
            item = heapq.heappop(self._queue)
            item.callback(*item.args)
            ran += 1
        return ran

    def run_all(self) -> int:
        ran = 0
        while self._queue:
            item = heapq.heappop(self._queue)
            item.callback(*item.args)
            ran += 1
        return ran
