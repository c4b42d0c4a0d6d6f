"""
Deadline-driven maintenance loop.

A single asyncio task owns a min-heap of expiry deadlines and fires the
registered callback of each entry exactly once when its deadline passes.
Workspace expiry and command garbage collection both go through here, so
there is one timer for the whole runtime and shutdown cancels every pending
expiration in one place.
"""
import asyncio
import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(order=True)
class _Entry:
    deadline: float
    seq: int
    key: str = field(compare=False)
    callback: Callable[[], None] = field(compare=False)


class ExpiryReaper:
    """Fires keyed callbacks at their deadlines from one maintenance loop.

    Keys are unique: scheduling a key that is already pending replaces the
    earlier entry. Cancelled and replaced entries stay in the heap until they
    surface and are then skipped.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._heap: List[_Entry] = []
        self._live: Dict[str, _Entry] = {}
        self._counter = itertools.count()
        self._wakeup: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def pending(self) -> int:
        """Number of expirations still waiting to fire."""
        return len(self._live)

    def is_scheduled(self, key: str) -> bool:
        return key in self._live

    def schedule(self, key: str, delay_s: float, callback: Callable[[], None]) -> float:
        """Arm ``callback`` to fire ``delay_s`` seconds from now.

        Returns:
            The absolute deadline on the reaper's clock.
        """
        deadline = self._clock() + max(0.0, delay_s)
        entry = _Entry(deadline=deadline, seq=next(self._counter), key=key, callback=callback)
        self._live[key] = entry
        heapq.heappush(self._heap, entry)
        if self._wakeup is not None:
            self._wakeup.set()
        return deadline

    def cancel(self, key: str) -> bool:
        """Drop a pending expiration. Returns False if nothing was pending."""
        return self._live.pop(key, None) is not None

    def next_deadline(self) -> Optional[float]:
        self._discard_stale()
        if not self._heap:
            return None
        return self._heap[0].deadline

    def run_due(self, now: Optional[float] = None) -> List[str]:
        """Fire every entry whose deadline is at or before ``now``.

        Returns:
            Keys of the entries that fired, in deadline order.
        """
        if now is None:
            now = self._clock()
        fired = []
        while self._heap and self._heap[0].deadline <= now:
            entry = heapq.heappop(self._heap)
            if self._live.get(entry.key) is not entry:
                continue
            del self._live[entry.key]
            fired.append(entry.key)
            try:
                entry.callback()
            except Exception:
                logger.exception(f"Expiry callback failed for {entry.key}")
        return fired

    async def start(self) -> None:
        """Start the maintenance loop on the running event loop."""
        if self.running:
            return
        self._wakeup = asyncio.Event()
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> int:
        """Stop the loop and cancel every pending expiration.

        Returns:
            Number of expirations that were cancelled.
        """
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._wakeup = None
        cancelled = len(self._live)
        self._live.clear()
        self._heap.clear()
        if cancelled:
            logger.info(f"Cancelled {cancelled} pending expiration(s)")
        return cancelled

    async def _loop(self) -> None:
        while True:
            self.run_due()
            deadline = self.next_deadline()
            timeout = None if deadline is None else max(0.0, deadline - self._clock())
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                pass
            self._wakeup.clear()

    def _discard_stale(self) -> None:
        while self._heap and self._live.get(self._heap[0].key) is not self._heap[0]:
            heapq.heappop(self._heap)
