# seed_scheduler/workqueue.py
import asyncio
from collections import deque
from typing import Deque, Dict, Optional, Set


class ShutDown(Exception):
    pass


class RateLimitingQueue:
    """
    Work queue of shoot keys for the reconcile workers.

    - a key is queued at most once, however often it is added
    - a key being processed is never handed to a second worker; adding it
      meanwhile queues it again once done() is called
    - add_rate_limited() delays a key by base * 2**failures, capped at max_delay;
      forget() resets the failure count

    All methods must be called from the event loop that runs the workers.
    """

    def __init__(self, base_delay: float = 15.0, max_delay: float = 300.0):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._queue: Deque[str] = deque()
        self._dirty: Set[str] = set()
        self._processing: Set[str] = set()
        self._failures: Dict[str, int] = {}
        self._waiting: Dict[str, asyncio.TimerHandle] = {}
        self._cond: Optional[asyncio.Condition] = None
        self._shutting_down = False

    def _condition(self) -> asyncio.Condition:
        if self._cond is None:
            self._cond = asyncio.Condition()
        return self._cond

    def _wakeup(self):
        if self._cond is None:
            # nobody has called get() yet
            return

        async def notify():
            async with self._condition():
                self._condition().notify_all()
        asyncio.get_running_loop().create_task(notify())

    def add(self, key: str):
        if self._shutting_down:
            return
        timer = self._waiting.pop(key, None)
        if timer is not None:
            timer.cancel()
        if key in self._dirty:
            return
        self._dirty.add(key)
        if key not in self._processing:
            self._queue.append(key)
            self._wakeup()

    def add_after(self, key: str, delay: float):
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(key)
            return
        loop = asyncio.get_running_loop()
        when = loop.time() + delay
        existing = self._waiting.get(key)
        if existing is not None:
            if existing.when() <= when:
                return
            existing.cancel()
        self._waiting[key] = loop.call_at(when, self._fire, key)

    def _fire(self, key: str):
        self._waiting.pop(key, None)
        self.add(key)

    def when(self, key: str) -> float:
        failures = self._failures.get(key, 0)
        self._failures[key] = failures + 1
        # cap the exponent before it overflows the float
        return min(self.base_delay * (2 ** min(failures, 32)), self.max_delay)

    def add_rate_limited(self, key: str) -> float:
        delay = self.when(key)
        self.add_after(key, delay)
        return delay

    def forget(self, key: str):
        self._failures.pop(key, None)

    def num_requeues(self, key: str) -> int:
        return self._failures.get(key, 0)

    def is_waiting(self, key: str) -> bool:
        return key in self._waiting

    async def get(self) -> str:
        cond = self._condition()
        async with cond:
            while not self._queue and not self._shutting_down:
                await cond.wait()
            if self._shutting_down:
                raise ShutDown()
            key = self._queue.popleft()
            self._processing.add(key)
            self._dirty.discard(key)
            return key

    def done(self, key: str):
        self._processing.discard(key)
        if key in self._dirty:
            self._queue.append(key)
            self._wakeup()

    def shutdown(self):
        self._shutting_down = True
        for timer in self._waiting.values():
            timer.cancel()
        self._waiting.clear()
        self._wakeup()

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def __len__(self):
        return len(self._queue)
