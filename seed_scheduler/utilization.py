# seed_scheduler/utilization.py
import threading
from collections import Counter
from typing import Dict, Iterable, Optional, Set

from .models import Shoot


class SeedUtilization:
    """
    seed name -> number of shoots assigned to it, kept current from observed
    shoots instead of scanning every shoot per decision.

    observe() is fed by the resync loop and by successful commits; it only
    moves a count when a shoot's seed actually changed since it was last seen.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._seed_of: Dict[str, str] = {}  # shoot key -> seed name
        self._counts: Counter = Counter()

    @classmethod
    def from_shoots(cls, shoots: Iterable[Shoot]) -> "SeedUtilization":
        index = cls()
        for shoot in shoots:
            index.observe(shoot)
        return index

    def observe(self, shoot: Shoot):
        with self._lock:
            previous = self._seed_of.get(shoot.key)
            if previous == shoot.seed_name:
                return
            if previous is not None:
                self._decrement(previous)
            if shoot.seed_name:
                self._seed_of[shoot.key] = shoot.seed_name
                self._counts[shoot.seed_name] += 1
            else:
                self._seed_of.pop(shoot.key, None)

    def forget(self, key: str):
        with self._lock:
            previous = self._seed_of.pop(key, None)
            if previous is not None:
                self._decrement(previous)

    def _decrement(self, seed_name: str):
        self._counts[seed_name] -= 1
        if self._counts[seed_name] <= 0:
            del self._counts[seed_name]

    def count(self, seed_name: str) -> int:
        with self._lock:
            return self._counts.get(seed_name, 0)

    def seed_of(self, key: str) -> Optional[str]:
        with self._lock:
            return self._seed_of.get(key)

    def keys(self) -> Set[str]:
        with self._lock:
            return set(self._seed_of)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def __len__(self):
        with self._lock:
            return len(self._seed_of)
