"""Entity factories and test doubles shared by the scheduler tests."""
import threading
from typing import Dict, List, Optional

from seed_scheduler.errors import ConcurrentModification, NotFound, StoreUnavailable
from seed_scheduler.models import CloudProfile, Event, Networks, Seed, Shoot


def make_shoot(name="s1", namespace="garden-dev", provider_type="aws", region="eu-west-1", **kw) -> Shoot:
    kw.setdefault("networks", Networks(pods="100.96.0.0/11", services="100.64.0.0/13", nodes="10.250.0.0/16"))
    return Shoot(namespace=namespace, name=name, provider_type=provider_type, region=region, **kw)


def make_seed(name="seed-1", provider_type="aws", region="eu-west-1", **kw) -> Seed:
    kw.setdefault("networks", Networks(pods="10.0.0.0/16", services="10.1.0.0/16", nodes="10.2.0.0/16"))
    return Seed(name=name, provider_type=provider_type, region=region, **kw)


class InMemoryStore:
    """Store double with the same conditional-update semantics as the controller."""

    def __init__(self, shoots=(), seeds=(), profiles=()):
        self._lock = threading.Lock()
        self.shoots: Dict[str, Shoot] = {s.key: s for s in shoots}
        self.seeds: List[Seed] = list(seeds)
        self.profiles: List[CloudProfile] = list(profiles)
        self.events: Dict[str, List[Event]] = {}
        self.bind_calls = 0
        self.unavailable = False
        # number of bind_seed calls that should fail with a version conflict
        self.conflicts = 0

    def _check(self):
        if self.unavailable:
            raise StoreUnavailable("store is down")

    def list_shoots(self) -> List[Shoot]:
        self._check()
        return list(self.shoots.values())

    def get_shoot(self, namespace: str, name: str) -> Shoot:
        self._check()
        key = f"{namespace}/{name}"
        if key not in self.shoots:
            raise NotFound(key)
        return self.shoots[key]

    def list_seeds(self) -> List[Seed]:
        self._check()
        return list(self.seeds)

    def list_cloud_profiles(self) -> List[CloudProfile]:
        self._check()
        return list(self.profiles)

    def update_spec(self, key: str, **changes):
        with self._lock:
            current = self.shoots[key]
            self.shoots[key] = current.model_copy(
                update=dict(changes, resource_version=current.resource_version + 1))

    def bind_seed(self, shoot: Shoot, seed_name: str) -> Shoot:
        self._check()
        with self._lock:
            self.bind_calls += 1
            if self.conflicts > 0:
                self.conflicts -= 1
                # someone else touched the shoot meanwhile
                current = self.shoots[shoot.key]
                self.shoots[shoot.key] = current.model_copy(
                    update={"resource_version": current.resource_version + 1})
                raise ConcurrentModification(shoot.key)
            current = self.shoots[shoot.key]
            if current.resource_version != shoot.resource_version or current.seed_name:
                raise ConcurrentModification(shoot.key)
            updated = current.model_copy(
                update={"seed_name": seed_name, "resource_version": current.resource_version + 1})
            self.shoots[shoot.key] = updated
            return updated

    def record_event(self, shoot: Shoot, type: str, reason: str, message: str):
        self._check()
        with self._lock:
            self.events.setdefault(shoot.key, []).append(Event(type=type, reason=reason, message=message))

    def event_count(self, key: Optional[str] = None) -> int:
        if key is not None:
            return len(self.events.get(key, []))
        return sum(len(v) for v in self.events.values())


class FakeRedis:
    """
    Just enough of redis.Redis for the leader elector: SET NX PX, GET, and
    register_script for the two compare-and-act lease scripts.
    """

    def __init__(self):
        self.data: Dict[str, bytes] = {}
        self.ttl_ms: Dict[str, int] = {}

    def set(self, key, value, nx=False, xx=False, px=None, ex=None):
        if nx and key in self.data:
            return None
        if xx and key not in self.data:
            return None
        self.data[key] = value.encode() if isinstance(value, str) else value
        self.ttl_ms[key] = px if px is not None else (ex * 1000 if ex else None)
        return True

    def get(self, key):
        return self.data.get(key)

    def expire_now(self, key):
        self.data.pop(key, None)
        self.ttl_ms.pop(key, None)

    def register_script(self, script):
        def run(keys, args):
            key, owner = keys[0], args[0]
            if self.data.get(key) != owner.encode():
                return 0
            if "pexpire" in script:
                self.ttl_ms[key] = int(args[1])
                return 1
            self.expire_now(key)
            return 1
        return run


