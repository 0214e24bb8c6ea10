# seed_scheduler/leader.py
import logging
import time
from typing import Optional

import redis

logger = logging.getLogger(__name__)

# extend the lease only if we still hold it
_RENEW_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('pexpire', KEYS[1], ARGV[2])
end
return 0
"""

# delete the lease only if we still hold it
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


class LeaderToken:
    """
    Capability handed to the holder of the scheduling lease. The committer
    refuses to write without a token that is still valid.
    """

    def __init__(self, identity: str, renew_deadline: Optional[float]):
        self.identity = identity
        self.renew_deadline = renew_deadline
        self._valid_until = None
        self._revoked = False
        self.touch()

    def touch(self):
        if self.renew_deadline is not None:
            self._valid_until = time.monotonic() + self.renew_deadline

    def revoke(self):
        self._revoked = True

    def valid(self) -> bool:
        if self._revoked:
            return False
        return self._valid_until is None or time.monotonic() < self._valid_until

    def __repr__(self):
        return f"LeaderToken(identity={self.identity!r}, valid={self.valid()})"


class RedisLeaderElector:
    """
    Redis lease for single-writer scheduling.
    Usage:
        token = elector.try_acquire()      # None if someone else leads
        elector.renew(token)               # call every retry_period
        elector.release(token)
    """

    def __init__(self, lock_name: str, identity: str, lease_duration: float = 15.0,
                 renew_deadline: float = 10.0, retry_period: float = 2.0,
                 redis_url: str = None, client=None):
        self.key = f"lock:{lock_name}"
        self.identity = identity
        self.lease_duration = lease_duration
        self.renew_deadline = renew_deadline
        self.retry_period = retry_period
        self.redis_url = redis_url
        self._redis = client
        self._renew = None
        self._release = None

    @classmethod
    def from_settings(cls, settings) -> "RedisLeaderElector":
        le = settings.leader_election
        return cls(le.lock_name, le.identity, le.lease_duration, le.renew_deadline, le.retry_period,
                   redis_url=settings.redis_url)

    def _get_redis(self):
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url or "redis://127.0.0.1:6379/0")
        if self._renew is None:
            self._renew = self._redis.register_script(_RENEW_SCRIPT)
            self._release = self._redis.register_script(_RELEASE_SCRIPT)
        return self._redis

    def _lease_ms(self) -> int:
        return int(self.lease_duration * 1000)

    def try_acquire(self) -> Optional[LeaderToken]:
        r = self._get_redis()
        if r.set(self.key, self.identity, nx=True, px=self._lease_ms()):
            logger.info("Acquired scheduling lease %s as %s", self.key, self.identity)
            return LeaderToken(self.identity, self.renew_deadline)
        return None

    def renew(self, token: LeaderToken) -> bool:
        if not token.valid():
            return False
        self._get_redis()
        try:
            ok = self._renew(keys=[self.key], args=[self.identity, self._lease_ms()])
        except redis.RedisError as e:
            # keep leading until the renew deadline runs out
            logger.warning("Renewing lease %s failed: %s", self.key, e)
            return token.valid()
        if not ok:
            logger.warning("Lost scheduling lease %s", self.key)
            token.revoke()
            return False
        token.touch()
        return True

    def release(self, token: LeaderToken):
        token.revoke()
        try:
            self._get_redis()
            self._release(keys=[self.key], args=[self.identity])
        except redis.RedisError as e:
            logger.warning("Releasing lease %s failed: %s", self.key, e)


class LocalLeaderElector:
    """Always-leader elector for single-instance setups without Redis."""

    retry_period = 2.0

    def __init__(self, identity: str = "local"):
        self.identity = identity

    def try_acquire(self) -> Optional[LeaderToken]:
        return LeaderToken(self.identity, None)

    def renew(self, token: LeaderToken) -> bool:
        return token.valid()

    def release(self, token: LeaderToken):
        token.revoke()


def make_elector(settings):
    if settings.leader_election.enabled:
        return RedisLeaderElector.from_settings(settings)
    return LocalLeaderElector(settings.leader_election.identity)
