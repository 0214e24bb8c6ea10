import time

import pytest
import redis

from seed_scheduler.config import load_settings
from seed_scheduler.leader import LeaderToken, LocalLeaderElector, RedisLeaderElector, make_elector


def elector(client, identity, **kw):
    return RedisLeaderElector("seed-scheduler", identity, client=client, **kw)


class TestRedisLeaderElector:
    def test_single_leader(self, fake_redis):
        a, b = elector(fake_redis, "a"), elector(fake_redis, "b")
        token = a.try_acquire()
        assert token is not None and token.valid()
        assert b.try_acquire() is None
        assert fake_redis.get("lock:seed-scheduler") == b"a"
        assert fake_redis.ttl_ms["lock:seed-scheduler"] == 15000

    def test_renew_extends_lease(self, fake_redis):
        a = elector(fake_redis, "a", lease_duration=30)
        token = a.try_acquire()
        fake_redis.ttl_ms["lock:seed-scheduler"] = 5
        assert a.renew(token)
        assert fake_redis.ttl_ms["lock:seed-scheduler"] == 30000

    def test_lost_lease_revokes_token(self, fake_redis):
        a, b = elector(fake_redis, "a"), elector(fake_redis, "b")
        token = a.try_acquire()
        fake_redis.expire_now("lock:seed-scheduler")
        assert b.try_acquire() is not None

        assert not a.renew(token)
        assert not token.valid()
        assert fake_redis.get("lock:seed-scheduler") == b"b"

    def test_release_hands_over(self, fake_redis):
        a, b = elector(fake_redis, "a"), elector(fake_redis, "b")
        token = a.try_acquire()
        a.release(token)
        assert not token.valid()
        assert b.try_acquire() is not None

    def test_release_never_deletes_foreign_lease(self, fake_redis):
        a, b = elector(fake_redis, "a"), elector(fake_redis, "b")
        stale = a.try_acquire()
        fake_redis.expire_now("lock:seed-scheduler")
        b.try_acquire()
        a.release(stale)
        assert fake_redis.get("lock:seed-scheduler") == b"b"

    def test_redis_error_keeps_token_until_deadline(self, fake_redis):
        a = elector(fake_redis, "a", renew_deadline=60)
        token = a.try_acquire()

        def broken(keys, args):
            raise redis.ConnectionError("down")

        a._renew = broken
        assert a.renew(token)
        token._valid_until = time.monotonic() - 1
        assert not a.renew(token)


class TestLeaderToken:
    def test_expires_after_renew_deadline(self):
        token = LeaderToken("a", 0.05)
        assert token.valid()
        time.sleep(0.1)
        assert not token.valid()
        token.touch()
        assert token.valid()

    def test_revoked_stays_invalid(self):
        token = LeaderToken("a", None)
        token.revoke()
        token.touch()
        assert not token.valid()


class TestLocalElector:
    def test_always_leads(self):
        e = LocalLeaderElector("me")
        token = e.try_acquire()
        assert token.identity == "me"
        assert e.renew(token)
        e.release(token)
        assert not e.renew(token)


@pytest.mark.parametrize("enabled,cls", [(True, RedisLeaderElector), (False, LocalLeaderElector)])
def test_make_elector(enabled, cls):
    settings = load_settings(leader_election={"enabled": enabled, "identity": "me"})
    assert isinstance(make_elector(settings), cls)
