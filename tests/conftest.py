"""
Shared fixtures: an in-memory store standing in for the garden controller
and a fake Redis for the leader lease.
"""
import os

# the controller builds its engine at import time; keep tests off Postgres
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("CONTROLLER_TOKEN", "")

import pytest

from helpers import FakeRedis, InMemoryStore


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def fake_redis():
    return FakeRedis()
