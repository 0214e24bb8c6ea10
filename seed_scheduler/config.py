# seed_scheduler/config.py
import os
import socket
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import Strategy

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = PROJECT_ROOT / ".env"


def _default_identity() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


class LeaderElectionSettings(BaseModel):
    model_config = {"frozen": True}

    enabled: bool = True
    lock_name: str = "seed-scheduler-leader"
    identity: str = Field(default_factory=_default_identity)
    lease_duration: float = 15.0  # seconds the lease lives without renewal
    renew_deadline: float = 10.0  # holder steps down if it cannot renew within this
    retry_period: float = 2.0


class RegionSettings(BaseModel):
    model_config = {"frozen": True}

    orientations: List[str] = ["north", "south", "east", "west", "central"]
    separators: str = "-_"
    case_sensitive: bool = False


class SchedulerSettings(BaseSettings):
    """Scheduler configuration, read once at process start.

    Every field can be set from the environment with the ``SCHEDULER_`` prefix,
    nested groups with a double underscore, e.g.
    ``SCHEDULER_LEADER_ELECTION__LEASE_DURATION=30``.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULER_",
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    # store connection
    controller_base_url: str = "http://localhost:8001"
    controller_token: str = ""
    request_timeout: float = 5.0

    # scheduling behaviour
    strategy: Strategy = Strategy.same_region
    retry_base_interval: float = 15.0  # seconds
    retry_max_interval: float = 300.0  # seconds
    resync_interval: float = 30.0  # seconds
    workers: int = 4
    max_conflict_retries: int = 5

    # coordination
    redis_url: str = "redis://127.0.0.1:6379/0"
    leader_election: LeaderElectionSettings = Field(default_factory=LeaderElectionSettings)

    region: RegionSettings = Field(default_factory=RegionSettings)

    log_level: str = "INFO"


def load_settings(**overrides) -> SchedulerSettings:
    return SchedulerSettings(**overrides)
