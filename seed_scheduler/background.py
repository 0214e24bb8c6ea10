# seed_scheduler/background.py
import asyncio
import hashlib
import json
import logging
from enum import Enum
from typing import Dict, List, Optional

from .committer import DecisionCommitter
from .errors import (ConcurrentModification, NotFound, NotLeader, SchedulerError, ShootUnschedulable,
                     StoreError, StoreUnavailable)
from .leader import LeaderToken
from .models import Shoot
from .planner import Planner, resolve_cloud_profile
from .utilization import SeedUtilization
from .workqueue import RateLimitingQueue, ShutDown

logger = logging.getLogger("seed_scheduler.background")

SCHEDULING_FIELDS = ("provider_type", "region", "purpose", "cloud_profile_name", "networks",
                     "seed_selector", "dns", "tolerations")


class Result(str, Enum):
    assigned = "assigned"
    already_assigned = "already_assigned"
    unschedulable = "unschedulable"
    gone = "gone"


def split_key(key: str):
    namespace, _, name = key.partition("/")
    return namespace, name


def spec_fingerprint(shoot: Shoot) -> str:
    """Hash of everything that can change a scheduling decision."""
    data = shoot.model_dump(mode="json", include=set(SCHEDULING_FIELDS))
    return hashlib.sha256(json.dumps(data, sort_keys=True).encode()).hexdigest()


class SchedulerService:
    """
    Reconcile loop: while holding the scheduling lease, list shoots every
    resync_interval, queue the unscheduled ones and let `workers` tasks run
    the planner and committer on them.
    """

    def __init__(self, store, planner: Planner, elector, *, workers: int = 4,
                 resync_interval: float = 30.0, retry_base_interval: float = 15.0,
                 retry_max_interval: float = 300.0, max_conflict_retries: int = 5):
        self.store = store
        self.planner = planner
        self.elector = elector
        self.committer = DecisionCommitter(store)
        self.utilization = SeedUtilization()
        self.workers = workers
        self.resync_interval = resync_interval
        self.retry_base_interval = retry_base_interval
        self.retry_max_interval = retry_max_interval
        self.max_conflict_retries = max_conflict_retries

        self.queue: Optional[RateLimitingQueue] = None
        self.token: Optional[LeaderToken] = None
        self._fingerprints: Dict[str, str] = {}
        self._stopped = asyncio.Event()

    @classmethod
    def from_settings(cls, settings, store, elector) -> "SchedulerService":
        return cls(
            store,
            Planner.from_settings(settings),
            elector,
            workers=settings.workers,
            resync_interval=settings.resync_interval,
            retry_base_interval=settings.retry_base_interval,
            retry_max_interval=settings.retry_max_interval,
            max_conflict_retries=settings.max_conflict_retries,
        )

    @property
    def is_leader(self) -> bool:
        return self.token is not None and self.token.valid()

    # ------------------------------------------------------------------
    # one reconcile attempt (synchronous, runs in a worker thread)
    # ------------------------------------------------------------------

    def reconcile(self, key: str) -> Result:
        namespace, name = split_key(key)
        for attempt in range(1, self.max_conflict_retries + 1):
            try:
                shoot = self.store.get_shoot(namespace, name)
            except NotFound:
                logger.info("Shoot %s no longer exists, dropping it", key)
                self.utilization.forget(key)
                return Result.gone

            if shoot.seed_name:
                self.utilization.observe(shoot)
                return Result.already_assigned

            # utilization is read fresh from the index on every attempt
            seeds = self.store.list_seeds()
            profile = resolve_cloud_profile(shoot, self.store.list_cloud_profiles())
            outcome = self.planner.schedule(shoot, seeds, profile, self.utilization)

            try:
                updated = self.committer.commit(shoot, outcome, self.token)
            except ConcurrentModification as e:
                logger.info("Shoot %s changed while scheduling (attempt %d/%d): %s", key, attempt,
                            self.max_conflict_retries, e)
                continue
            except ShootUnschedulable as e:
                logger.warning("Shoot %s unschedulable: %s", key, e.reason)
                return Result.unschedulable

            self.utilization.observe(updated)
            return Result.assigned

        raise StoreUnavailable(f"shoot {key} kept changing, gave up after {self.max_conflict_retries} attempts")

    # ------------------------------------------------------------------
    # async plumbing
    # ------------------------------------------------------------------

    async def process_next(self, queue: RateLimitingQueue) -> bool:
        try:
            key = await queue.get()
        except ShutDown:
            return False
        try:
            result = await asyncio.to_thread(self.reconcile, key)
        except NotLeader as e:
            logger.warning("%s", e)
            queue.add_rate_limited(key)
        except StoreError as e:
            delay = queue.add_rate_limited(key)
            logger.warning("Store error while scheduling %s, retrying in %.0fs: %s", key, delay, e)
        except Exception as e:
            delay = queue.add_rate_limited(key)
            logger.exception("Unexpected error while scheduling %s, retrying in %.0fs: %s", key, delay, e)
        else:
            if result == Result.unschedulable:
                delay = queue.add_rate_limited(key)
                logger.info("Retrying shoot %s in %.0fs", key, delay)
            else:
                queue.forget(key)
                self._fingerprints.pop(key, None)
        finally:
            queue.done(key)
        return True

    async def worker(self, queue: RateLimitingQueue, n: int):
        logger.debug("Worker %d started", n)
        while await self.process_next(queue):
            pass
        logger.debug("Worker %d stopped", n)

    def observe(self, shoots: List[Shoot], queue: RateLimitingQueue):
        """Feed one listing of shoots into the utilization index and the queue."""
        seen = set()
        for shoot in shoots:
            seen.add(shoot.key)
            self.utilization.observe(shoot)
            if shoot.seed_name:
                self._fingerprints.pop(shoot.key, None)
                continue
            fp = spec_fingerprint(shoot)
            previous = self._fingerprints.get(shoot.key)
            if previous == fp:
                continue
            if previous is not None:
                logger.info("Spec of shoot %s changed, resetting its backoff", shoot.key)
            self._fingerprints[shoot.key] = fp
            queue.forget(shoot.key)
            queue.add(shoot.key)
        # shoots that disappeared from the store
        for key in [k for k in self._fingerprints if k not in seen]:
            del self._fingerprints[key]
        for key in self.utilization.keys() - seen:
            self.utilization.forget(key)

    async def resync_once(self, queue: RateLimitingQueue):
        shoots = await asyncio.to_thread(self.store.list_shoots)
        self.observe(shoots, queue)
        logger.debug("Resync: %d shoots observed, %d queued", len(shoots), len(queue))

    async def resync_loop(self, queue: RateLimitingQueue):
        while not queue.shutting_down:
            try:
                await self.resync_once(queue)
            except SchedulerError as e:
                logger.warning("Resync failed: %s", e)
            except Exception as e:
                logger.exception("Resync failed: %s", e)
            await asyncio.sleep(self.resync_interval)

    async def renew_loop(self):
        while True:
            await asyncio.sleep(self.elector.retry_period)
            ok = await asyncio.to_thread(self.elector.renew, self.token)
            if not ok:
                logger.error("Scheduling lease lost, stepping down")
                return

    async def acquire(self) -> Optional[LeaderToken]:
        while not self._stopped.is_set():
            try:
                token = await asyncio.to_thread(self.elector.try_acquire)
            except Exception as e:
                logger.warning("Leader election attempt failed: %s", e)
                token = None
            if token is not None:
                return token
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.elector.retry_period)
            except asyncio.TimeoutError:
                pass
        return None

    async def lead(self, token: LeaderToken):
        """Run workers until the lease is lost or stop() is called."""
        self.token = token
        self.queue = queue = RateLimitingQueue(self.retry_base_interval, self.retry_max_interval)
        self._fingerprints.clear()
        tasks = [asyncio.create_task(self.worker(queue, i)) for i in range(self.workers)]
        tasks.append(asyncio.create_task(self.resync_loop(queue)))
        renew = asyncio.create_task(self.renew_loop())
        stop = asyncio.create_task(self._stopped.wait())
        logger.info("Leading as %s with %d workers", token.identity, self.workers)
        try:
            await asyncio.wait([renew, stop], return_when=asyncio.FIRST_COMPLETED)
        finally:
            queue.shutdown()
            for t in tasks + [renew, stop]:
                t.cancel()
            await asyncio.gather(*tasks, renew, stop, return_exceptions=True)
            try:
                await asyncio.to_thread(self.elector.release, token)
            except Exception as e:
                logger.warning("Releasing leadership failed: %s", e)
            self.token = None

    async def run(self):
        logger.info("Scheduler service starting")
        while not self._stopped.is_set():
            token = await self.acquire()
            if token is None:
                break
            await self.lead(token)
        logger.info("Scheduler service stopped")

    def stop(self):
        self._stopped.set()
