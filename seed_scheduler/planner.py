# seed_scheduler/planner.py
import logging
from typing import Dict, List, NamedTuple, Optional

from .errors import InvalidShootSpec, NoCandidate
from .models import (Assigned, CloudProfile, Purpose, SchedulingOutcome, Seed, Shoot, Strategy,
                     Unschedulable)
from .policies import filter_seeds
from .region import DEFAULT_TOKENIZER, RegionTokenizer, distance
from .utilization import SeedUtilization

logger = logging.getLogger(__name__)


class Candidates(NamedTuple):
    seeds: List[Seed]
    # set only when survivors must be narrowed to the minimal distance group
    distances: Optional[Dict[str, int]]


def select_candidates(shoot: Shoot, seeds: List[Seed], strategy: Strategy,
                      tokenizer: RegionTokenizer = DEFAULT_TOKENIZER) -> Candidates:
    same_provider = [s for s in seeds if s.provider_type == shoot.provider_type]
    if shoot.purpose == Purpose.testing:
        return Candidates(same_provider, None)

    if not same_provider:
        return Candidates([], None)
    # raises InvalidShootSpec for a malformed shoot region
    tokenizer.split(shoot.region)

    if strategy == Strategy.same_region:
        return Candidates([s for s in same_provider if s.region == shoot.region], None)

    distances = {}
    for seed in same_provider:
        try:
            distances[seed.name] = distance(shoot.region, seed.region, shoot.provider_type,
                                            seed.provider_type, tokenizer)
        except InvalidShootSpec:
            logger.warning("Seed %s has a malformed region %r, skipping", seed.name, seed.region)
    return Candidates([s for s in same_provider if s.name in distances], distances)


def minimal_distance_group(seeds: List[Seed], distances: Dict[str, int]) -> List[Seed]:
    if not seeds:
        return []
    best = min(distances[s.name] for s in seeds)
    return [s for s in seeds if distances[s.name] == best]


def least_utilized(seeds: List[Seed], utilization: SeedUtilization) -> Seed:
    return min(seeds, key=lambda s: (utilization.count(s.name), s.name))


def resolve_cloud_profile(shoot: Shoot, profiles: List[CloudProfile]) -> Optional[CloudProfile]:
    if shoot.cloud_profile_name:
        for p in profiles:
            if p.name == shoot.cloud_profile_name:
                return p
        return None
    matching = sorted((p for p in profiles if p.provider_type == shoot.provider_type), key=lambda p: p.name)
    return matching[0] if matching else None


class Planner:
    """Turns a shoot and a snapshot of seeds into a SchedulingOutcome."""

    def __init__(self, strategy: Strategy = Strategy.same_region, tokenizer: RegionTokenizer = DEFAULT_TOKENIZER):
        self.strategy = strategy
        self.tokenizer = tokenizer

    @classmethod
    def from_settings(cls, settings) -> "Planner":
        return cls(strategy=settings.strategy, tokenizer=RegionTokenizer.from_settings(settings.region))

    def schedule(self, shoot: Shoot, seeds: List[Seed], cloud_profile: Optional[CloudProfile],
                 utilization: SeedUtilization) -> SchedulingOutcome:
        try:
            return self._schedule(shoot, seeds, cloud_profile, utilization)
        except InvalidShootSpec as e:
            logger.info("Shoot %s has an invalid spec: %s", shoot.key, e)
            return Unschedulable(reason=f"invalid shoot spec: {e}")
        except NoCandidate as e:
            return Unschedulable(reason=str(e))

    def _schedule(self, shoot, seeds, cloud_profile, utilization) -> Assigned:
        candidates = select_candidates(shoot, seeds, self.strategy, self.tokenizer)
        if not candidates.seeds:
            if not any(s.provider_type == shoot.provider_type for s in seeds):
                reason = f"no seed with provider type {shoot.provider_type!r}"
            else:
                reason = f"no seed of provider type {shoot.provider_type!r} in region {shoot.region!r}"
            raise NoCandidate(reason)

        result = filter_seeds(shoot, candidates.seeds, cloud_profile)
        for name, why in sorted(result.eliminated.items()):
            logger.debug("[%s] seed %s eliminated: %s", shoot.key, name, why)
        if not result.seeds:
            raise NoCandidate(result.summary(len(candidates.seeds)))

        survivors = result.seeds
        if candidates.distances is not None:
            survivors = minimal_distance_group(survivors, candidates.distances)

        best = least_utilized(survivors, utilization)
        logger.info("Shoot %s -> seed %s (strategy=%s, candidates=%d, load=%d)", shoot.key, best.name,
                    self.strategy.value, len(survivors), utilization.count(best.name))
        return Assigned(seed_name=best.name)
