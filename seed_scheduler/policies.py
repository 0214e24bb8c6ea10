# seed_scheduler/policies.py
"""
Candidate filter pipeline.

Each predicate looks at one seed and either keeps it or returns the reason it
is eliminated. Predicates are independent of each other and of the other
candidates, so running the pipeline twice yields the same set. They run in a
fixed order so a seed's elimination reason is always the first one that
applies.
"""
import ipaddress
from collections import Counter
from typing import Callable, Dict, List, NamedTuple, Optional

from .errors import InvalidShootSpec
from .models import CloudProfile, Networks, Seed, SeedSelector, Shoot
from .selectors import effective_selector, labels_match, provider_type_allowed, validate_selector

TAINT_DISABLE_DNS = "disable-dns"

REASON_NETWORK = "network overlap"
REASON_TAINT = "tainted"
REASON_SELECTOR = "selector mismatch"
REASON_PROVIDER = "provider type not allowed"
REASON_INVISIBLE = "not visible for scheduling"
REASON_NOT_READY = "not ready"
REASON_DELETING = "being deleted"


class FilterResult(NamedTuple):
    seeds: List[Seed]
    eliminated: Dict[str, str]  # seed name -> reason

    def summary(self, total: int) -> str:
        counts = Counter(self.eliminated.values())
        parts = ", ".join(f"{n} {reason}" for reason, n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))
        msg = f"{len(self.seeds)}/{total} seeds are available"
        return f"{msg}: {parts}" if parts else msg


def parse_networks(networks: Networks, owner: str) -> list:
    parsed = []
    for kind, cidr in networks.cidrs().items():
        try:
            parsed.append((kind, ipaddress.ip_network(cidr, strict=False)))
        except ValueError as e:
            raise InvalidShootSpec(f"{owner}: invalid {kind} network {cidr!r}: {e}") from e
    return parsed


def networks_overlap(shoot_networks: Networks, seed_networks: Networks) -> Optional[str]:
    """Return a description of the first overlapping pair, or None if disjoint."""
    shoot_nets = parse_networks(shoot_networks, "shoot")
    try:
        seed_nets = parse_networks(seed_networks, "seed")
    except InvalidShootSpec:
        # a seed with unparseable networks cannot be proven disjoint
        return "seed networks unparseable"
    for s_kind, s_net in shoot_nets:
        for d_kind, d_net in seed_nets:
            if s_net.version != d_net.version:
                continue
            if s_net.overlaps(d_net):
                return f"shoot {s_kind} {s_net} overlaps seed {d_kind} {d_net}"
    return None


def tolerates(shoot: Shoot, taint: str) -> bool:
    if taint == TAINT_DISABLE_DNS:
        return shoot.dns.unmanaged and not shoot.dns.domain
    return taint in shoot.tolerations


# --- predicates: return None to keep the seed, or an elimination reason ---

def check_networks(shoot: Shoot, seed: Seed, selector: Optional[SeedSelector]) -> Optional[str]:
    if networks_overlap(shoot.networks, seed.networks):
        return REASON_NETWORK
    return None


def check_taints(shoot: Shoot, seed: Seed, selector: Optional[SeedSelector]) -> Optional[str]:
    for taint in seed.taints:
        if not tolerates(shoot, taint):
            return f"{REASON_TAINT} ({taint})"
    return None


def check_selector(shoot: Shoot, seed: Seed, selector: Optional[SeedSelector]) -> Optional[str]:
    if not provider_type_allowed(selector, seed.provider_type):
        return REASON_PROVIDER
    if not labels_match(selector, seed.labels):
        return REASON_SELECTOR
    return None


def check_visible(shoot: Shoot, seed: Seed, selector: Optional[SeedSelector]) -> Optional[str]:
    return None if seed.visible else REASON_INVISIBLE


def check_ready(shoot: Shoot, seed: Seed, selector: Optional[SeedSelector]) -> Optional[str]:
    return None if seed.ready else REASON_NOT_READY


def check_not_deleting(shoot: Shoot, seed: Seed, selector: Optional[SeedSelector]) -> Optional[str]:
    return REASON_DELETING if seed.deletion_timestamp is not None else None


Predicate = Callable[[Shoot, Seed, Optional[SeedSelector]], Optional[str]]

PIPELINE: List[Predicate] = [
    check_networks,
    check_taints,
    check_selector,
    check_visible,
    check_ready,
    check_not_deleting,
]


def validate_shoot(shoot: Shoot):
    """Raise InvalidShootSpec for anything the pipeline cannot evaluate."""
    parse_networks(shoot.networks, "shoot")
    validate_selector(shoot.seed_selector)


def filter_seeds(shoot: Shoot, seeds: List[Seed], cloud_profile: Optional[CloudProfile] = None) -> FilterResult:
    validate_shoot(shoot)
    selector = effective_selector(shoot, cloud_profile)
    validate_selector(selector)

    kept: List[Seed] = []
    eliminated: Dict[str, str] = {}
    for seed in seeds:
        reason = None
        for predicate in PIPELINE:
            reason = predicate(shoot, seed, selector)
            if reason:
                break
        if reason:
            eliminated[seed.name] = reason
        else:
            kept.append(seed)
    return FilterResult(kept, eliminated)
