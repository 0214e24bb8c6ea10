"""Tests for strategy selection, utilization ranking and the full planning pipeline."""
from unittest.mock import patch

from helpers import make_seed, make_shoot
from seed_scheduler.models import (Assigned, CloudProfile, Networks, Purpose, SeedSelector, Strategy,
                                   Unschedulable)
from seed_scheduler.planner import Planner, least_utilized, resolve_cloud_profile, select_candidates
from seed_scheduler.utilization import SeedUtilization


def _utilization(**counts):
    index = SeedUtilization()
    for seed_name, n in counts.items():
        for i in range(n):
            index.observe(make_shoot(f"{seed_name}-{i}", seed_name=seed_name))
    return index


class TestSelectCandidates:
    def test_same_region(self):
        seeds = [make_seed("a", region="eu-west-1"), make_seed("b", region="eu-central-1"),
                 make_seed("c", provider_type="gcp", region="eu-west-1")]
        cands = select_candidates(make_shoot(region="eu-west-1"), seeds, Strategy.same_region)
        assert [s.name for s in cands.seeds] == ["a"]
        assert cands.distances is None

    def test_minimal_distance_keeps_all_regions(self):
        seeds = [make_seed("a", region="eu-west-1"), make_seed("b", region="us-east-1"),
                 make_seed("c", provider_type="gcp")]
        cands = select_candidates(make_shoot(region="eu-west-1"), seeds, Strategy.minimal_distance)
        assert [s.name for s in cands.seeds] == ["a", "b"]
        assert cands.distances["a"] == 0
        assert cands.distances["b"] > 0

    def test_testing_purpose_ignores_region(self):
        seeds = [make_seed("a", region="eu-west-1"), make_seed("b", region="us-east-1"),
                 make_seed("c", provider_type="gcp")]
        for strategy in Strategy:
            for region in ("eu-west-1", "ap-south-1", "somewhere"):
                cands = select_candidates(make_shoot(region=region, purpose=Purpose.testing), seeds, strategy)
                assert [s.name for s in cands.seeds] == ["a", "b"]
                assert cands.distances is None

    def test_no_seed_of_provider_skips_distance(self):
        seeds = [make_seed("a", provider_type="gcp"), make_seed("b", provider_type="azure")]
        with patch("seed_scheduler.planner.distance") as dist:
            cands = select_candidates(make_shoot(), seeds, Strategy.minimal_distance)
        assert cands.seeds == []
        dist.assert_not_called()


class TestRanking:
    def test_least_loaded_wins(self):
        seeds = [make_seed("busy"), make_seed("quiet")]
        assert least_utilized(seeds, _utilization(busy=3, quiet=1)).name == "quiet"

    def test_ties_broken_by_name(self):
        seeds = [make_seed("zeta"), make_seed("alpha"), make_seed("mid")]
        assert least_utilized(seeds, _utilization(zeta=1, alpha=1, mid=1)).name == "alpha"

    def test_unknown_seed_counts_as_empty(self):
        seeds = [make_seed("old"), make_seed("new")]
        assert least_utilized(seeds, _utilization(old=2)).name == "new"


class TestResolveCloudProfile:
    def test_by_name(self):
        profiles = [CloudProfile(name="aws-a", provider_type="aws"), CloudProfile(name="aws-b", provider_type="aws")]
        assert resolve_cloud_profile(make_shoot(cloud_profile_name="aws-b"), profiles).name == "aws-b"

    def test_by_provider_type(self):
        profiles = [CloudProfile(name="gcp", provider_type="gcp"), CloudProfile(name="aws", provider_type="aws")]
        assert resolve_cloud_profile(make_shoot(), profiles).name == "aws"

    def test_missing(self):
        assert resolve_cloud_profile(make_shoot(cloud_profile_name="nope"), []) is None


class TestPlanner:
    def test_same_region_assigns_matching_seed(self):
        planner = Planner(Strategy.same_region)
        outcome = planner.schedule(make_shoot(), [make_seed("aws-eu")], None, SeedUtilization())
        assert outcome == Assigned(seed_name="aws-eu")

    def test_minimal_distance_prefers_same_base_name(self):
        # base names: shoot "eu-1", seeds "eu-1" and "us-1"; orientations all differ
        seeds = [make_seed("far", region="us-central-1"), make_seed("near", region="eu-west-1")]
        planner = Planner(Strategy.minimal_distance)
        outcome = planner.schedule(make_shoot(region="eu-north-1"), seeds, None, _utilization(near=5))
        assert outcome == Assigned(seed_name="near")

    def test_minimal_distance_group_then_utilization(self):
        seeds = [make_seed("west", region="eu-west-1"), make_seed("central", region="eu-central-1"),
                 make_seed("us", region="us-east-1")]
        planner = Planner(Strategy.minimal_distance)
        outcome = planner.schedule(make_shoot(region="eu-north-1"), seeds, None, _utilization(west=2, central=1))
        assert outcome == Assigned(seed_name="central")

    def test_orientation_only_differences_tie(self):
        # eu-west-1 and eu-central-1 are both distance 2 from eu-north-1
        shoot = make_shoot(region="eu-north-1")
        seeds = [make_seed("b-west", region="eu-west-1"), make_seed("a-central", region="eu-central-1")]
        cands = select_candidates(shoot, seeds, Strategy.minimal_distance)
        assert cands.distances == {"b-west": 2, "a-central": 2}

        planner = Planner(Strategy.minimal_distance)
        assert planner.schedule(shoot, seeds, None, SeedUtilization()) == Assigned(seed_name="a-central")
        assert planner.schedule(shoot, seeds, None, _utilization(**{"a-central": 1})) == Assigned(seed_name="b-west")

    def test_minimal_distance_after_filtering(self):
        seeds = [make_seed("exact", region="eu-west-1", visible=False), make_seed("close", region="eu-north-1"),
                 make_seed("far", region="us-east-1")]
        planner = Planner(Strategy.minimal_distance)
        outcome = planner.schedule(make_shoot(region="eu-west-1"), seeds, None, SeedUtilization())
        assert outcome == Assigned(seed_name="close")

    def test_overlapping_seed_skipped_despite_lower_load(self):
        seeds = [make_seed("overlap", networks=Networks(pods="100.96.0.0/11")), make_seed("other")]
        outcome = Planner().schedule(make_shoot(), seeds, None, _utilization(other=10))
        assert outcome == Assigned(seed_name="other")

    def test_no_seed_of_provider_is_unschedulable(self):
        outcome = Planner(Strategy.minimal_distance).schedule(
            make_shoot(), [make_seed(provider_type="gcp")], None, SeedUtilization())
        assert isinstance(outcome, Unschedulable)
        assert "provider type 'aws'" in outcome.reason

    def test_no_seed_in_region(self):
        outcome = Planner(Strategy.same_region).schedule(
            make_shoot(region="eu-west-1"), [make_seed(region="us-east-1")], None, SeedUtilization())
        assert isinstance(outcome, Unschedulable)
        assert "region 'eu-west-1'" in outcome.reason

    def test_all_filtered(self):
        outcome = Planner().schedule(make_shoot(), [make_seed(taints=["disable-dns"])], None, SeedUtilization())
        assert outcome == Unschedulable(reason="0/1 seeds are available: 1 tainted (disable-dns)")

    def test_invalid_region(self):
        outcome = Planner(Strategy.minimal_distance).schedule(
            make_shoot(region="eu west"), [make_seed()], None, SeedUtilization())
        assert isinstance(outcome, Unschedulable)
        assert outcome.reason.startswith("invalid shoot spec")

    def test_invalid_cidr(self):
        outcome = Planner().schedule(make_shoot(networks=Networks(pods="not-a-cidr")), [make_seed()], None,
                                     SeedUtilization())
        assert isinstance(outcome, Unschedulable)
        assert "invalid pods network" in outcome.reason

    def test_cloud_profile_selector_applies(self):
        profile = CloudProfile(name="aws", provider_type="aws", seed_selector=SeedSelector(match_labels={"a": "b"}))
        seeds = [make_seed("plain"), make_seed("labelled", labels={"a": "b"})]
        outcome = Planner().schedule(make_shoot(), seeds, profile, _utilization(labelled=4))
        assert outcome == Assigned(seed_name="labelled")

    def test_deterministic(self):
        seeds = [make_seed(f"seed-{i}", region="eu-west-1") for i in range(5)]
        planner = Planner(Strategy.minimal_distance)
        outcomes = {planner.schedule(make_shoot(), list(reversed(seeds)), None, SeedUtilization()).seed_name
                    for _ in range(3)}
        assert outcomes == {"seed-0"}
