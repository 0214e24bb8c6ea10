from helpers import make_shoot
from seed_scheduler.utilization import SeedUtilization


class TestSeedUtilization:
    def test_counts_assigned_shoots(self):
        index = SeedUtilization.from_shoots([
            make_shoot("a", seed_name="s1"),
            make_shoot("b", seed_name="s1"),
            make_shoot("c", seed_name="s2"),
            make_shoot("d"),
        ])
        assert index.count("s1") == 2
        assert index.count("s2") == 1
        assert index.count("s3") == 0
        assert len(index) == 3

    def test_observe_is_idempotent(self):
        index = SeedUtilization()
        shoot = make_shoot(seed_name="s1")
        index.observe(shoot)
        index.observe(shoot)
        assert index.count("s1") == 1

    def test_migration_moves_count(self):
        index = SeedUtilization()
        index.observe(make_shoot(seed_name="s1"))
        index.observe(make_shoot(seed_name="s2"))
        assert index.snapshot() == {"s2": 1}
        assert index.seed_of("garden-dev/s1") == "s2"

    def test_forget(self):
        index = SeedUtilization()
        index.observe(make_shoot("a", seed_name="s1"))
        index.forget("garden-dev/a")
        index.forget("garden-dev/unknown")
        assert index.count("s1") == 0
        assert index.keys() == set()
