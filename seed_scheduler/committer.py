# seed_scheduler/committer.py
import logging

from .errors import NotLeader, ShootUnschedulable
from .leader import LeaderToken
from .models import Assigned, SchedulingOutcome, Shoot, Unschedulable

logger = logging.getLogger(__name__)

EVENT_REASON_FAILED = "SchedulingFailed"


class DecisionCommitter:
    """
    Persists a SchedulingOutcome: either one conditional update of the
    shoot's seed, or one warning event. Never both.

    ``store`` needs ``bind_seed(shoot, seed_name)`` and
    ``record_event(shoot, type, reason, message)``, see ControllerClient.
    """

    def __init__(self, store):
        self.store = store

    def commit(self, shoot: Shoot, outcome: SchedulingOutcome, token: LeaderToken) -> Shoot:
        """
        Returns the updated shoot on Assigned. Raises ConcurrentModification
        if the shoot changed since it was read, and ShootUnschedulable after
        recording an Unschedulable outcome.
        """
        if token is None or not token.valid():
            raise NotLeader(f"not holding the scheduling lease, refusing to commit {shoot.key}")

        if isinstance(outcome, Assigned):
            updated = self.store.bind_seed(shoot, outcome.seed_name)
            logger.info("Assigned shoot %s to seed %s", shoot.key, outcome.seed_name)
            return updated

        if isinstance(outcome, Unschedulable):
            self.store.record_event(shoot, "Warning", EVENT_REASON_FAILED,
                                    f"Failed to schedule shoot: {outcome.reason}")
            raise ShootUnschedulable(shoot.key, outcome.reason)

        raise TypeError(f"unknown scheduling outcome {outcome!r}")
