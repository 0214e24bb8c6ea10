# seed_scheduler/errors.py


class SchedulerError(Exception):
    """Base class for everything the scheduling core raises."""


class StoreError(SchedulerError):
    """Raised when the backing store rejects or fails a request."""


class StoreUnavailable(StoreError):
    """Transient failure talking to the store (connection, timeout, 5xx)."""


class NotFound(StoreError):
    pass


class ConcurrentModification(StoreError):
    """The shoot's resource_version no longer matches the stored one."""


class ValidationRejected(StoreError):
    """The store refused the write as invalid (e.g. unknown seed)."""


class InvalidShootSpec(SchedulerError):
    """The shoot cannot be scheduled as written (bad region, CIDR, selector)."""


class NoCandidate(SchedulerError):
    """No seed survived candidate selection and filtering."""


class ShootUnschedulable(SchedulerError):
    """Raised by the committer after recording an Unschedulable outcome."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"shoot {key} is unschedulable: {reason}")
        self.key = key
        self.reason = reason


class NotLeader(SchedulerError):
    """Raised when a decision is committed without a valid leader token."""
