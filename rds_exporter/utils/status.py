"""Collection status enumeration."""

from enum import Enum


class CollectionStatus(Enum):
    """Outcome of one instance's collection cycle."""

    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    def is_success(self) -> bool:
        return self is CollectionStatus.SUCCESS
