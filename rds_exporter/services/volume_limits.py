"""Storage classes and IOPS ceilings for RDS volumes."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from ..utils.errors import LimitComputationError

logger = logging.getLogger(__name__)

GP2_IOPS_PER_GB = 3
GP2_MIN_IOPS = 100
GP2_MAX_IOPS = 16000
GP2_BURST_IOPS = 3000

GP3_BASELINE_IOPS = 3000

IO1_MIN_IOPS = 100
IO1_MAX_IOPS = 64000


class StorageClass(Enum):
    """RDS storage type as reported by DescribeDBInstances."""

    GP2 = "gp2"
    GP3 = "gp3"
    IO1 = "io1"
    UNKNOWN = "unknown"

    @classmethod
    def from_storage_type(cls, value: Optional[str]) -> "StorageClass":
        """
        Classify a provider storage type string.

        Unrecognised or missing values map to UNKNOWN instead of failing.
        """
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Limit:
    """IOPS ceilings of a volume. burst_iops is 0 without a burst tier."""

    iops: int = 0
    burst_iops: int = 0


@dataclass(frozen=True)
class InstanceDetails:
    """Storage attributes of one RDS instance, valid for one cycle."""

    instance_identifier: str
    storage_class: StorageClass
    storage_size_gb: int
    provisioned_iops: Optional[int] = None


def compute_limit(
    storage_class: StorageClass,
    size_gb: int,
    provisioned_iops: Optional[int] = None
) -> Limit:
    """
    Compute baseline and burst IOPS ceilings for a volume.

    Args:
        storage_class: Volume storage class
        size_gb: Allocated storage in GB
        provisioned_iops: Provisioned IOPS (required for io1)

    Returns:
        Limit: Baseline and burst ceilings

    Raises:
        LimitComputationError: If an input required by the class is missing or out of range
    """
    if storage_class is StorageClass.GP2:
        _require_size(storage_class, size_gb)
        baseline = min(max(GP2_IOPS_PER_GB * size_gb, GP2_MIN_IOPS), GP2_MAX_IOPS)
        # Volumes with a baseline at or above the burst rate never burst
        burst = GP2_BURST_IOPS if baseline < GP2_BURST_IOPS else 0
        return Limit(iops=baseline, burst_iops=burst)

    if storage_class is StorageClass.GP3:
        _require_size(storage_class, size_gb)
        return Limit(iops=GP3_BASELINE_IOPS)

    if storage_class is StorageClass.IO1:
        if provisioned_iops is None:
            raise LimitComputationError("io1 volume without provisioned IOPS")
        if not IO1_MIN_IOPS <= provisioned_iops <= IO1_MAX_IOPS:
            raise LimitComputationError(
                f"io1 provisioned IOPS {provisioned_iops} outside "
                f"[{IO1_MIN_IOPS}, {IO1_MAX_IOPS}]"
            )
        return Limit(iops=provisioned_iops)

    return Limit()


def limit_or_default(details: InstanceDetails) -> Limit:
    """
    Compute the limit for an instance, degrading to Limit(0, 0) on bad inputs.

    Args:
        details: Instance storage attributes

    Returns:
        Limit: Computed or default limit
    """
    try:
        return compute_limit(
            details.storage_class,
            details.storage_size_gb,
            details.provisioned_iops
        )
    except LimitComputationError as e:
        logger.warning(
            f"Using default limit for {details.instance_identifier}: {e}",
            extra={"instance": details.instance_identifier}
        )
        return Limit()


def _require_size(storage_class: StorageClass, size_gb: int) -> None:
    if size_gb is None or size_gb < 1:
        raise LimitComputationError(
            f"{storage_class.value} volume with invalid size {size_gb!r} GB"
        )
