"""Data structures exchanged by the collectors."""

from dataclasses import dataclass, field
from typing import Optional, Dict
import time

from .status import CollectionStatus

# Exposed gauge names, one series per "instance" label
RDS_IOPS_LIMIT = "rds_iops_limit"
RDS_BURST_IOPS_LIMIT = "rds_burst_iops_limit"
BURST_CREDIT_BALANCE = "burst_credit_balance"
WRITE_IOPS = "write_iops"
READ_IOPS = "read_iops"
TOTAL_IOPS = "total_iops"

GAUGE_DESCRIPTIONS: Dict[str, str] = {
    RDS_IOPS_LIMIT: "IOPS limit",
    RDS_BURST_IOPS_LIMIT: "Burst IOPS limit",
    BURST_CREDIT_BALANCE: "Burst credit %",
    WRITE_IOPS: "Write IOPS",
    READ_IOPS: "Read IOPS",
    TOTAL_IOPS: "Total IOPS",
}

ALL_GAUGES = tuple(GAUGE_DESCRIPTIONS)


@dataclass(frozen=True)
class GaugeUpdateSet:
    """Every gauge value computed for one instance in one cycle."""

    instance: str
    values: Dict[str, float]

    def __contains__(self, gauge_name: str) -> bool:
        return gauge_name in self.values

    def __getitem__(self, gauge_name: str) -> float:
        return self.values[gauge_name]


@dataclass
class CollectionOutcome:
    """Per-instance result of a fleet collection cycle."""

    instance: str
    status: CollectionStatus
    updates: Optional[GaugeUpdateSet] = None
    error_type: Optional[str] = None
    error: Optional[str] = None
    timestamp: Optional[float] = field(default=None)

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = time.time()

    def is_success(self) -> bool:
        return self.status.is_success()
