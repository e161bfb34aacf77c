"""Per-instance collection: four concurrent remote calls joined into one update set."""

import asyncio
import logging
from concurrent.futures import Executor
from typing import Callable, Dict, Optional

from ..config.models import RDSInstanceConfig
from ..services.volume_limits import InstanceDetails, Limit, limit_or_default
from ..utils.metrics import (
    BURST_CREDIT_BALANCE,
    RDS_BURST_IOPS_LIMIT,
    RDS_IOPS_LIMIT,
    READ_IOPS,
    TOTAL_IOPS,
    WRITE_IOPS,
    GaugeUpdateSet,
)
from .base import BaseCollector
from .cloudwatch_sample import MetricSampleFetcher
from .rds_details import DetailsFetcher

RDS_NAMESPACE = "AWS/RDS"
RDS_DIMENSION = "DBInstanceIdentifier"
STATISTIC = "Average"

# Details plus WriteIOPS, ReadIOPS and BurstBalance
REMOTE_CALLS_PER_INSTANCE = 4


class InstanceCollector(BaseCollector):
    """
    Collects the gauges of one RDS instance.

    Describes the instance and samples WriteIOPS, ReadIOPS and BurstBalance
    concurrently, waits for all four, then derives the IOPS ceilings.
    """

    def __init__(
        self,
        logger: logging.Logger,
        details_fetcher: Optional[DetailsFetcher] = None,
        sample_fetcher: Optional[MetricSampleFetcher] = None,
        limit_model: Callable[[InstanceDetails], Limit] = limit_or_default
    ):
        """
        Initialize instance collector.

        Args:
            logger: Logger instance
            details_fetcher: Fetcher for instance storage attributes
            sample_fetcher: Fetcher for CloudWatch samples
            limit_model: Maps instance details to IOPS ceilings, must not raise
        """
        super().__init__(logger)
        self.details_fetcher = details_fetcher or DetailsFetcher(logger)
        self.sample_fetcher = sample_fetcher or MetricSampleFetcher(logger)
        self.limit_model = limit_model

    async def collect(
        self,
        instance: RDSInstanceConfig,
        executor: Optional[Executor] = None
    ) -> GaugeUpdateSet:
        """
        Collect one instance's gauges.

        Args:
            instance: Instance configuration
            executor: Thread pool for the blocking remote calls

        Returns:
            GaugeUpdateSet: All gauge values for this cycle

        Raises:
            DetailsError: If the instance could not be described
            Exception: Any unexpected error from a sample fetch
        """
        dimensions = {RDS_DIMENSION: instance.instance}

        results = await asyncio.gather(
            self.details_fetcher.fetch(instance, executor=executor),
            self._sample(instance, "WriteIOPS", dimensions, executor),
            self._sample(instance, "ReadIOPS", dimensions, executor),
            self._sample(instance, "BurstBalance", dimensions, executor),
            return_exceptions=True
        )

        # All four calls have finished; the first failure (details first) wins
        for result in results:
            if isinstance(result, BaseException):
                raise result

        details, write_iops, read_iops, burst_balance = results
        limit = self.limit_model(details)

        self.logger.debug(
            f"Collected {instance.instance}: {details.storage_class.value} "
            f"{details.storage_size_gb} GB, limit {limit.iops}/{limit.burst_iops}",
            extra={"instance": instance.instance}
        )

        return build_gauge_updates(instance.instance, limit, write_iops, read_iops, burst_balance)

    async def _sample(
        self,
        instance: RDSInstanceConfig,
        metric_name: str,
        dimensions: Dict[str, str],
        executor: Optional[Executor]
    ) -> Optional[float]:
        return await self.sample_fetcher.fetch(
            instance, RDS_NAMESPACE, metric_name, STATISTIC, dimensions, executor=executor
        )


def build_gauge_updates(
    instance: str,
    limit: Limit,
    write_iops: Optional[float],
    read_iops: Optional[float],
    burst_balance: Optional[float]
) -> GaugeUpdateSet:
    """
    Combine ceilings and samples into the gauges published for an instance.

    Args:
        instance: Instance label value
        limit: Baseline and burst IOPS ceilings
        write_iops: WriteIOPS sample, None if absent
        read_iops: ReadIOPS sample, None if absent
        burst_balance: BurstBalance sample, None if absent

    Returns:
        GaugeUpdateSet: Gauge values to publish
    """
    write = write_iops if write_iops is not None else 0.0
    read = read_iops if read_iops is not None else 0.0

    values: Dict[str, float] = {}

    # Only an instance with burst credit left can sustain the burst rate
    if burst_balance is not None and burst_balance > 0 and limit.burst_iops > 0:
        values[RDS_IOPS_LIMIT] = float(limit.burst_iops)
    else:
        values[RDS_IOPS_LIMIT] = float(limit.iops)

    if limit.burst_iops > 0:
        values[RDS_BURST_IOPS_LIMIT] = float(limit.burst_iops)

    values[WRITE_IOPS] = float(write)
    values[READ_IOPS] = float(read)
    values[TOTAL_IOPS] = float(write + read)

    # 0% balance and "no sample" are different things
    if burst_balance is not None:
        values[BURST_CREDIT_BALANCE] = float(burst_balance)

    return GaugeUpdateSet(instance=instance, values=values)
