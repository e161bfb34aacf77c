"""Fleet-wide collection: one isolated InstanceCollector run per configured instance."""

import asyncio
import logging
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import List, Optional, Sequence

from ..config.models import RDSInstanceConfig
from ..services.metric_registry import MetricRegistry
from ..utils.metrics import CollectionOutcome
from ..utils.status import CollectionStatus
from .base import BaseCollector, safe_collect
from .instance_collector import REMOTE_CALLS_PER_INSTANCE, InstanceCollector


class FleetCollector(BaseCollector):
    """
    Runs every instance's collection concurrently and publishes the results.

    Failures are isolated per instance: a failed instance contributes
    nothing and its gauges keep the values of its last successful cycle.
    """

    def __init__(
        self,
        registry: MetricRegistry,
        logger: logging.Logger,
        instance_collector: Optional[InstanceCollector] = None,
        timeout_seconds: Optional[float] = None,
        max_concurrency: Optional[int] = None
    ):
        """
        Initialize fleet collector.

        Args:
            registry: Registry receiving successful update sets
            logger: Logger instance
            instance_collector: Per-instance collector
            timeout_seconds: Per-instance deadline, None for no deadline
            max_concurrency: Maximum instances collected at once, None for unbounded
        """
        super().__init__(logger)
        self.registry = registry
        self.instance_collector = instance_collector or InstanceCollector(logger)
        self.timeout_seconds = timeout_seconds
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def run(self, instances: Sequence[RDSInstanceConfig]) -> None:
        """
        Collect all instances and apply every successful update set.

        Returns only after every instance has succeeded or failed.

        Args:
            instances: Configured instances
        """
        start_time = time.time()

        outcomes = await self.collect(instances)

        for outcome in outcomes:
            if outcome.is_success():
                self.registry.apply(outcome.updates)
            else:
                self.registry.record_failure(outcome.instance, outcome.error_type or "unknown")

        duration = time.time() - start_time
        self.registry.observe_duration(duration)

        failed = [o.instance for o in outcomes if not o.is_success()]
        self.logger.info(
            f"Collection cycle finished in {duration:.2f}s: "
            f"{len(outcomes) - len(failed)}/{len(outcomes)} instance(s) updated",
            extra={"failed_instances": failed}
        )

    async def collect(self, instances: Sequence[RDSInstanceConfig]) -> List[CollectionOutcome]:
        """
        Collect all instances concurrently without publishing.

        Args:
            instances: Configured instances

        Returns:
            List[CollectionOutcome]: One outcome per instance, in input order
        """
        if not instances:
            self.logger.info("No RDS instances configured")
            return []

        self.logger.debug(f"Collecting {len(instances)} RDS instance(s)")

        # A pool per cycle, sized so every remote call of every concurrently
        # collected instance gets its own thread
        concurrent_instances = min(len(instances), self.max_concurrency or len(instances))
        executor = ThreadPoolExecutor(
            max_workers=REMOTE_CALLS_PER_INSTANCE * concurrent_instances,
            thread_name_prefix="rds-exporter"
        )
        try:
            tasks = [self._collect_instance(instance, executor) for instance in instances]
            return list(await asyncio.gather(*tasks))
        finally:
            # Calls abandoned by a deadline finish in the background
            executor.shutdown(wait=False)

    @safe_collect
    async def _collect_instance(self, instance: RDSInstanceConfig, executor: Executor) -> CollectionOutcome:
        if self._semaphore is None:
            updates = await self._collect_with_deadline(instance, executor)
        else:
            async with self._semaphore:
                updates = await self._collect_with_deadline(instance, executor)

        return CollectionOutcome(
            instance=instance.instance,
            status=CollectionStatus.SUCCESS,
            updates=updates
        )

    async def _collect_with_deadline(self, instance: RDSInstanceConfig, executor: Executor):
        if self.timeout_seconds is None:
            return await self.instance_collector.collect(instance, executor=executor)
        return await asyncio.wait_for(
            self.instance_collector.collect(instance, executor=executor),
            timeout=self.timeout_seconds
        )
