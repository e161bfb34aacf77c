"""Tests for FleetCollector fan-out, isolation and publication."""

import asyncio
import time
from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeDetailsFetcher, FakeSampleFetcher
from rds_exporter.collectors.fleet_collector import FleetCollector
from rds_exporter.collectors.instance_collector import InstanceCollector
from rds_exporter.services.metric_registry import MetricRegistry
from rds_exporter.utils.errors import DetailsAuthError
from rds_exporter.utils.metrics import GaugeUpdateSet
from rds_exporter.utils.status import CollectionStatus


@pytest.mark.asyncio
async def test_one_failed_instance_is_isolated(make_instance, make_instance_collector, registry, logger):
    """Test N-1 instances are published and the failed one keeps its old values."""
    instances = [make_instance("db-a"), make_instance("db-b"), make_instance("db-c")]

    # Values from a previous successful cycle
    registry.set("write_iops", "db-b", 7.0)
    registry.set("rds_iops_limit", "db-b", 999.0)

    collector = FleetCollector(
        registry,
        logger,
        instance_collector=make_instance_collector(
            details_fetcher=FakeDetailsFetcher(errors={"db-b": DetailsAuthError("db-b", "InvalidClientTokenId")}),
            sample_fetcher=FakeSampleFetcher({"WriteIOPS": 120.0, "ReadIOPS": 80.0})
        )
    )

    await collector.run(instances)

    for name in ("db-a", "db-c"):
        assert registry.get_value("total_iops", name) == 200.0
        assert registry.get_value("rds_iops_limit", name) == 300.0

    assert registry.get_value("write_iops", "db-b") == 7.0
    assert registry.get_value("rds_iops_limit", "db-b") == 999.0
    assert registry.get_value("total_iops", "db-b") is None
    assert registry.registry.get_sample_value(
        "rds_exporter_collection_errors_total",
        {"instance": "db-b", "error_type": "auth_error"}
    ) == 1.0


@pytest.mark.asyncio
async def test_collect_returns_outcome_per_instance_in_order(make_instance, make_instance_collector, registry, logger):
    """Test collect reports one outcome per instance without publishing."""
    instances = [make_instance("db-a"), make_instance("db-b")]
    collector = FleetCollector(
        registry,
        logger,
        instance_collector=make_instance_collector(
            details_fetcher=FakeDetailsFetcher(errors={"db-a": RuntimeError("unexpected")})
        )
    )

    outcomes = await collector.collect(instances)

    assert [o.instance for o in outcomes] == ["db-a", "db-b"]
    assert outcomes[0].status == CollectionStatus.FAILED
    assert outcomes[0].error_type == "unexpected"
    assert outcomes[0].updates is None
    assert outcomes[1].is_success()
    assert outcomes[1].updates.instance == "db-b"
    assert registry.get_value("total_iops", "db-b") is None


@pytest.mark.asyncio
async def test_slow_instance_times_out_without_blocking_others(make_instance, make_instance_collector, registry, logger):
    """Test the per-instance deadline fails only the stalled instance."""
    slow = FakeDetailsFetcher(delay=5)
    fast_collector = make_instance_collector()
    slow_collector = make_instance_collector(details_fetcher=slow)

    class RoutingCollector:
        async def collect(self, inst, executor=None):
            target = slow_collector if inst.instance == "stalled" else fast_collector
            return await target.collect(inst)

    collector = FleetCollector(
        registry,
        logger,
        instance_collector=RoutingCollector(),
        timeout_seconds=0.1
    )

    outcomes = await collector.collect([make_instance("stalled"), make_instance("healthy")])

    assert outcomes[0].status == CollectionStatus.TIMED_OUT
    assert outcomes[0].error_type == "timeout"
    assert outcomes[1].is_success()


@pytest.mark.asyncio
async def test_max_concurrency_bounds_fan_out(make_instance, registry, logger):
    """Test max_concurrency limits instances collected at once."""
    in_flight = 0
    peak = 0

    class CountingCollector:
        async def collect(self, inst, executor=None):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return GaugeUpdateSet(instance=inst.instance, values={"total_iops": 1.0})

    collector = FleetCollector(registry, logger, instance_collector=CountingCollector(), max_concurrency=2)

    await collector.run([make_instance(f"db-{i}") for i in range(6)])

    assert peak == 2
    assert registry.get_value("total_iops", "db-5") == 1.0


@pytest.mark.asyncio
async def test_unbounded_fan_out_runs_all_instances_concurrently(make_instance, make_instance_collector, registry, logger):
    """Test instances are collected concurrently by default."""
    collector = FleetCollector(
        registry,
        logger,
        instance_collector=make_instance_collector(details_fetcher=FakeDetailsFetcher(delay=0.2))
    )

    loop = asyncio.get_running_loop()
    start = loop.time()
    await collector.run([make_instance(f"db-{i}") for i in range(5)])

    assert loop.time() - start < 0.8


@pytest.mark.asyncio
async def test_no_instances(registry, logger, make_instance_collector):
    """Test an empty fleet is a no-op."""
    collector = FleetCollector(registry, logger, instance_collector=make_instance_collector())

    assert await collector.collect([]) == []
    await collector.run([])


@pytest.mark.asyncio
async def test_disabled_gauges_are_not_published(make_instance, make_instance_collector, logger):
    """Test only enabled metrics reach the registry."""
    registry = MetricRegistry(["total_iops"], logger)
    collector = FleetCollector(
        registry,
        logger,
        instance_collector=make_instance_collector(
            sample_fetcher=FakeSampleFetcher({"WriteIOPS": 3.0, "ReadIOPS": 4.0})
        )
    )

    await collector.run([make_instance("db-a")])

    assert registry.get_value("total_iops", "db-a") == 7.0
    assert registry.get_value("write_iops", "db-a") is None
    assert b"rds_iops_limit" not in registry.render()


@pytest.mark.asyncio
async def test_blocking_clients_do_not_serialize_large_fleet(make_instance, registry, logger):
    """Test every blocking boto3 call of a cycle gets its own worker thread."""
    def slow_describe(DBInstanceIdentifier):
        time.sleep(0.3)
        return {'DBInstances': [{
            'DBInstanceIdentifier': DBInstanceIdentifier,
            'StorageType': 'gp2',
            'AllocatedStorage': 100,
        }]}

    def slow_metric_data(**kwargs):
        time.sleep(0.3)
        return {'MetricDataResults': []}

    with patch('rds_exporter.collectors.aws.boto3') as mock_boto3:
        client = MagicMock()
        client.describe_db_instances.side_effect = slow_describe
        client.get_metric_data.side_effect = slow_metric_data
        mock_boto3.Session.return_value.client.return_value = client

        collector = FleetCollector(registry, logger, instance_collector=InstanceCollector(logger))
        instances = [make_instance(f"db-{i}") for i in range(10)]

        start = time.monotonic()
        await collector.run(instances)
        elapsed = time.monotonic() - start

    # 40 calls of 0.3 s each; a pool smaller than 40 threads needs several rounds
    assert elapsed < 0.9
    assert client.describe_db_instances.call_count == 10
    assert client.get_metric_data.call_count == 30
    assert registry.get_value("rds_iops_limit", "db-9") == 300.0
    assert registry.get_value("total_iops", "db-0") == 0.0
