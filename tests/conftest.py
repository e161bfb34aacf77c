"""Shared pytest configuration and fixtures."""

import asyncio
from typing import Dict, Optional

import pytest

from rds_exporter.collectors.instance_collector import InstanceCollector
from rds_exporter.config.models import RDSInstanceConfig
from rds_exporter.services.metric_registry import MetricRegistry
from rds_exporter.services.volume_limits import InstanceDetails, StorageClass
from rds_exporter.utils.logger import setup_logger


class FakeDetailsFetcher:
    """DetailsFetcher stand-in keyed by instance identifier."""

    def __init__(self, details: Optional[Dict[str, InstanceDetails]] = None,
                 errors: Optional[Dict[str, Exception]] = None, delay: float = 0):
        self.details = details or {}
        self.errors = errors or {}
        self.delay = delay
        self.calls = []

    async def fetch(self, instance, executor=None):
        self.calls.append(instance.instance)
        if self.delay:
            await asyncio.sleep(self.delay)
        if instance.instance in self.errors:
            raise self.errors[instance.instance]
        if instance.instance in self.details:
            return self.details[instance.instance]
        return InstanceDetails(instance.instance, StorageClass.GP2, 100)


class FakeSampleFetcher:
    """MetricSampleFetcher stand-in returning fixed samples per metric name."""

    def __init__(self, samples: Optional[Dict[str, Optional[float]]] = None,
                 errors: Optional[Dict[str, Exception]] = None):
        self.samples = samples or {}
        self.errors = errors or {}
        self.calls = []

    async def fetch(self, instance, namespace, metric_name, statistic, dimensions, executor=None):
        self.calls.append((instance.instance, namespace, metric_name, statistic, dict(dimensions)))
        await asyncio.sleep(0)
        if metric_name in self.errors:
            raise self.errors[metric_name]
        return self.samples.get(metric_name)


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def make_instance():
    """Factory for instance configurations."""
    def _make(identifier: str = "orders-db", region: str = "eu-west-1") -> RDSInstanceConfig:
        return RDSInstanceConfig(
            region=region,
            instance=identifier,
            aws_access_key=f"AKIA{identifier.upper().replace('-', '')}",
            aws_secret_key=f"secret-{identifier}"
        )
    return _make


@pytest.fixture
def instance(make_instance):
    """A single instance configuration."""
    return make_instance()


@pytest.fixture
def registry(logger):
    """Fresh registry with every gauge enabled."""
    return MetricRegistry(logger=logger)


@pytest.fixture
def make_instance_collector(logger):
    """Factory for InstanceCollectors wired to fake fetchers."""
    def _make(details_fetcher=None, sample_fetcher=None, **kwargs) -> InstanceCollector:
        return InstanceCollector(
            logger,
            details_fetcher=details_fetcher or FakeDetailsFetcher(),
            sample_fetcher=sample_fetcher or FakeSampleFetcher(),
            **kwargs
        )
    return _make
