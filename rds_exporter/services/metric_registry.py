"""Prometheus registry holding the exported gauges."""

from typing import Dict, Iterable, Optional
import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from ..utils.metrics import ALL_GAUGES, GAUGE_DESCRIPTIONS, GaugeUpdateSet


class MetricRegistry:
    """
    Named gauges keyed by the "instance" label.

    Owns its own CollectorRegistry so several exporters (or tests) can
    coexist in one process. Gauges are never removed: an instance whose
    collection fails keeps the values of its last successful cycle.
    """

    def __init__(
        self,
        enabled_metrics: Optional[Iterable[str]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize registry and register enabled gauges.

        Args:
            enabled_metrics: Gauge names to publish (default: all)
            logger: Logger instance
        """
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)
        self.registry = CollectorRegistry()

        enabled = set(ALL_GAUGES if enabled_metrics is None else enabled_metrics)
        self.gauges: Dict[str, Gauge] = {
            name: Gauge(name, GAUGE_DESCRIPTIONS[name], ['instance'], registry=self.registry)
            for name in ALL_GAUGES
            if name in enabled
        }

        # Exporter self-metrics
        self.collection_errors_total = Counter(
            'rds_exporter_collection_errors_total',
            'Total number of failed instance collections',
            ['instance', 'error_type'],
            registry=self.registry
        )
        self.collection_duration_seconds = Histogram(
            'rds_exporter_collection_duration_seconds',
            'Duration of a fleet collection cycle in seconds',
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
            registry=self.registry
        )

    def set(self, gauge_name: str, instance: str, value: float) -> None:
        """Set one series; gauges that are not enabled are ignored."""
        gauge = self.gauges.get(gauge_name)
        if gauge is not None:
            gauge.labels(instance=instance).set(value)

    def apply(self, updates: GaugeUpdateSet) -> None:
        """
        Write every value of an update set.

        Args:
            updates: Gauge values computed for one instance
        """
        for gauge_name, value in updates.values.items():
            self.set(gauge_name, updates.instance, value)
        self.logger.debug(
            f"Applied {len(updates.values)} gauge(s) for {updates.instance}",
            extra={"instance": updates.instance}
        )

    def record_failure(self, instance: str, error_type: str) -> None:
        self.collection_errors_total.labels(instance=instance, error_type=error_type).inc()

    def observe_duration(self, seconds: float) -> None:
        self.collection_duration_seconds.observe(seconds)

    def get_value(self, gauge_name: str, instance: str) -> Optional[float]:
        """
        Read the current value of one series.

        Returns:
            Optional[float]: Value, or None if the series was never written
        """
        return self.registry.get_sample_value(gauge_name, {'instance': instance})

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def render(self) -> bytes:
        """Serialize all metrics to Prometheus text exposition format."""
        return generate_latest(self.registry)
