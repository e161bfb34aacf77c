"""HTTP endpoint that runs a collection cycle per scrape."""

import logging
from typing import Optional, Sequence

from aiohttp import web

from ..collectors.fleet_collector import FleetCollector
from ..config.models import RDSInstanceConfig
from .metric_registry import MetricRegistry

METRICS_PATH = "/metrics"


class MetricsServer:
    """Async server answering every request on /metrics with a fresh snapshot.

    The response always renders whatever the registry holds after the
    cycle, so a partial fleet failure never turns into a 5xx.
    """

    def __init__(
        self,
        fleet_collector: FleetCollector,
        registry: MetricRegistry,
        instances: Sequence[RDSInstanceConfig],
        logger: logging.Logger
    ):
        """Initialize the metrics server.

        Args:
            fleet_collector: Collector run once per scrape
            registry: Registry rendered into the response
            instances: Configured instances
            logger: Logger instance
        """
        self.fleet_collector = fleet_collector
        self.registry = registry
        self.instances = list(instances)
        self.logger = logger.getChild(self.__class__.__name__)
        self.app = web.Application()
        self.app.add_routes([web.route("*", METRICS_PATH, self.metrics_handler)])
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

    async def metrics_handler(self, request: web.Request) -> web.Response:
        """Run one fleet collection cycle, then serialize the registry.

        Args:
            request: The request to handle.

        Returns:
            A 200 response with the Prometheus text exposition.
        """
        try:
            await self.fleet_collector.run(self.instances)
        except Exception as e:
            self.logger.error(f"Collection cycle failed: {e}", exc_info=True)

        return web.Response(
            body=self.registry.render(),
            headers={"Content-Type": self.registry.content_type}
        )

    async def start(self, host: str = "0.0.0.0", port: int = 9187) -> None:
        """Start the aiohttp site.

        Args:
            host: The host to listen on.
            port: The port to listen on.
        """
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, host=host, port=port)
        await self.site.start()
        self.logger.info(f"Listening on http://{host}:{port}{METRICS_PATH}")

    async def stop(self) -> None:
        """Stops the server gracefully."""
        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()
