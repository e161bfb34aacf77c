"""Main application entry point for the RDS IOPS exporter."""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from .collectors.fleet_collector import FleetCollector
from .collectors.instance_collector import InstanceCollector
from .config.loader import ConfigLoader
from .config.models import ExporterConfig
from .config.settings import Settings
from .services.metric_registry import MetricRegistry
from .services.metrics_server import MetricsServer
from .utils.logger import setup_logger


class ExporterApp:
    """
    Main exporter application.

    Wires configuration, registry, collectors and the HTTP server, and
    handles graceful shutdown.
    """

    def __init__(
        self,
        config_path: str = "config.yaml",
        host: Optional[str] = None,
        port: Optional[int] = None,
        log_level: str = "INFO"
    ):
        """
        Initialize exporter application.

        Args:
            config_path: Path to configuration file
            host: Listen host, overrides the config file
            port: Listen port, overrides the config file
            log_level: Logging level
        """
        self.config_path = config_path
        self.logger = setup_logger("rds_exporter", log_level)

        self.config = self._load_config()
        self.host = host or self.config.server.host
        self.port = port or self.config.server.port
        self.instances = list(self.config.instances.rds)

        self.registry = MetricRegistry(self.config.enabled_metrics, self.logger)
        self.fleet_collector = FleetCollector(
            self.registry,
            self.logger,
            instance_collector=InstanceCollector(self.logger),
            timeout_seconds=self.config.collection.timeout_seconds,
            max_concurrency=self.config.collection.max_concurrency
        )
        self.server = MetricsServer(self.fleet_collector, self.registry, self.instances, self.logger)
        self._stop_event: Optional[asyncio.Event] = None

        self.logger.info(
            f"Exporter initialized with {len(self.instances)} RDS instance(s)",
            extra={"enabled_metrics": self.config.enabled_metrics}
        )

    def _load_config(self) -> ExporterConfig:
        """
        Load and validate configuration.

        Returns:
            ExporterConfig: Loaded configuration

        Raises:
            SystemExit: If configuration is missing or invalid
        """
        try:
            self.logger.info(f"Loading configuration from {self.config_path}")
            return ConfigLoader.load_from_file(self.config_path)

        except FileNotFoundError:
            self.logger.error(f"Configuration file not found: {self.config_path}")
            sys.exit(1)

        except Exception as e:
            self.logger.error(f"Failed to load configuration: {e}", exc_info=True)
            sys.exit(1)

    async def run_once(self) -> bytes:
        """
        Run one collection cycle.

        Returns:
            bytes: Prometheus text exposition after the cycle
        """
        await self.fleet_collector.run(self.instances)
        return self.registry.render()

    async def serve(self) -> None:
        """Serve /metrics until SIGINT or SIGTERM."""
        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, self._signal_handler, signum)

        await self.server.start(self.host, self.port)
        try:
            await self._stop_event.wait()
        finally:
            await self.server.stop()
            self.logger.info("Server stopped")

    def _signal_handler(self, signum: int) -> None:
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, initiating graceful shutdown...")
        if self._stop_event is not None:
            self._stop_event.set()


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    """
    Build the CLI parser with defaults taken from the environment.

    Raises:
        ValueError: If an environment default is malformed
    """
    parser = argparse.ArgumentParser(
        description='Prometheus exporter for AWS RDS storage IOPS limits and usage',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve /metrics on the default port (9187)
  rds-iops-exporter --config config.yaml

  # Collect once, print the exposition and exit
  rds-iops-exporter --run-once
        """
    )

    parser.add_argument(
        '--config',
        default=settings.CONFIG_PATH,
        help='Path to configuration file (default: config.yaml or EXPORTER_CONFIG env var)'
    )

    parser.add_argument(
        '--port',
        type=int,
        default=settings.PORT,
        help='Port to listen on (default: 9187 or EXPORTER_PORT env var)'
    )

    parser.add_argument(
        '--host',
        default=None,
        help='Host to listen on (default: 0.0.0.0)'
    )

    parser.add_argument(
        '--log-level',
        default=settings.LOG_LEVEL.upper(),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    parser.add_argument(
        '--run-once',
        action='store_true',
        help='Run one collection cycle, print the metrics and exit'
    )

    return parser


def main():
    """
    CLI entry point.

    Parses command-line arguments and starts the exporter.
    """
    try:
        # Malformed env defaults (e.g. EXPORTER_PORT) fail like a bad config
        args = build_parser(Settings()).parse_args()

        app = ExporterApp(
            config_path=args.config,
            host=args.host,
            port=args.port,
            log_level=args.log_level
        )

        if args.run_once:
            output = asyncio.run(app.run_once())
            sys.stdout.write(output.decode('utf-8'))
            sys.exit(0)

        asyncio.run(app.serve())

    except Exception as e:
        logging.error(f"Exporter startup failed: {e}", exc_info=True)
        sys.exit(1)
