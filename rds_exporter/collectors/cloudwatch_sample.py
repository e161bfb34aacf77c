"""Single aggregated CloudWatch datapoint for an instance."""

import asyncio
import logging
from concurrent.futures import Executor
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..config.models import RDSInstanceConfig
from . import aws

SAMPLE_WINDOW = timedelta(minutes=1)
SAMPLE_PERIOD_SECONDS = 300


class MetricSampleFetcher:
    """
    Fetches one aggregated CloudWatch datapoint.

    A missing datapoint and a failed API call both yield None: a missing
    sample must never fail an instance's collection.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger.getChild(self.__class__.__name__)

    async def fetch(
        self,
        instance: RDSInstanceConfig,
        namespace: str,
        metric_name: str,
        statistic: str,
        dimensions: Dict[str, str],
        executor: Optional[Executor] = None
    ) -> Optional[float]:
        """
        Fetch the latest aggregated value without blocking the event loop.

        Args:
            instance: Instance configuration (credentials and region)
            namespace: CloudWatch namespace (e.g. 'AWS/RDS')
            metric_name: Metric name (e.g. 'WriteIOPS')
            statistic: Statistic (e.g. 'Average')
            dimensions: Dimension name -> value
            executor: Thread pool for the blocking call (default: the loop's)

        Returns:
            Optional[float]: Datapoint value, or None if unavailable
        """
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            executor, self._fetch, instance, namespace, metric_name, statistic, dimensions
        )

    def _fetch(
        self,
        instance: RDSInstanceConfig,
        namespace: str,
        metric_name: str,
        statistic: str,
        dimensions: Dict[str, str]
    ) -> Optional[float]:
        end_time = datetime.now(timezone.utc)
        start_time = end_time - SAMPLE_WINDOW

        try:
            client = aws.create_client('cloudwatch', instance.credentials, instance.region)
            response = client.get_metric_data(
                MetricDataQueries=[{
                    'Id': 'sample',
                    'MetricStat': {
                        'Metric': {
                            'Namespace': namespace,
                            'MetricName': metric_name,
                            'Dimensions': [
                                {'Name': k, 'Value': v}
                                for k, v in dimensions.items()
                            ]
                        },
                        'Period': SAMPLE_PERIOD_SECONDS,
                        'Stat': statistic
                    },
                    'ReturnData': True
                }],
                StartTime=start_time,
                EndTime=end_time,
                MaxDatapoints=1
            )
        except (ClientError, BotoCoreError) as e:
            self.logger.warning(
                f"Failed to get {namespace}/{metric_name} for {instance.instance}, treating as absent: {e}",
                extra={"instance": instance.instance, "metric": metric_name}
            )
            return None

        results = response.get('MetricDataResults') or []
        values = []
        if results:
            values = results[0].get('Values') or []
        if not values:
            self.logger.debug(
                f"No datapoint for {namespace}/{metric_name} ({instance.instance})",
                extra={"instance": instance.instance, "metric": metric_name}
            )
            return None

        return float(values[0])
