"""boto3 client construction from per-instance static credentials."""

import boto3
from botocore.config import Config

from ..config.models import AwsCredentials

# Transport-level timeouts; the collection pipeline itself imposes no deadline
# unless collection.timeout_seconds is configured.
CLIENT_CONFIG = Config(
    connect_timeout=5,
    read_timeout=10,
    retries={'max_attempts': 2, 'mode': 'standard'}
)


def create_client(service_name: str, credentials: AwsCredentials, region: str):
    """
    Create a boto3 client signed with the given static credentials.

    A new Session is built per call: sessions are not thread-safe and every
    remote call runs in its own executor thread.

    Args:
        service_name: boto3 service name ('rds', 'cloudwatch')
        credentials: Static access key pair
        region: AWS region name

    Returns:
        boto3 client for the service
    """
    session = boto3.Session(
        aws_access_key_id=credentials.access_key,
        aws_secret_access_key=credentials.secret_key,
        region_name=region
    )
    return session.client(service_name, config=CLIENT_CONFIG)
