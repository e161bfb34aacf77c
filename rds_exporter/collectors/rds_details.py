"""RDS instance storage attributes via DescribeDBInstances."""

import asyncio
import logging
from concurrent.futures import Executor
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, PartialCredentialsError

from ..config.models import RDSInstanceConfig
from ..services.volume_limits import InstanceDetails, StorageClass
from ..utils.errors import DetailsAuthError, DetailsNotFoundError, DetailsRemoteError
from . import aws

NOT_FOUND_CODES = {'DBInstanceNotFound', 'DBInstanceNotFoundFault'}

AUTH_ERROR_CODES = {
    'AccessDenied',
    'AccessDeniedException',
    'AuthFailure',
    'ExpiredToken',
    'ExpiredTokenException',
    'InvalidClientTokenId',
    'SignatureDoesNotMatch',
    'UnrecognizedClientException',
}


class DetailsFetcher:
    """Fetches storage class, size and provisioned IOPS of one instance."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger.getChild(self.__class__.__name__)

    async def fetch(
        self,
        instance: RDSInstanceConfig,
        executor: Optional[Executor] = None
    ) -> InstanceDetails:
        """
        Describe an RDS instance without blocking the event loop.

        Args:
            instance: Instance configuration
            executor: Thread pool for the blocking call (default: the loop's)

        Returns:
            InstanceDetails: Storage attributes

        Raises:
            DetailsNotFoundError: No instance matches the identifier
            DetailsAuthError: Credentials rejected
            DetailsRemoteError: API call failed or record is unusable
        """
        # Run blocking boto3 calls in thread pool
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(executor, self._fetch, instance)

    def _fetch(self, instance: RDSInstanceConfig) -> InstanceDetails:
        identifier = instance.instance
        try:
            client = aws.create_client('rds', instance.credentials, instance.region)
            response = client.describe_db_instances(DBInstanceIdentifier=identifier)
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', '')
            error_message = e.response.get('Error', {}).get('Message', str(e))
            if error_code in NOT_FOUND_CODES:
                raise DetailsNotFoundError(identifier, error_message) from e
            if error_code in AUTH_ERROR_CODES:
                raise DetailsAuthError(identifier, f"{error_code}: {error_message}") from e
            raise DetailsRemoteError(identifier, f"{error_code}: {error_message}") from e
        except (NoCredentialsError, PartialCredentialsError) as e:
            raise DetailsAuthError(identifier, str(e)) from e
        except BotoCoreError as e:
            raise DetailsRemoteError(identifier, str(e)) from e

        db_instances = response.get('DBInstances') or []
        if not db_instances:
            raise DetailsNotFoundError(identifier, "No DB instances returned")

        if len(db_instances) > 1:
            # Identifier lookups should be unique; use the first record
            self.logger.warning(
                f"{len(db_instances)} DB instances returned for {identifier}, using the first",
                extra={"instance": identifier}
            )

        return self._parse_instance(identifier, db_instances[0])

    @staticmethod
    def _parse_instance(identifier: str, db_instance: dict) -> InstanceDetails:
        """
        Build InstanceDetails from a DescribeDBInstances record.

        Raises:
            DetailsRemoteError: If the record lacks storage attributes
        """
        allocated_storage = db_instance.get('AllocatedStorage')
        if allocated_storage is None:
            raise DetailsRemoteError(identifier, "DB instance record has no AllocatedStorage")

        return InstanceDetails(
            instance_identifier=db_instance.get('DBInstanceIdentifier', identifier),
            storage_class=StorageClass.from_storage_type(db_instance.get('StorageType')),
            storage_size_gb=int(allocated_storage),
            provisioned_iops=db_instance.get('Iops')
        )
