"""Base collector abstract class and per-instance error isolation."""

from abc import ABC, abstractmethod
from typing import Any
import asyncio
import logging
from functools import wraps

from ..utils.errors import CollectionError
from ..utils.metrics import CollectionOutcome
from ..utils.status import CollectionStatus


class BaseCollector(ABC):
    """Abstract base class for all collectors."""

    def __init__(self, logger: logging.Logger):
        """
        Initialize base collector.

        Args:
            logger: Logger instance
        """
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    async def collect(self, *args, **kwargs) -> Any:
        """
        Collect metrics and return results.

        Raises:
            Exception: Any collection errors (will be caught by safe_collect)
        """
        pass


def safe_collect(func):
    """
    Decorator turning a per-instance collection into a CollectionOutcome.

    The wrapped coroutine takes the instance config as its first argument
    and returns a successful CollectionOutcome. Any exception it raises is
    logged and converted into a failed outcome, so one instance can never
    abort the others.

    Args:
        func: Collector method to wrap

    Returns:
        Wrapped coroutine that never raises (except on cancellation)
    """
    @wraps(func)
    async def wrapper(self, instance, *args, **kwargs) -> CollectionOutcome:
        try:
            return await func(self, instance, *args, **kwargs)
        except asyncio.TimeoutError:
            self.logger.error(
                f"Collection timed out for {instance.instance}",
                extra={"instance": instance.instance, "error_type": "timeout"}
            )
            return CollectionOutcome(
                instance=instance.instance,
                status=CollectionStatus.TIMED_OUT,
                error_type="timeout",
                error="Collection deadline exceeded"
            )
        except Exception as e:
            error_type = e.error_type if isinstance(e, CollectionError) else "unexpected"
            self.logger.error(
                f"Collection failed for {instance.instance}: {e}",
                exc_info=True,
                extra={"instance": instance.instance, "error_type": error_type}
            )
            return CollectionOutcome(
                instance=instance.instance,
                status=CollectionStatus.FAILED,
                error_type=error_type,
                error=str(e)
            )
    return wrapper
