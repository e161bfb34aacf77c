"""Pydantic configuration models for the exporter."""

from dataclasses import dataclass
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from typing import List, Optional

from ..utils.metrics import ALL_GAUGES


@dataclass(frozen=True)
class AwsCredentials:
    """Static access key pair used to sign one instance's API calls."""
    access_key: str
    secret_key: str


class RDSInstanceConfig(BaseModel):
    """One monitored RDS instance with its own region and credentials."""
    model_config = ConfigDict(frozen=True)

    region: str
    instance: str  # DBInstanceIdentifier, also used as the "instance" label
    aws_access_key: str
    aws_secret_key: SecretStr

    @field_validator('instance', 'region', 'aws_access_key')
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Reject empty strings (e.g. an unset ${ENV_VAR})."""
        if not v.strip():
            raise ValueError('must not be empty')
        return v

    @property
    def credentials(self) -> AwsCredentials:
        return AwsCredentials(
            access_key=self.aws_access_key,
            secret_key=self.aws_secret_key.get_secret_value()
        )


class InstanceListConfig(BaseModel):
    """Monitored instances grouped by service."""
    rds: List[RDSInstanceConfig] = Field(default_factory=list)

    @field_validator('rds')
    @classmethod
    def unique_identifiers(cls, v: List[RDSInstanceConfig]) -> List[RDSInstanceConfig]:
        """Instance identifiers are label values and must not collide."""
        seen = set()
        for item in v:
            if item.instance in seen:
                raise ValueError(f'Duplicate RDS instance identifier: {item.instance}')
            seen.add(item.instance)
        return v


class CollectionConfig(BaseModel):
    """Fan-out tuning for a collection cycle."""
    timeout_seconds: Optional[float] = Field(default=None, gt=0)  # None: no deadline
    max_concurrency: Optional[int] = Field(default=None, ge=1)  # None: unbounded


class ServerConfig(BaseModel):
    """HTTP listener configuration."""
    host: str = "0.0.0.0"
    port: int = Field(default=9187, ge=1, le=65535)


class ExporterConfig(BaseModel):
    """Root configuration model for the exporter."""
    enabled_metrics: List[str] = Field(default_factory=lambda: list(ALL_GAUGES))
    instances: InstanceListConfig = Field(default_factory=InstanceListConfig)
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @field_validator('enabled_metrics')
    @classmethod
    def known_metrics(cls, v: List[str]) -> List[str]:
        """Only exposed gauge names may be enabled."""
        unknown = [name for name in v if name not in ALL_GAUGES]
        if unknown:
            raise ValueError(
                f"Unknown metrics: {', '.join(unknown)}. "
                f"Expected any of: {', '.join(ALL_GAUGES)}"
            )
        return v
