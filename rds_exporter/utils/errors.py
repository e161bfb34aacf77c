"""Exception hierarchy for the exporter."""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigError(ExporterError):
    """Configuration could not be loaded or validated."""


class CollectionError(ExporterError):
    """A single instance's collection cycle failed."""

    error_type = "collection_error"


class DetailsError(CollectionError):
    """Describing the RDS instance failed."""

    error_type = "details_error"

    def __init__(self, instance: str, message: str):
        super().__init__(f"{instance}: {message}")
        self.instance = instance


class DetailsNotFoundError(DetailsError):
    """No RDS instance matches the configured identifier."""

    error_type = "not_found"


class DetailsAuthError(DetailsError):
    """The configured credentials were rejected."""

    error_type = "auth_error"


class DetailsRemoteError(DetailsError):
    """The RDS API call failed or returned an unusable record."""

    error_type = "remote_error"


class LimitComputationError(ExporterError):
    """Inputs required by a storage class' limit formula are missing or invalid."""
