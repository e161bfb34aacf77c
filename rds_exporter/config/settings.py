"""Environment settings."""

import os
from typing import Optional


class Settings:
    """Application settings from environment variables."""

    @staticmethod
    def get(key: str, default: Optional[str] = None) -> str:
        """
        Get environment variable value.

        Args:
            key: Environment variable name
            default: Default value if not set

        Returns:
            str: Environment variable value, or "" when unset without a default
        """
        return os.getenv(key, default) or ""

    @staticmethod
    def get_int(key: str) -> Optional[int]:
        """
        Get an integer environment variable, or None when unset.

        Raises:
            ValueError: If the variable is set but not an integer
        """
        value = os.getenv(key)
        if not value:
            return None
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Environment variable {key} must be an integer, got {value!r}")

    # Convenience accessors
    CONFIG_PATH = property(lambda self: Settings.get("EXPORTER_CONFIG", "config.yaml"))
    PORT = property(lambda self: Settings.get_int("EXPORTER_PORT"))
    LOG_LEVEL = property(lambda self: Settings.get("LOG_LEVEL", "INFO"))
