import logging
from dataclasses import dataclass, replace

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

# Database alias used when no connection is passed explicitly
settings.PARTITIONMANAGER_DEFAULT_DATABASE = getattr(
    settings, "PARTITIONMANAGER_DEFAULT_DATABASE", "default"
)

# Default behaviours, each can be overridden on a builder
settings.PARTITIONMANAGER_ENABLE_PARTITION_PRUNING = getattr(
    settings, "PARTITIONMANAGER_ENABLE_PARTITION_PRUNING", True
)
settings.PARTITIONMANAGER_DETACH_CONCURRENTLY = getattr(
    settings, "PARTITIONMANAGER_DETACH_CONCURRENTLY", False
)
settings.PARTITIONMANAGER_ANALYZE_AFTER_CREATE = getattr(
    settings, "PARTITIONMANAGER_ANALYZE_AFTER_CREATE", True
)
settings.PARTITIONMANAGER_VACUUM_AFTER_DROP = getattr(
    settings, "PARTITIONMANAGER_VACUUM_AFTER_DROP", True
)

# Naming
settings.PARTITIONMANAGER_NAME_PREFIX = getattr(
    settings, "PARTITIONMANAGER_NAME_PREFIX", ""
)
settings.PARTITIONMANAGER_NAME_SUFFIX = getattr(
    settings, "PARTITIONMANAGER_NAME_SUFFIX", ""
)
settings.PARTITIONMANAGER_NAME_SEPARATOR = getattr(
    settings, "PARTITIONMANAGER_NAME_SEPARATOR", "_"
)
settings.PARTITIONMANAGER_DATE_FORMAT = getattr(
    settings, "PARTITIONMANAGER_DATE_FORMAT", "%Y_%m"
)
settings.PARTITIONMANAGER_DAY_FORMAT = getattr(
    settings, "PARTITIONMANAGER_DAY_FORMAT", "%Y_%m_%d"
)

# Logging
settings.PARTITIONMANAGER_LOGGING = getattr(settings, "PARTITIONMANAGER_LOGGING", True)
settings.PARTITIONMANAGER_LOGGER = getattr(
    settings, "PARTITIONMANAGER_LOGGER", "partitionmanager"
)

_BOOLEAN_SETTINGS = (
    "PARTITIONMANAGER_ENABLE_PARTITION_PRUNING",
    "PARTITIONMANAGER_DETACH_CONCURRENTLY",
    "PARTITIONMANAGER_ANALYZE_AFTER_CREATE",
    "PARTITIONMANAGER_VACUUM_AFTER_DROP",
    "PARTITIONMANAGER_LOGGING",
)


@dataclass(frozen=True)
class PartitionConfig:
    """
    Naming conventions and default behaviours for partition operations.

    A config is a plain value: builders, generators and maintenance helpers receive one in their
    constructor and never consult Django settings themselves. Use :py:meth:`from_settings` to build
    one from the ``PARTITIONMANAGER_*`` settings.
    """

    database: str = "default"
    enable_partition_pruning: bool = True
    detach_concurrently: bool = False
    analyze_after_create: bool = True
    vacuum_after_drop: bool = True
    prefix: str = ""
    suffix: str = ""
    separator: str = "_"
    date_format: str = "%Y_%m"
    day_format: str = "%Y_%m_%d"
    logging_enabled: bool = True
    logger_name: str = "partitionmanager"

    @classmethod
    def from_settings(cls) -> "PartitionConfig":
        """
        Build a config from the current Django settings.

        :raises ImproperlyConfigured: If a boolean setting is not a boolean.
        :rtype: PartitionConfig
        """
        for name in _BOOLEAN_SETTINGS:
            if not isinstance(getattr(settings, name), bool):
                raise ImproperlyConfigured(f"Setting '{name}' must be a boolean")

        return cls(
            database=settings.PARTITIONMANAGER_DEFAULT_DATABASE,
            enable_partition_pruning=settings.PARTITIONMANAGER_ENABLE_PARTITION_PRUNING,
            detach_concurrently=settings.PARTITIONMANAGER_DETACH_CONCURRENTLY,
            analyze_after_create=settings.PARTITIONMANAGER_ANALYZE_AFTER_CREATE,
            vacuum_after_drop=settings.PARTITIONMANAGER_VACUUM_AFTER_DROP,
            prefix=settings.PARTITIONMANAGER_NAME_PREFIX,
            suffix=settings.PARTITIONMANAGER_NAME_SUFFIX,
            separator=settings.PARTITIONMANAGER_NAME_SEPARATOR,
            date_format=settings.PARTITIONMANAGER_DATE_FORMAT,
            day_format=settings.PARTITIONMANAGER_DAY_FORMAT,
            logging_enabled=settings.PARTITIONMANAGER_LOGGING,
            logger_name=settings.PARTITIONMANAGER_LOGGER,
        )

    def replace(self, **changes) -> "PartitionConfig":
        return replace(self, **changes)

    def get_logger(self) -> logging.Logger:
        """Returns the python logger for partition operations."""
        logger = logging.getLogger(self.logger_name)
        logger.disabled = not self.logging_enabled
        return logger
