"""Application configuration.

Wraps Settings and derives the on-disk layout shared by every invocation:

    <control_dir>/ssh-<connection_id>       control sockets
    <control_dir>/connection_registry       registry (JSON lines)
    <control_dir>/connection_registry.lock  advisory lock for the registry
    <cache_dir>/device-<connection_id>.cache
    <cache_dir>/last_connected_target
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from sshmux.config.settings import Settings

logger = logging.getLogger(__name__)

SOCKET_PREFIX = "ssh-"
REGISTRY_FILENAME = "connection_registry"
CACHE_FILE_PREFIX = "device-"
CACHE_FILE_SUFFIX = ".cache"
LAST_TARGET_FILENAME = "last_connected_target"


@dataclass
class Config:
    """Application configuration.

    Aggregates environment settings and the file layout derived from them.
    """

    settings: Settings = field(default_factory=Settings)

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Returns:
            Configured instance
        """
        settings = Settings.from_env()
        logger.debug(
            "Config loaded (control_dir=%s, cache_dir=%s)",
            settings.control_dir,
            settings.cache_dir,
        )
        return cls(settings=settings)

    @classmethod
    def for_directories(cls, control_dir: Path, cache_dir: Path, **overrides: object) -> "Config":
        """Create config rooted at explicit directories (tests, embedding).

        Args:
            control_dir: Directory for sockets and the registry
            cache_dir: Directory for cache files and the last-target pointer
            **overrides: Other Settings fields to override

        Returns:
            Configured instance
        """
        settings = Settings(control_dir=control_dir, cache_dir=cache_dir, **overrides)  # type: ignore[arg-type]
        return cls(settings=settings)

    # File layout
    @property
    def control_dir(self) -> Path:
        return self.settings.control_dir

    @property
    def cache_dir(self) -> Path:
        return self.settings.cache_dir

    @property
    def registry_file(self) -> Path:
        return self.control_dir / REGISTRY_FILENAME

    @property
    def registry_lock_file(self) -> Path:
        return self.control_dir / f"{REGISTRY_FILENAME}.lock"

    @property
    def last_target_file(self) -> Path:
        return self.cache_dir / LAST_TARGET_FILENAME

    # Delegate to settings for convenience
    @property
    def max_connections(self) -> int:
        """Maximum number of registered connections."""
        return self.settings.max_connections

    @property
    def cache_ttl(self) -> int:
        """Device-type cache TTL in seconds."""
        return self.settings.cache_ttl

    @property
    def command_timeout(self) -> int:
        """Default remote command timeout in seconds."""
        return self.settings.command_timeout

    @property
    def transport(self) -> str:
        """Transport type (stdio or http)."""
        return self.settings.transport

    @property
    def http_host(self) -> str:
        return self.settings.http_host

    @property
    def http_port(self) -> int:
        return self.settings.http_port
