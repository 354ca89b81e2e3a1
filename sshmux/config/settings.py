"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


def _default_control_dir() -> Path:
    return Path.home() / ".ssh" / "sshmux-sockets"


def _default_cache_dir() -> Path:
    return Path.home() / ".cache" / "sshmux" / "devices"


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Filesystem layout
    control_dir: Path = field(default_factory=_default_control_dir)
    cache_dir: Path = field(default_factory=_default_cache_dir)

    # ssh client
    ssh_binary: str = field(default="ssh")
    check_timeout: int = field(default=10)
    connect_timeout: int = field(default=30)
    control_persist: int = field(default=600)
    socket_fresh_seconds: int = field(default=3600)
    establish_attempts: int = field(default=30)
    establish_interval: float = field(default=1.0)
    command_timeout: int = field(default=300)

    # Connection pool
    max_connections: int = field(default=10)

    # Device-type cache
    cache_ttl: int = field(default=86400)  # 24h
    cache_max_entries: int = field(default=1000)
    cache_evict_margin: int = field(default=10)
    cache_warm_limit: int = field(default=20)

    # Transport
    transport: str = field(default="stdio")
    http_host: str = field(default="127.0.0.1")
    http_port: int = field(default=8000)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)
    include_traceback: bool = field(default=False)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        Supports SSHMUX_* (preferred) and the legacy SSH_* / SH_AI_* names.
        SSHMUX_* takes precedence if both are set.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            control_dir=cls._get_path("SSHMUX_CONTROL_DIR", "SSH_CONTROL_DIR", _default_control_dir()),
            cache_dir=cls._get_path("SSHMUX_CACHE_DIR", "SH_AI_CACHE_DIR", _default_cache_dir()),
            ssh_binary=os.getenv("SSHMUX_SSH_BINARY", "ssh"),
            check_timeout=cls._get_int("SSHMUX_CHECK_TIMEOUT", "SSH_TIMEOUT", 10),
            connect_timeout=cls._get_int("SSHMUX_CONNECT_TIMEOUT", "SSH_CONNECT_TIMEOUT", 30),
            control_persist=cls._get_int("SSHMUX_CONTROL_PERSIST", "SSH_CONTROL_PERSIST", 600),
            socket_fresh_seconds=cls._get_int("SSHMUX_SOCKET_FRESH_SECONDS", "", 3600),
            establish_attempts=cls._get_int("SSHMUX_ESTABLISH_ATTEMPTS", "", 30),
            establish_interval=cls._get_float("SSHMUX_ESTABLISH_INTERVAL", 1.0),
            command_timeout=cls._get_int("SSHMUX_COMMAND_TIMEOUT", "", 300),
            max_connections=cls._get_int("SSHMUX_MAX_CONNECTIONS", "SSH_MAX_CONNECTIONS", 10),
            cache_ttl=cls._get_int("SSHMUX_CACHE_TTL", "SH_AI_CACHE_EXPIRY", 86400),
            cache_max_entries=cls._get_int("SSHMUX_CACHE_MAX_ENTRIES", "SH_AI_CACHE_MAX_SIZE", 1000),
            cache_evict_margin=cls._get_int("SSHMUX_CACHE_EVICT_MARGIN", "", 10),
            cache_warm_limit=cls._get_int("SSHMUX_CACHE_WARM_LIMIT", "", 20),
            transport=cls._get_transport(),
            http_host=os.getenv("SSHMUX_HTTP_HOST", "127.0.0.1"),
            http_port=cls._get_int("SSHMUX_HTTP_PORT", "", 8000),
            log_level=os.getenv("SSHMUX_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("SSHMUX_LOG_COLORS", True),
            include_traceback=cls._get_bool("SSHMUX_INCLUDE_TRACEBACK", False),
        )

    @staticmethod
    def _get_int(key: str, legacy_key: str, default: int) -> int:
        """Get integer from environment with legacy fallback.

        Args:
            key: Primary environment variable key
            legacy_key: Legacy variable name (empty string to skip)
            default: Default value if not set

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None and legacy_key:
            value = os.getenv(legacy_key)

        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float for %s: %s, using default %s", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_path(key: str, legacy_key: str, default: Path) -> Path:
        """Get a directory path, expanding ~ and falling back to legacy_key."""
        value = os.getenv(key) or (os.getenv(legacy_key) if legacy_key else None)
        if not value:
            return default
        return Path(value).expanduser()

    @staticmethod
    def _get_transport() -> str:
        """Get transport from environment with validation.

        Returns:
            Transport type ("stdio" or "http")
        """
        transport = os.getenv("SSHMUX_TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "stdio"
