"""Data models for sshmux."""

from sshmux.models.cache import (
    CACHE_VERSION,
    CacheCounters,
    CacheEntry,
    CacheListing,
    CacheStats,
)
from sshmux.models.command import TIMEOUT_RETURNCODE, CommandResult
from sshmux.models.connection import (
    CloseOutcome,
    ConnectionInfo,
    ConnectionState,
    ConnectionStatus,
    EstablishOutcome,
    SweepReport,
)
from sshmux.models.registry import RegistryRow
from sshmux.models.target import SSHTarget

__all__ = [
    "CACHE_VERSION",
    "CacheCounters",
    "CacheEntry",
    "CacheListing",
    "CacheStats",
    "CloseOutcome",
    "CommandResult",
    "ConnectionInfo",
    "ConnectionState",
    "ConnectionStatus",
    "EstablishOutcome",
    "RegistryRow",
    "SSHTarget",
    "SweepReport",
    "TIMEOUT_RETURNCODE",
]
