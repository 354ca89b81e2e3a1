"""Services for sshmux."""

from sshmux.services.background import BackgroundTasks
from sshmux.services.cache import DeviceTypeCache
from sshmux.services.detection import DetectionResult, DeviceDetector
from sshmux.services.health import HealthChecker
from sshmux.services.last_target import LastTargetTracker
from sshmux.services.lifecycle import ConnectionLifecycleManager
from sshmux.services.pool import ConnectionPoolManager
from sshmux.services.registry import ConnectionRegistry
from sshmux.services.sockets import ControlSocketStore
from sshmux.services.ssh_client import SSHClient
from sshmux.services.sweeper import StaleConnectionSweeper

__all__ = [
    "BackgroundTasks",
    "ConnectionLifecycleManager",
    "ConnectionPoolManager",
    "ConnectionRegistry",
    "ControlSocketStore",
    "DetectionResult",
    "DeviceDetector",
    "DeviceTypeCache",
    "HealthChecker",
    "LastTargetTracker",
    "SSHClient",
    "StaleConnectionSweeper",
]
