"""Connection state data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path


class ConnectionState(str, Enum):
    """Observed state of a target's control master."""

    CONNECTED = "connected"
    STALE = "stale"  # socket present, master not answering
    DISCONNECTED = "disconnected"


class EstablishOutcome(str, Enum):
    """How ConnectionLifecycleManager.establish satisfied the request."""

    REUSED = "reused"
    ESTABLISHED = "established"


class CloseOutcome(str, Enum):
    """How ConnectionLifecycleManager.close tore the session down."""

    GRACEFUL = "graceful"
    FORCED = "forced"  # ssh -O exit failed, socket file removed by hand


@dataclass(frozen=True)
class ConnectionStatus:
    """Status of a single target."""

    target: str
    state: ConnectionState
    control_socket: Path
    socket_exists: bool
    connected_since: datetime | None = None

    @property
    def healthy(self) -> bool:
        return self.state is ConnectionState.CONNECTED


@dataclass(frozen=True)
class ConnectionInfo:
    """One row of the detailed registry listing."""

    target: str
    state: ConnectionState
    device_type: str
    registered_at: datetime | None

    @property
    def healthy(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def registered_at_display(self) -> str:
        if self.registered_at is None:
            return "unknown"
        return self.registered_at.strftime("%Y-%m-%d %H:%M:%S")


@dataclass
class SweepReport:
    """What a StaleConnectionSweeper pass removed."""

    sockets_removed: int = 0
    rows_removed: int = 0

    @property
    def total(self) -> int:
        return self.sockets_removed + self.rows_removed
