"""Control socket directory.

One ``ssh-<connection_id>`` entry per target. A socket file only says that a
master once existed; liveness is always decided by HealthChecker.
"""

import logging
import time
from datetime import datetime
from pathlib import Path

import psutil

from sshmux.config.main import SOCKET_PREFIX
from sshmux.models import SSHTarget
from sshmux.utils.fileio import ensure_dir, unlink_quietly
from sshmux.utils.keys import connection_id

logger = logging.getLogger(__name__)


class ControlSocketStore:
    """Maps targets to control socket paths inside one directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def ensure_dir(self) -> Path:
        return ensure_dir(self.directory)

    def path_for_id(self, conn_id: str) -> Path:
        return self.directory / f"{SOCKET_PREFIX}{conn_id}"

    def path_for(self, target: SSHTarget | str) -> Path:
        """Socket path for a target, keyed on its exact string."""
        return self.path_for_id(connection_id(str(target)))

    def exists(self, target: SSHTarget | str) -> bool:
        return self.path_for(target).exists()

    def exists_id(self, conn_id: str) -> bool:
        return self.path_for_id(conn_id).exists()

    def age(self, target: SSHTarget | str) -> float | None:
        """Seconds since the socket was last modified, or None if absent."""
        try:
            mtime = self.path_for(target).stat().st_mtime
        except FileNotFoundError:
            return None
        return max(0.0, time.time() - mtime)

    def created_at(self, target: SSHTarget | str) -> datetime | None:
        try:
            return datetime.fromtimestamp(self.path_for(target).stat().st_mtime)
        except FileNotFoundError:
            return None

    def remove(self, target: SSHTarget | str) -> bool:
        """Delete the socket file; False if it was already gone."""
        return unlink_quietly(self.path_for(target))

    def remove_id(self, conn_id: str) -> bool:
        return unlink_quietly(self.path_for_id(conn_id))

    def list_ids(self) -> list[str]:
        """Connection ids of every socket currently in the directory."""
        try:
            entries = list(self.directory.iterdir())
        except FileNotFoundError:
            return []
        return sorted(
            entry.name[len(SOCKET_PREFIX):]
            for entry in entries
            if entry.name.startswith(SOCKET_PREFIX) and not entry.is_dir()
        )

    @staticmethod
    def in_use(path: Path) -> bool:
        """True if some process has the unix socket at ``path`` open.

        When the process table cannot be inspected the socket is reported as
        in use so callers never delete a live master's socket.
        """
        try:
            connections = psutil.net_connections(kind="unix")
        except (psutil.Error, OSError) as e:
            logger.debug("Cannot inspect unix sockets (%s), assuming %s in use", e, path)
            return True

        wanted = str(path)
        return any(conn.laddr == wanted or conn.raddr == wanted for conn in connections)
