"""Durable connection registry.

One JSON line per tracked connection in ``<control_dir>/connection_registry``.
Every invocation is a separate process, so the registry is the only shared
view of which connections exist and when they were registered.

Locking Strategy:
- Every read-modify-write holds an exclusive flock(2) on
  ``connection_registry.lock`` for its whole duration
- New content is written to a temp file and renamed over the registry, so
  lock-free readers always see a complete file
- Plain reads (lookups, listing) take no lock
"""

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from sshmux.exceptions import RegistryIOError
from sshmux.models import ConnectionInfo, ConnectionState, RegistryRow, SSHTarget
from sshmux.utils.fileio import atomic_write_text, ensure_dir, file_lock
from sshmux.utils.keys import connection_id

if TYPE_CHECKING:
    from sshmux.services.cache import DeviceTypeCache
    from sshmux.services.health import HealthChecker

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Table of connection_id -> (target, registered_at)."""

    def __init__(
        self,
        path: Path,
        lock_path: Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize registry.

        Args:
            path: Registry file
            lock_path: Advisory lock file (defaults to ``<path>.lock``)
            clock: Source of the current epoch time
        """
        self.path = path
        self.lock_path = lock_path or path.with_name(f"{path.name}.lock")
        self._clock = clock

    def _read_rows(self) -> list[RegistryRow]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise RegistryIOError(self.path, e) from e

        rows = []
        for line in text.splitlines():
            row = RegistryRow.from_line(line)
            if row is None:
                if line.strip():
                    logger.debug("Skipping malformed registry line: %r", line)
                continue
            rows.append(row)
        return rows

    def _write_rows(self, rows: list[RegistryRow]) -> None:
        content = "".join(f"{row.to_line()}\n" for row in rows)
        try:
            atomic_write_text(self.path, content)
        except OSError as e:
            raise RegistryIOError(self.path, e) from e

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with ExitStack() as stack:
            try:
                ensure_dir(self.path.parent)
                stack.enter_context(file_lock(self.lock_path))
            except OSError as e:
                raise RegistryIOError(self.lock_path, e) from e
            yield

    def rows(self) -> list[RegistryRow]:
        """All rows in file order."""
        return self._read_rows()

    def count(self) -> int:
        return len(self._read_rows())

    def register(self, target: SSHTarget | str) -> RegistryRow:
        """Record ``target`` as registered now, replacing any earlier row.

        Returns:
            The new row
        """
        target_str = str(target)
        row = RegistryRow(
            connection_id=connection_id(target_str),
            target=target_str,
            registered_at=int(self._clock()),
        )
        with self._locked():
            rows = [r for r in self._read_rows() if r.connection_id != row.connection_id]
            rows.append(row)
            self._write_rows(rows)

        logger.debug("Registered %s -> %s (rows=%d)", target_str, row.connection_id, len(rows))
        return row

    def unregister(self, target: SSHTarget | str) -> bool:
        """Remove the row for ``target``.

        Returns:
            True if a row was removed
        """
        conn_id = connection_id(str(target))
        if not self.path.exists():
            return False

        with self._locked():
            rows = self._read_rows()
            kept = [r for r in rows if r.connection_id != conn_id]
            if len(kept) == len(rows):
                return False
            self._write_rows(kept)

        logger.debug("Unregistered %s -> %s", target, conn_id)
        return True

    def lookup(self, conn_id: str) -> RegistryRow | None:
        for row in self._read_rows():
            if row.connection_id == conn_id:
                return row
        return None

    def lookup_target(self, conn_id: str) -> str | None:
        """Reverse lookup of a connection id."""
        row = self.lookup(conn_id)
        return row.target if row else None

    def lookup_registered_at(self, conn_id: str) -> int | None:
        row = self.lookup(conn_id)
        return row.registered_at if row else None

    def latest(self) -> RegistryRow | None:
        """Row with the greatest registered_at (first one wins on ties)."""
        rows = self._read_rows()
        if not rows:
            return None
        return max(rows, key=lambda r: r.registered_at)

    def retain(self, keep: Callable[[RegistryRow], bool]) -> list[RegistryRow]:
        """Rewrite the registry keeping only rows for which ``keep`` is true.

        Returns:
            The rows that were dropped
        """
        if not self.path.exists():
            return []

        with self._locked():
            rows = self._read_rows()
            kept = [r for r in rows if keep(r)]
            dropped = [r for r in rows if not keep(r)]
            if dropped:
                self._write_rows(kept)
        return dropped

    def evict_oldest(self, max_rows: int) -> list[RegistryRow]:
        """Drop the oldest rows until at most ``max_rows`` remain.

        Rows are ordered by registered_at; ties keep file order.

        Returns:
            The evicted rows, oldest first
        """
        if max_rows < 0:
            raise ValueError(f"max_rows must be >= 0, got {max_rows}")
        if not self.path.exists():
            return []

        with self._locked():
            rows = self._read_rows()
            overage = len(rows) - max_rows
            if overage <= 0:
                return []
            ordered = sorted(rows, key=lambda r: r.registered_at)
            evicted = ordered[:overage]
            evicted_ids = {r.connection_id for r in evicted}
            self._write_rows([r for r in rows if r.connection_id not in evicted_ids])
        return evicted

    async def list_detailed(
        self, health: "HealthChecker", cache: "DeviceTypeCache"
    ) -> list[ConnectionInfo]:
        """Describe every registered connection.

        Rows whose socket is gone are reported as disconnected but left in
        place; removing them is the sweeper's job.
        """
        infos = []
        for row in self._read_rows():
            if not health.store.exists(row.target):
                state = ConnectionState.DISCONNECTED
            elif await health.full_check(row.target):
                state = ConnectionState.CONNECTED
            else:
                state = ConnectionState.STALE

            infos.append(
                ConnectionInfo(
                    target=row.target,
                    state=state,
                    device_type=cache.get(row.target) or "unknown",
                    registered_at=datetime.fromtimestamp(row.registered_at),
                )
            )
        return infos
