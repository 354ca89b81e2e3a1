"""Stale control socket and registry cleanup.

A sweep reconciles the socket directory with the registry:

- registered socket whose master fails quick_check: socket and row removed
- orphan socket (no row): removed only when no process holds it open
- row whose socket no longer exists: row removed

Sweeps are best effort and never raise; they run in the background at
start-up, after pool eviction and from the cleanup tool.
"""

import asyncio
import logging
from collections.abc import Iterable

from sshmux.exceptions import InvalidTargetFormat
from sshmux.models import RegistryRow, SweepReport
from sshmux.services.health import HealthChecker
from sshmux.services.registry import ConnectionRegistry
from sshmux.services.sockets import ControlSocketStore
from sshmux.services.ssh_client import SSHClient
from sshmux.utils.parser import parse_target

logger = logging.getLogger(__name__)


class StaleConnectionSweeper:
    """Removes dead sockets and dangling registry rows."""

    def __init__(
        self,
        store: ControlSocketStore,
        registry: ConnectionRegistry,
        health: HealthChecker,
        client: SSHClient,
    ) -> None:
        self.store = store
        self.registry = registry
        self.health = health
        self.client = client

    async def sweep(self) -> SweepReport:
        """Run one cleanup pass.

        Returns:
            Counts of removed sockets and rows (partial if the pass aborted)
        """
        report = SweepReport()
        try:
            await self._sweep_sockets(report)
            dropped = self.registry.retain(
                lambda row: self.store.exists_id(row.connection_id)
            )
            report.rows_removed += len(dropped)
        except Exception as e:
            logger.warning("Sweep aborted after %d removal(s): %s", report.total, e)
            return report

        if report.total:
            logger.info(
                "Sweep removed %d socket(s) and %d registry row(s)",
                report.sockets_removed,
                report.rows_removed,
            )
        else:
            logger.debug("Sweep found nothing to remove")
        return report

    async def _sweep_sockets(self, report: SweepReport) -> None:
        for conn_id in self.store.list_ids():
            target = self.registry.lookup_target(conn_id)

            if target is None:
                path = self.store.path_for_id(conn_id)
                if await asyncio.to_thread(self.store.in_use, path):
                    logger.debug("Keeping orphan socket %s (in use)", path.name)
                    continue
                if self.store.remove_id(conn_id):
                    report.sockets_removed += 1
                    logger.debug("Removed orphan socket %s", path.name)
                continue

            if await self.health.quick_check(target):
                continue

            if self.store.remove_id(conn_id):
                report.sockets_removed += 1
            if self.registry.unregister(target):
                report.rows_removed += 1
            logger.info("Removed stale connection to %s", target)

    async def retire(self, rows: Iterable[RegistryRow]) -> None:
        """Stop the masters behind evicted rows, then sweep.

        The rows are expected to be gone from the registry already. Each
        master gets ``ssh -O exit``; its socket is removed whether or not
        that succeeds.
        """
        rows = list(rows)
        for row in rows:
            socket = self.store.path_for_id(row.connection_id)
            if not socket.exists():
                continue

            try:
                parsed = parse_target(row.target)
            except InvalidTargetFormat:
                parsed = None

            if parsed is not None:
                try:
                    result = await self.client.control(
                        socket, parsed, "exit", self.health.check_timeout
                    )
                    if result.returncode != 0:
                        logger.debug(
                            "ssh -O exit for %s failed (exit %d)", row.target, result.returncode
                        )
                except OSError as e:
                    logger.warning("Could not stop master for %s: %s", row.target, e)

            self.store.remove_id(row.connection_id)
            logger.info("Retired connection to %s", row.target)

        if rows:
            await self.sweep()
