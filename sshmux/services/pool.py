"""Connection pool capacity enforcement.

The pool is the set of registered connections. There is no in-process pool
object: every invocation sees the same registry file, so capacity is enforced
against that file.

Eviction:
- Happens at start-up and after every successful establish
- Rows are ordered by registered_at; the oldest go first, ties keep file order
- Evicted masters are stopped and their sockets removed by the sweeper
"""

import logging

from sshmux.models import RegistryRow
from sshmux.services.registry import ConnectionRegistry
from sshmux.services.sweeper import StaleConnectionSweeper

logger = logging.getLogger(__name__)


class ConnectionPoolManager:
    """Keeps the number of registered connections under a maximum."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        sweeper: StaleConnectionSweeper,
        max_connections: int = 10,
    ) -> None:
        """Initialize pool manager.

        Args:
            registry: Shared connection registry
            sweeper: Used to stop evicted masters
            max_connections: Maximum registered connections (must be > 0)

        Raises:
            ValueError: If max_connections is not positive
        """
        if max_connections <= 0:
            raise ValueError(f"max_connections must be > 0, got {max_connections}")

        self.registry = registry
        self.sweeper = sweeper
        self.max_connections = max_connections

    async def enforce_capacity(self, max_connections: int | None = None) -> list[RegistryRow]:
        """Evict the oldest registered connections above the maximum.

        Args:
            max_connections: Override for the configured maximum

        Returns:
            Evicted rows, oldest first (empty if under capacity)

        Raises:
            ValueError: If the maximum is not positive
            RegistryIOError: If the registry cannot be rewritten
        """
        limit = self.max_connections if max_connections is None else max_connections
        if limit <= 0:
            raise ValueError(f"max_connections must be > 0, got {limit}")

        evicted = self.registry.evict_oldest(limit)
        if not evicted:
            return []

        logger.info(
            "Pool over capacity, evicting %d connection(s) (max=%d): %s",
            len(evicted),
            limit,
            ", ".join(row.target for row in evicted),
        )
        await self.sweeper.retire(evicted)
        return evicted
