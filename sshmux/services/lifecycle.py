"""Control master lifecycle.

Establish, reuse, close, reconnect and run commands over one persistent
ControlMaster per target. All state is on disk (socket file + registry row),
so any number of independent invocations share the same masters.
"""

import asyncio
import logging

from sshmux.exceptions import (
    ConnectionFailed,
    ConnectionNotFound,
    ConnectionTimeout,
    ConnectionUnhealthy,
)
from sshmux.models import (
    CloseOutcome,
    CommandResult,
    ConnectionState,
    ConnectionStatus,
    EstablishOutcome,
    SSHTarget,
)
from sshmux.services.health import HealthChecker
from sshmux.services.pool import ConnectionPoolManager
from sshmux.services.registry import ConnectionRegistry
from sshmux.services.sockets import ControlSocketStore
from sshmux.services.ssh_client import SSHClient
from sshmux.utils.parser import parse_target

logger = logging.getLogger(__name__)

# Exit status reported when the ssh binary itself cannot be started
SPAWN_FAILED_RETURNCODE = 127


class ConnectionLifecycleManager:
    """Creates, probes and tears down control masters."""

    def __init__(
        self,
        store: ControlSocketStore,
        client: SSHClient,
        health: HealthChecker,
        registry: ConnectionRegistry,
        pool: ConnectionPoolManager | None = None,
        establish_attempts: int = 30,
        establish_interval: float = 1.0,
        command_timeout: float = 300,
    ) -> None:
        """Initialize lifecycle manager.

        Args:
            store: Control socket directory
            client: ssh wrapper
            health: Liveness checks
            registry: Connection registry
            pool: Capacity enforcement after establish (optional)
            establish_attempts: Readiness polls before giving up
            establish_interval: Seconds between readiness polls
            command_timeout: Default timeout for execute()
        """
        self.store = store
        self.client = client
        self.health = health
        self.registry = registry
        self.pool = pool
        self.establish_attempts = establish_attempts
        self.establish_interval = establish_interval
        self.command_timeout = command_timeout

    @property
    def establish_deadline(self) -> float:
        """Seconds establish() waits for a new master to become healthy."""
        return self.establish_attempts * self.establish_interval

    async def establish(self, target: str) -> EstablishOutcome:
        """Ensure a healthy master exists for ``target``.

        Returns:
            REUSED if a healthy master was already running, ESTABLISHED if a
            new one was started

        Raises:
            InvalidTargetFormat: If target cannot be parsed
            ConnectionFailed: If ssh exits with an error before the master is up
            ConnectionTimeout: If the master is not healthy before the deadline
        """
        parsed = parse_target(target)

        if await self.health.full_check(parsed):
            logger.debug("Reusing healthy connection to %s", parsed)
            return EstablishOutcome.REUSED

        self.store.ensure_dir()
        socket = self.store.path_for(parsed)
        if self.store.remove(parsed):
            logger.debug("Removed stale socket %s", socket.name)

        logger.info("Establishing connection to %s", parsed)
        try:
            proc = await self.client.start_master(socket, parsed)
        except OSError as e:
            raise ConnectionFailed(str(parsed), SPAWN_FAILED_RETURNCODE, str(e)) from e

        deadline = self.establish_deadline
        try:
            await asyncio.wait_for(self._wait_until_ready(parsed, proc), timeout=deadline)
        except TimeoutError:
            self._abandon(parsed, proc)
            logger.error("Timed out after %ss establishing %s", deadline, parsed)
            raise ConnectionTimeout(str(parsed), deadline) from None

        self.registry.register(parsed)
        logger.info("Connection established: %s", parsed)

        if self.pool is not None:
            await self.pool.enforce_capacity()
        return EstablishOutcome.ESTABLISHED

    async def _wait_until_ready(
        self, target: SSHTarget, proc: asyncio.subprocess.Process
    ) -> None:
        """Poll until the new socket passes full_check.

        Raises:
            ConnectionFailed: If the spawned client exits non-zero first
        """
        socket = self.store.path_for(target)
        while True:
            if socket.exists() and await self.health.full_check(target):
                return

            if proc.returncode is not None and proc.returncode != 0:
                stderr = b""
                if proc.stderr is not None:
                    stderr = await proc.stderr.read()
                logger.error("ssh exited with %d while connecting to %s", proc.returncode, target)
                raise ConnectionFailed(
                    str(target), proc.returncode, stderr.decode("utf-8", errors="replace")
                )

            await asyncio.sleep(self.establish_interval)

    def _abandon(self, target: SSHTarget, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            try:
                proc.terminate()
            except ProcessLookupError:
                pass
        self.store.remove(target)

    async def close(self, target: str) -> CloseOutcome:
        """Stop the master for ``target`` and forget it.

        Returns:
            GRACEFUL if ``ssh -O exit`` succeeded, FORCED if the socket had to
            be deleted by hand

        Raises:
            InvalidTargetFormat: If target cannot be parsed
            ConnectionNotFound: If no socket exists
        """
        parsed = parse_target(target)
        socket = self.store.path_for(parsed)
        if not socket.exists():
            raise ConnectionNotFound(str(parsed))

        logger.info("Closing connection to %s", parsed)
        try:
            result = await self.client.control(socket, parsed, "exit", self.health.check_timeout)
            graceful = result.ok
        except OSError as e:
            logger.warning("ssh -O exit could not run for %s: %s", parsed, e)
            graceful = False

        if graceful:
            outcome = CloseOutcome.GRACEFUL
        else:
            self.store.remove(parsed)
            outcome = CloseOutcome.FORCED
            logger.warning("Forced close of %s (socket removed)", parsed)

        self.registry.unregister(parsed)
        return outcome

    async def reconnect(self, target: str) -> EstablishOutcome:
        """Close (if open) then establish. Not atomic."""
        try:
            await self.close(target)
        except ConnectionNotFound:
            logger.debug("No existing connection to %s before reconnect", target)
        return await self.establish(target)

    async def execute(
        self, target: str, command: str, timeout: float | None = None
    ) -> CommandResult:
        """Run ``command`` on ``target`` through its master.

        Args:
            target: Target string
            command: Remote command line
            timeout: Seconds before the local client is killed (default
                command_timeout); a killed run reports exit code 124

        Returns:
            Remote stdout, stderr and exit status, untransformed

        Raises:
            InvalidTargetFormat: If target cannot be parsed
            ConnectionNotFound: If no socket exists
            ConnectionUnhealthy: If the master does not answer
        """
        parsed = parse_target(target)
        socket = self.store.path_for(parsed)
        if not socket.exists():
            raise ConnectionNotFound(str(parsed))
        if not await self.health.full_check(parsed):
            raise ConnectionUnhealthy(str(parsed))

        effective_timeout = self.command_timeout if timeout is None else timeout
        logger.debug("Executing on %s (timeout=%ss): %s", parsed, effective_timeout, command)
        return await self.client.execute(socket, parsed, command, effective_timeout)

    async def status(self, target: str) -> ConnectionStatus:
        """Report connected / stale / disconnected for ``target``.

        Raises:
            InvalidTargetFormat: If target cannot be parsed
        """
        parsed = parse_target(target)
        socket = self.store.path_for(parsed)
        connected_since = self.store.created_at(parsed)

        if connected_since is None:
            state = ConnectionState.DISCONNECTED
        elif await self.health.quick_check(parsed):
            state = ConnectionState.CONNECTED
        else:
            state = ConnectionState.STALE

        return ConnectionStatus(
            target=str(parsed),
            state=state,
            control_socket=socket,
            socket_exists=connected_since is not None,
            connected_since=connected_since,
        )
