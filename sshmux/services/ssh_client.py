"""Thin wrapper around the installed OpenSSH client.

Every interaction with a control master goes through an argument vector
built here and run with asyncio subprocesses (never through a shell):

- start a master:   ssh -o ControlMaster=yes -o ControlPath=... -N user@host
- probe a master:   ssh -o ControlPath=... -O check user@host
- stop a master:    ssh -o ControlPath=... -O exit user@host
- run a command:    ssh -o ControlPath=... user@host <command>
"""

import asyncio
import logging
from pathlib import Path

from sshmux.models import TIMEOUT_RETURNCODE, CommandResult, SSHTarget

logger = logging.getLogger(__name__)


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


class SSHClient:
    """Builds and runs ssh invocations against control sockets."""

    def __init__(
        self,
        binary: str = "ssh",
        connect_timeout: int = 30,
        control_persist: int = 600,
    ) -> None:
        """Initialize client.

        Args:
            binary: ssh executable name or path
            connect_timeout: ConnectTimeout for new masters and commands
            control_persist: ControlPersist seconds for new masters
        """
        self.binary = binary
        self.connect_timeout = connect_timeout
        self.control_persist = control_persist

    def master_args(self, socket: Path, target: SSHTarget) -> list[str]:
        """Arguments that start a persistent control master."""
        return [
            self.binary,
            "-o", "ControlMaster=yes",
            "-o", f"ControlPath={socket}",
            "-o", f"ControlPersist={self.control_persist}",
            "-o", f"ConnectTimeout={self.connect_timeout}",
            "-o", "StrictHostKeyChecking=no",
            "-o", "UserKnownHostsFile=/dev/null",
            "-o", "LogLevel=ERROR",
            "-p", str(target.port),
            "-N",
            "--",
            target.destination,
        ]

    def control_args(self, socket: Path, target: SSHTarget, operation: str) -> list[str]:
        """Arguments for a control-channel operation ("check" or "exit")."""
        return [
            self.binary,
            "-o", f"ControlPath={socket}",
            "-O", operation,
            "-p", str(target.port),
            "--",
            target.destination,
        ]

    def exec_args(self, socket: Path, target: SSHTarget, command: str) -> list[str]:
        """Arguments that run ``command`` through an existing master."""
        return [
            self.binary,
            "-o", f"ControlPath={socket}",
            "-o", f"ConnectTimeout={self.connect_timeout}",
            "-o", "LogLevel=ERROR",
            "-p", str(target.port),
            "--",
            target.destination,
            command,
        ]

    async def run(self, args: list[str], timeout: float) -> CommandResult:
        """Run an ssh invocation to completion.

        Args:
            args: Full argument vector
            timeout: Seconds before the local client is killed

        Returns:
            CommandResult; a killed invocation reports TIMEOUT_RETURNCODE.

        Raises:
            OSError: If the ssh binary cannot be started.
        """
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except TimeoutError:
            await self._kill(proc)
            logger.debug("ssh invocation killed after %ss: %s", timeout, " ".join(args[:-1]))
            return CommandResult(
                output="",
                error=f"Command timed out after {timeout}s",
                returncode=TIMEOUT_RETURNCODE,
            )
        except asyncio.CancelledError:
            await self._kill(proc)
            raise

        return CommandResult(
            output=_decode(stdout),
            error=_decode(stderr),
            returncode=proc.returncode if proc.returncode is not None else 0,
        )

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        """Kill a still-running child and reap it."""
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()

    async def control(
        self, socket: Path, target: SSHTarget, operation: str, timeout: float
    ) -> CommandResult:
        """Send a control-channel operation to the master behind ``socket``."""
        return await self.run(self.control_args(socket, target, operation), timeout)

    async def execute(
        self, socket: Path, target: SSHTarget, command: str, timeout: float
    ) -> CommandResult:
        """Run a remote command through the master behind ``socket``."""
        return await self.run(self.exec_args(socket, target, command), timeout)

    async def start_master(
        self, socket: Path, target: SSHTarget
    ) -> asyncio.subprocess.Process:
        """Spawn a control master in its own session.

        With ControlPersist the foreground client exits once the master has
        detached, so a zero exit status is normal. The caller decides
        readiness by probing the socket.
        """
        logger.debug("Spawning control master for %s:%d", target.destination, target.port)
        return await asyncio.create_subprocess_exec(
            *self.master_args(socket, target),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
