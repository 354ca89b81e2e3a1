"""Shared fixtures: a fake ssh client that simulates control masters.

Masters are simulated with plain files in the control directory: a live
master is a socket path in ``FakeSSHClient.alive``; a stale one is a socket
file that exists but is not in that set.
"""

from pathlib import Path

import pytest

from sshmux.config import Config
from sshmux.dependencies import Dependencies
from sshmux.models import TIMEOUT_RETURNCODE, CommandResult, SSHTarget
from sshmux.services.ssh_client import SSHClient


class FakeStream:
    def __init__(self, data: bytes = b"") -> None:
        self.data = data

    async def read(self) -> bytes:
        return self.data


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self, returncode: int | None = None, stderr: bytes = b"") -> None:
        self.returncode = returncode
        self.stderr = FakeStream(stderr)
        self.terminated = False

    def terminate(self) -> None:
        self.terminated = True
        self.returncode = -15

    def kill(self) -> None:
        self.terminate()

    async def wait(self) -> int | None:
        return self.returncode


class FakeSSHClient(SSHClient):
    """SSHClient whose masters and remote commands are simulated in-process.

    master_mode:
        "ok"   - master comes up (socket created, probes succeed)
        "fail" - ssh exits 255 with an authentication error
        "hang" - ssh never exits and the socket never appears
    """

    def __init__(self) -> None:
        super().__init__(binary="ssh")
        self.alive: set[Path] = set()
        self.master_mode = "ok"
        self.exit_fails = False
        self.responses: dict[str, CommandResult] = {}
        self.slow_commands: set[str] = set()
        self.started: list[str] = []
        self.control_calls: list[tuple[str, str]] = []
        self.executed: list[tuple[str, str, float]] = []
        self.processes: list[FakeProcess] = []

    def open_master(self, socket: Path) -> None:
        """Simulate a master that is already running."""
        socket.parent.mkdir(parents=True, exist_ok=True)
        socket.touch()
        self.alive.add(socket)

    def kill_master(self, socket: Path) -> None:
        """Simulate a master that died and left its socket behind."""
        self.alive.discard(socket)

    async def start_master(self, socket: Path, target: SSHTarget) -> FakeProcess:  # type: ignore[override]
        self.started.append(str(target))
        if self.master_mode == "ok":
            self.open_master(socket)
            proc = FakeProcess(returncode=0)
        elif self.master_mode == "fail":
            proc = FakeProcess(returncode=255, stderr=b"Permission denied (publickey).\n")
        else:
            proc = FakeProcess(returncode=None)
        self.processes.append(proc)
        return proc

    async def control(
        self, socket: Path, target: SSHTarget, operation: str, timeout: float
    ) -> CommandResult:
        self.control_calls.append((operation, str(target)))
        running = socket in self.alive and socket.exists()

        if operation == "check":
            if running:
                return CommandResult(output="", error="Master running (pid=4242)\n", returncode=0)
            return CommandResult(output="", error="Control socket connect: refused\n", returncode=255)

        if operation == "exit":
            if running and not self.exit_fails:
                self.alive.discard(socket)
                socket.unlink()
                return CommandResult(output="", error="Exit request sent.\n", returncode=0)
            return CommandResult(output="", error="Control socket connect: refused\n", returncode=255)

        raise AssertionError(f"unexpected control operation {operation}")

    async def execute(
        self, socket: Path, target: SSHTarget, command: str, timeout: float
    ) -> CommandResult:
        self.executed.append((str(target), command, timeout))
        if command in self.slow_commands:
            return CommandResult(
                output="",
                error=f"Command timed out after {timeout}s",
                returncode=TIMEOUT_RETURNCODE,
            )
        return self.responses.get(command, CommandResult(output="", error="", returncode=127))


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config rooted in a temp dir with fast establish polling."""
    return Config.for_directories(
        tmp_path / "sockets",
        tmp_path / "cache",
        establish_attempts=20,
        establish_interval=0.01,
        check_timeout=1,
    )


@pytest.fixture
def fake_ssh() -> FakeSSHClient:
    return FakeSSHClient()


@pytest.fixture
def deps(config: Config, fake_ssh: FakeSSHClient) -> Dependencies:
    return Dependencies.from_config(config, client=fake_ssh)
