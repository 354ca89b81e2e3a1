"""Command execution data models."""

from dataclasses import dataclass

# Exit status reported when a command is killed for exceeding its timeout,
# matching timeout(1).
TIMEOUT_RETURNCODE = 124


@dataclass
class CommandResult:
    """Result of a remote command execution."""

    output: str
    error: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0
