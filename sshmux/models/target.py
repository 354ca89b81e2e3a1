"""SSH target data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SSHTarget:
    """Parsed user@host[:port] target.

    `raw` is kept verbatim because connection ids are derived from the exact
    string the caller supplied, not from the parsed components.
    """

    raw: str
    user: str
    host: str
    port: int = 22

    @property
    def destination(self) -> str:
        """user@host as passed to ssh (port is given separately)."""
        return f"{self.user}@{self.host}"

    def __str__(self) -> str:
        return self.raw
