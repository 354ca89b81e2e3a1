"""Connection registry row model.

Rows are stored one JSON object per line. Lines written by the older
colon-delimited format (``connection_id:target:timestamp``) are still
accepted on read; the id ends at the first colon and the timestamp starts
after the last one, so a ``:port`` inside the target survives.
"""

import json
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class RegistryRow:
    """One tracked connection."""

    connection_id: str
    target: str
    registered_at: int

    def to_line(self) -> str:
        """Serialize to a single registry line (without newline)."""
        return json.dumps(asdict(self), sort_keys=True)

    @classmethod
    def from_line(cls, line: str) -> "RegistryRow | None":
        """Parse a registry line.

        Args:
            line: Raw line from the registry file

        Returns:
            RegistryRow, or None if the line is blank or malformed
        """
        line = line.strip()
        if not line:
            return None

        if line.startswith("{"):
            try:
                data = json.loads(line)
                row = cls(
                    connection_id=str(data["connection_id"]),
                    target=str(data["target"]),
                    registered_at=int(data["registered_at"]),
                )
            except (ValueError, KeyError, TypeError):
                return None
        else:
            connection_id, sep, rest = line.partition(":")
            target, sep2, timestamp = rest.rpartition(":")
            if not (sep and sep2) or not (timestamp.isascii() and timestamp.isdecimal()):
                return None
            row = cls(
                connection_id=connection_id,
                target=target,
                registered_at=int(timestamp),
            )

        if not row.connection_id or not row.target:
            return None
        return row
