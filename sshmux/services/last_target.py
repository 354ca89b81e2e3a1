"""Most recently connected target.

Lets callers omit the target on follow-up operations. The pointer file is a
small JSON document; when it is missing the newest registry row is used.
"""

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path

from sshmux.exceptions import NoLastTarget
from sshmux.models import SSHTarget
from sshmux.services.registry import ConnectionRegistry
from sshmux.utils.fileio import atomic_write_text, ensure_dir

logger = logging.getLogger(__name__)


def _parse_pointer(text: str) -> str | None:
    text = text.strip()
    if not text:
        return None

    if text.startswith("{"):
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return None
        target = data.get("target") if isinstance(data, dict) else None
        return target or None

    # Legacy "target:timestamp"; the target itself may contain ':'
    target, sep, timestamp = text.rpartition(":")
    if not sep or not target or not timestamp.isdigit():
        return None
    return target


class LastTargetTracker:
    """Reads and writes the last-target pointer."""

    def __init__(
        self,
        path: Path,
        registry: ConnectionRegistry,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = path
        self.registry = registry
        self._clock = clock

    def set(self, target: SSHTarget | str) -> None:
        """Record ``target`` as the most recent one.

        Raises:
            OSError: If the pointer cannot be written
        """
        content = json.dumps(
            {"target": str(target), "timestamp": int(self._clock())}, sort_keys=True
        )
        ensure_dir(self.path.parent)
        atomic_write_text(self.path, content + "\n")
        logger.debug("Last target set to %s", target)

    def get(self) -> str:
        """Return the most recent target.

        Raises:
            NoLastTarget: If neither the pointer nor the registry has one
        """
        try:
            target = _parse_pointer(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            target = None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read last-target pointer %s: %s", self.path, e)
            target = None

        if target:
            return target

        row = self.registry.latest()
        if row is None:
            raise NoLastTarget()
        logger.debug("No last-target pointer, using newest registry row %s", row.target)
        return row.target
