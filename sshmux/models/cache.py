"""Device-type cache data models."""

import json
from dataclasses import asdict, dataclass
from pathlib import Path

CACHE_VERSION = "2.0"

_REQUIRED_FIELDS = ("device_type", "timestamp", "method", "version", "target")


@dataclass(frozen=True)
class CacheEntry:
    """A cached classification result for one target."""

    device_type: str
    timestamp: int
    method: str
    version: str
    target: str

    def to_text(self) -> str:
        """Serialize to cache file content."""
        return json.dumps(asdict(self), sort_keys=True) + "\n"

    @classmethod
    def parse(cls, text: str) -> "CacheEntry":
        """Parse cache file content.

        JSON documents are the current format. The legacy colon-delimited
        ``device_type:timestamp:method:version:target`` line is also read so
        that its (old) version can be compared and the file retired.

        Raises:
            ValueError: If the content is empty, malformed, or a required
                field is missing or empty.
        """
        text = text.strip()
        if not text:
            raise ValueError("empty cache entry")

        if text.startswith("{"):
            try:
                data = json.loads(text)
            except json.JSONDecodeError as e:
                raise ValueError(f"invalid JSON: {e}") from e
            if not isinstance(data, dict):
                raise ValueError("cache entry is not an object")
        else:
            parts = text.split(":", 4)
            if len(parts) != 5:
                raise ValueError("legacy entry has too few fields")
            data = dict(zip(_REQUIRED_FIELDS, parts))

        missing = [name for name in _REQUIRED_FIELDS if data.get(name) in (None, "")]
        if missing:
            raise ValueError(f"missing field(s): {', '.join(missing)}")

        try:
            timestamp = int(data["timestamp"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid timestamp {data['timestamp']!r}") from e

        return cls(
            device_type=str(data["device_type"]),
            timestamp=timestamp,
            method=str(data["method"]),
            version=str(data["version"]),
            target=str(data["target"]),
        )


@dataclass(frozen=True)
class CacheListing:
    """One row of DeviceTypeCache.list_all()."""

    target: str
    device_type: str
    method: str
    age: int
    expired: bool

    @property
    def status(self) -> str:
        return "expired" if self.expired else "valid"


@dataclass(frozen=True)
class CacheStats:
    """Partition of cache files by validity."""

    total: int
    valid: int
    expired: int
    invalid: int
    ttl: int
    cache_dir: Path


@dataclass
class CacheCounters:
    """Hit/miss/write counters owned by a DeviceTypeCache instance."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    evictions: int = 0

    @property
    def requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Fraction of loads that were hits (0.0 when nothing was loaded)."""
        if self.requests == 0:
            return 0.0
        return self.hits / self.requests
