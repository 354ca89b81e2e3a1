"""Device-type classification cache.

One file per target, ``<cache_dir>/device-<connection_id>.cache``, holding a
JSON CacheEntry. Entries expire after ``ttl`` seconds and are honoured only
when their version equals CACHE_VERSION.

Invalid files (unreadable, empty, unparseable, missing a field, or written
by another cache version) are deleted as soon as they are loaded, so a bad
entry costs at most one miss.

Size management:
- Runs before every save
- Above ``max_entries`` files, the oldest by mtime are deleted
- ``evict_margin`` extra files go too, so the pass does not repeat on the
  very next save
"""

import logging
import time
from collections.abc import Callable
from pathlib import Path

from sshmux.config.main import CACHE_FILE_PREFIX, CACHE_FILE_SUFFIX
from sshmux.exceptions import CacheCorrupt, CacheMiss, CacheWriteFailed
from sshmux.models import (
    CACHE_VERSION,
    CacheCounters,
    CacheEntry,
    CacheListing,
    CacheStats,
    SSHTarget,
)
from sshmux.utils.fileio import atomic_write_text, ensure_dir, unlink_quietly
from sshmux.utils.keys import connection_id

logger = logging.getLogger(__name__)

WARM_WINDOW_SECONDS = 86400


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return None


class DeviceTypeCache:
    """File-backed TTL cache of device types keyed by target."""

    def __init__(
        self,
        directory: Path,
        ttl: int = 86400,
        max_entries: int = 1000,
        evict_margin: int = 10,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize cache.

        Args:
            directory: Cache directory
            ttl: Seconds an entry stays valid
            max_entries: Number of cache files tolerated before eviction
            evict_margin: Extra files removed on each eviction pass
            clock: Source of the current epoch time
        """
        self.directory = directory
        self.ttl = ttl
        self.max_entries = max_entries
        self.evict_margin = evict_margin
        self._clock = clock
        self._counters = CacheCounters()

    @property
    def counters(self) -> CacheCounters:
        """Hit/miss/write counters for this instance."""
        return self._counters

    def path_for(self, target: SSHTarget | str) -> Path:
        conn_id = connection_id(str(target))
        return self.directory / f"{CACHE_FILE_PREFIX}{conn_id}{CACHE_FILE_SUFFIX}"

    def _files(self) -> list[Path]:
        try:
            return [
                path
                for path in self.directory.glob(f"{CACHE_FILE_PREFIX}*{CACHE_FILE_SUFFIX}")
                if path.is_file()
            ]
        except FileNotFoundError:
            return []

    @staticmethod
    def _dated(files: list[Path]) -> list[tuple[float, Path]]:
        dated = []
        for path in files:
            mtime = _mtime(path)
            if mtime is not None:
                dated.append((mtime, path))
        return dated

    def _now(self) -> int:
        return int(self._clock())

    def _is_entry_expired(self, entry: CacheEntry) -> bool:
        return self._now() - entry.timestamp > self.ttl

    def save(self, target: SSHTarget | str, device_type: str, method: str = "manual") -> CacheEntry:
        """Write (or overwrite) the entry for ``target``.

        Args:
            target: Target string
            device_type: Classification to cache
            method: How the type was obtained ("manual", "rule", ...)

        Returns:
            The entry written

        Raises:
            CacheWriteFailed: If the directory or file cannot be written;
                any previous entry is left intact
        """
        target_str = str(target)
        path = self.path_for(target_str)
        entry = CacheEntry(
            device_type=device_type,
            timestamp=self._now(),
            method=method,
            version=CACHE_VERSION,
            target=target_str,
        )

        try:
            ensure_dir(self.directory)
            self.manage_size()
            atomic_write_text(path, entry.to_text())
        except OSError as e:
            logger.error("Cache write failed for %s: %s", target_str, e)
            raise CacheWriteFailed(target_str, path, e) from e

        self._counters.writes += 1
        logger.debug("Cached %s -> %s (method=%s)", target_str, device_type, method)
        return entry

    def _read(self, path: Path) -> CacheEntry:
        """Read and validate one cache file.

        Raises:
            FileNotFoundError: If the file does not exist
            CacheCorrupt: If the file is invalid in any other way
        """
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise
        except (OSError, UnicodeDecodeError) as e:
            raise CacheCorrupt(path, f"unreadable: {e}") from e

        try:
            entry = CacheEntry.parse(text)
        except ValueError as e:
            raise CacheCorrupt(path, str(e)) from e

        if entry.version != CACHE_VERSION:
            raise CacheCorrupt(path, f"version {entry.version} != {CACHE_VERSION}")
        return entry

    def load(self, target: SSHTarget | str) -> CacheEntry | None:
        """Read the entry for ``target``, ignoring its age.

        Returns:
            The entry, or None if it is absent or invalid (invalid files
            are deleted)
        """
        path = self.path_for(target)
        try:
            return self._read(path)
        except FileNotFoundError:
            return None
        except CacheCorrupt as e:
            logger.warning("Discarding cache entry for %s: %s", target, e.reason)
            unlink_quietly(path)
            return None

    def is_expired(self, target: SSHTarget | str) -> bool:
        """True if no valid entry exists or it is older than the TTL."""
        entry = self.load(target)
        if entry is None:
            return True
        return self._is_entry_expired(entry)

    def get_valid(self, target: SSHTarget | str) -> str:
        """Return the cached device type.

        Raises:
            CacheMiss: If the entry is absent, invalid or expired
        """
        entry = self.load(target)
        if entry is None or self._is_entry_expired(entry):
            self._counters.misses += 1
            raise CacheMiss(str(target))

        self._counters.hits += 1
        return entry.device_type

    def get(self, target: SSHTarget | str) -> str | None:
        try:
            return self.get_valid(target)
        except CacheMiss:
            return None

    def clear(self, target: SSHTarget | str) -> bool:
        """Delete the entry for ``target``; False if there was none."""
        removed = unlink_quietly(self.path_for(target))
        if removed:
            logger.info("Cleared cached device type for %s", target)
        return removed

    def list_all(self) -> list[CacheListing]:
        """Describe every readable entry, sorted by target."""
        now = self._now()
        listings = []
        for path in self._files():
            try:
                entry = self._read(path)
            except (FileNotFoundError, CacheCorrupt):
                continue
            age = now - entry.timestamp
            listings.append(
                CacheListing(
                    target=entry.target,
                    device_type=entry.device_type,
                    method=entry.method,
                    age=age,
                    expired=age > self.ttl,
                )
            )
        return sorted(listings, key=lambda listing: listing.target)

    def stats(self) -> CacheStats:
        """Count cache files by validity without modifying any."""
        total = valid = expired = invalid = 0
        for path in self._files():
            try:
                entry = self._read(path)
            except FileNotFoundError:
                continue
            except CacheCorrupt:
                total += 1
                invalid += 1
                continue
            total += 1
            if self._is_entry_expired(entry):
                expired += 1
            else:
                valid += 1

        return CacheStats(
            total=total,
            valid=valid,
            expired=expired,
            invalid=invalid,
            ttl=self.ttl,
            cache_dir=self.directory,
        )

    def cleanup_expired(self) -> int:
        """Delete expired and invalid entries.

        Returns:
            Number of files removed
        """
        files = self._files()
        removed = 0
        for path in files:
            try:
                entry = self._read(path)
            except FileNotFoundError:
                continue
            except CacheCorrupt as e:
                logger.debug("Removing invalid cache file %s: %s", path.name, e.reason)
                if unlink_quietly(path):
                    removed += 1
                continue
            if self._is_entry_expired(entry):
                if unlink_quietly(path):
                    removed += 1

        if removed:
            logger.info("Cleaned %d/%d expired cache file(s)", removed, len(files))
        else:
            logger.debug("No expired cache entries (total=%d)", len(files))
        return removed

    def manage_size(self) -> int:
        """Evict the oldest files when the cache holds too many.

        Returns:
            Number of files removed
        """
        files = self._files()
        overage = len(files) - self.max_entries
        if overage <= 0:
            return 0

        dated = self._dated(files)
        dated.sort(key=lambda item: item[0])
        to_delete = overage + self.evict_margin

        removed = 0
        for _, path in dated[:to_delete]:
            if unlink_quietly(path):
                removed += 1

        self._counters.evictions += removed
        logger.info(
            "Cache over limit (%d > %d), evicted %d oldest file(s)",
            len(files),
            self.max_entries,
            removed,
        )
        return removed

    def warm(self, limit: int = 20) -> int:
        """Read recently used entries so they are in the page cache.

        Args:
            limit: Maximum files to read, newest first

        Returns:
            Number of files read
        """
        cutoff = self._clock() - WARM_WINDOW_SECONDS
        recent = [item for item in self._dated(self._files()) if item[0] >= cutoff]
        recent.sort(key=lambda item: item[0], reverse=True)

        read = 0
        for _, path in recent[:limit]:
            try:
                path.read_bytes()
            except OSError:
                continue
            read += 1

        logger.debug("Warmed %d cache file(s)", read)
        return read
