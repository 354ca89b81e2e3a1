"""Durable file helpers shared by the registry, cache and last-target stores.

All cross-invocation state lives in files, so writers replace whole files
atomically (temp file in the same directory, then os.replace) and
read-modify-write sequences hold an exclusive advisory lock.
"""

import fcntl
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

DIR_PERMISSIONS = 0o700
FILE_PERMISSIONS = 0o600


def ensure_dir(path: Path) -> Path:
    """Create a private directory (and parents) if it does not exist."""
    path.mkdir(mode=DIR_PERMISSIONS, parents=True, exist_ok=True)
    return path


def atomic_write_text(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` so readers never see a partial file.

    Raises:
        OSError: If the temp file cannot be written or renamed. The
            destination is left untouched and the temp file removed.
    """
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, FILE_PERMISSIONS)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def unlink_quietly(path: Path) -> bool:
    """Remove a file, returning False if it was already gone."""
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False


@contextmanager
def file_lock(lock_path: Path) -> Iterator[None]:
    """Hold an exclusive flock(2) on ``lock_path`` for the block.

    The lock file itself is never removed; the lock is released when the
    descriptor is closed, including on process exit.
    """
    fd = os.open(lock_path, os.O_RDWR | os.O_CREAT | os.O_CLOEXEC, FILE_PERMISSIONS)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX)
        yield
    finally:
        os.close(fd)
