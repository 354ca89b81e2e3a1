"""Connection id derivation."""

import hashlib


def connection_id(target: str) -> str:
    """Derive the stable identifier for a target string.

    The digest is taken over the exact string, so ``root@h`` and
    ``root@h:22`` are different connections.

    Args:
        target: Target string as supplied by the caller

    Returns:
        32-character lowercase hex digest, safe for file names

    Raises:
        ValueError: If target is empty
    """
    if not target:
        raise ValueError("Cannot derive a connection id from an empty target")
    return hashlib.md5(target.encode("utf-8"), usedforsecurity=False).hexdigest()
