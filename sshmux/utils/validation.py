"""Target component and device-type validation utilities."""

import re
from typing import Final

# Characters that could enable shell injection or break ssh argument parsing
SUSPICIOUS_CHARS: Final[list[str]] = [
    "/", "\\", ";", "&", "|", "$", "`", "'", '"', " ", "\t", "\n", "\r", "\x00",
]

MAX_HOST_LENGTH: Final[int] = 253

DEVICE_TYPE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9._-]{1,50}$")


def validate_host(host: str) -> str:
    """Validate a host name or address.

    Args:
        host: The host name to validate

    Returns:
        Validated host name

    Raises:
        ValueError: If host name is invalid
    """
    if not host:
        raise ValueError("host cannot be empty")

    if len(host) > MAX_HOST_LENGTH:
        raise ValueError(f"host name too long: {len(host)} chars")

    if ":" in host:
        raise ValueError(f"host contains ':': {host!r}")

    # ssh would read a leading dash as an option
    if host.startswith("-"):
        raise ValueError(f"host cannot start with '-': {host!r}")

    for char in SUSPICIOUS_CHARS:
        if char in host:
            raise ValueError(f"host contains invalid characters: {host!r}")

    return host


def validate_user(user: str) -> str:
    """Validate a remote user name.

    Raises:
        ValueError: If user name is empty or contains unsafe characters
    """
    if not user:
        raise ValueError("user cannot be empty")

    if user.startswith("-"):
        raise ValueError(f"user cannot start with '-': {user!r}")

    for char in SUSPICIOUS_CHARS:
        if char in user:
            raise ValueError(f"user contains invalid characters: {user!r}")

    return user


def normalize_device_type(device_type: str | None) -> str:
    """Clean up a device type label without mapping it to a fixed set.

    Lower-cases and trims the label; empty values and "null" become
    "unknown".
    """
    if device_type is None:
        return "unknown"
    normalized = device_type.strip().lower()
    if normalized in ("", "null"):
        return "unknown"
    return normalized


def is_valid_device_type(device_type: str) -> bool:
    """Return True if the (normalized) label is safe to store and reuse."""
    return bool(DEVICE_TYPE_PATTERN.match(device_type))
