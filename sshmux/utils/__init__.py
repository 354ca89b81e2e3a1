"""Utilities for sshmux."""

from sshmux.utils.console import ColorfulFormatter, ConnectionEventFormatter
from sshmux.utils.fileio import atomic_write_text, ensure_dir, file_lock, unlink_quietly
from sshmux.utils.keys import connection_id
from sshmux.utils.parser import parse_target
from sshmux.utils.validation import (
    is_valid_device_type,
    normalize_device_type,
    validate_host,
    validate_user,
)

__all__ = [
    "atomic_write_text",
    "ColorfulFormatter",
    "connection_id",
    "ConnectionEventFormatter",
    "ensure_dir",
    "file_lock",
    "is_valid_device_type",
    "normalize_device_type",
    "parse_target",
    "unlink_quietly",
    "validate_host",
    "validate_user",
]
