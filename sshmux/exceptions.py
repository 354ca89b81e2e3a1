"""Error taxonomy for sshmux.

Every failure surfaced to callers derives from SSHMuxError so the tool layer
can report it as text. Probe failures never raise; they map to False in the
health checker and only become ConnectionUnhealthy/ConnectionNotFound when a
caller actually needs the connection.
"""

from pathlib import Path


class SSHMuxError(Exception):
    """Base class for all sshmux errors."""


class InvalidTargetFormat(SSHMuxError, ValueError):
    """Target string is not of the form user@host[:port]."""

    def __init__(self, target: str, reason: str):
        """Initialize target format error.

        Args:
            target: The rejected target string
            reason: Human readable reason for the rejection
        """
        self.target = target
        self.reason = reason
        super().__init__(
            f"Invalid SSH target {target!r}: {reason} (expected user@host[:port])"
        )


class ConnectionNotFound(SSHMuxError):
    """No control socket exists for the target."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"No connection to {target}")


class ConnectionUnhealthy(SSHMuxError):
    """A control socket exists but the master does not answer."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"Connection to {target} is not healthy, reconnect first")


class ConnectionTimeout(SSHMuxError):
    """Control master did not become healthy before the deadline."""

    def __init__(self, target: str, waited: float):
        """Initialize connection timeout error.

        Args:
            target: Target being established
            waited: Seconds waited for the control socket
        """
        self.target = target
        self.waited = waited
        super().__init__(f"Timed out after {waited:g}s establishing connection to {target}")


class ConnectionFailed(SSHMuxError):
    """ssh exited with an error before the control master came up."""

    def __init__(self, target: str, returncode: int, stderr: str = ""):
        self.target = target
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(
            f"Failed to establish connection to {target} (ssh exit {returncode}){detail}"
        )


class RegistryIOError(SSHMuxError):
    """The connection registry could not be read or written."""

    def __init__(self, path: Path, original_error: Exception):
        self.path = path
        self.original_error = original_error
        super().__init__(f"Connection registry {path} unavailable: {original_error}")


class CacheWriteFailed(SSHMuxError):
    """A device-type cache entry could not be written."""

    def __init__(self, target: str, path: Path, original_error: Exception):
        """Initialize cache write error.

        Args:
            target: Target whose entry was being saved
            path: Destination cache file
            original_error: Underlying OSError
        """
        self.target = target
        self.path = path
        self.original_error = original_error
        super().__init__(f"Failed to write cache entry {path} for {target}: {original_error}")


class CacheCorrupt(SSHMuxError):
    """A cache file could not be parsed or has the wrong version.

    Only raised internally; DeviceTypeCache.load converts it into a miss and
    deletes the file.
    """

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Corrupt cache entry {path}: {reason}")


class CacheMiss(SSHMuxError):
    """No valid, unexpired device type is cached for the target."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"No valid cached device type for {target}")


class NoLastTarget(SSHMuxError):
    """Neither the last-target pointer nor the registry names a target."""

    def __init__(self) -> None:
        super().__init__("No target given and no previous connection recorded")


class InvalidDeviceType(SSHMuxError, ValueError):
    """Device type label contains unsupported characters or is too long."""

    def __init__(self, device_type: str):
        self.device_type = device_type
        super().__init__(
            f"Invalid device type {device_type!r}: use 1-50 characters from "
            "a-z, 0-9, '.', '_' and '-' (e.g. fedora, ubuntu-22.04, cisco-ios)"
        )
