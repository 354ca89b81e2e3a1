"""SSH target parsing."""

from sshmux.exceptions import InvalidTargetFormat
from sshmux.models import SSHTarget
from sshmux.utils.validation import validate_host, validate_user

DEFAULT_SSH_PORT = 22


def parse_target(target: str) -> SSHTarget:
    """Parse a ``user@host[:port]`` target.

    The input is not stripped or otherwise normalized; the exact string is
    kept in ``SSHTarget.raw``.

    Returns:
        SSHTarget with parsed components.

    Raises:
        InvalidTargetFormat: If the target is malformed.
    """
    if not target:
        raise InvalidTargetFormat(target, "target cannot be empty")

    at_count = target.count("@")
    if at_count != 1:
        raise InvalidTargetFormat(
            target, f"expected exactly one '@', found {at_count}"
        )

    user, _, host_part = target.partition("@")

    # Split on the last colon; any colon left in the host is rejected below
    if ":" in host_part:
        host, _, port_str = host_part.rpartition(":")
        if not (port_str.isascii() and port_str.isdecimal()):
            raise InvalidTargetFormat(target, f"port {port_str!r} is not a number")
        port = int(port_str)
        if not 1 <= port <= 65535:
            raise InvalidTargetFormat(target, f"port {port} out of range 1-65535")
    else:
        host = host_part
        port = DEFAULT_SSH_PORT

    try:
        validate_user(user)
        validate_host(host)
    except ValueError as e:
        raise InvalidTargetFormat(target, str(e)) from e

    return SSHTarget(raw=target, user=user, host=host, port=port)
