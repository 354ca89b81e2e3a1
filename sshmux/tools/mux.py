"""MCP tool definitions for sshmux.

Tools are closures over one Dependencies container so every call shares the
same services. Targets are ``user@host[:port]``; tools that take an optional
target fall back to the most recently connected one.
"""

from collections.abc import Awaitable, Callable

from sshmux.dependencies import Dependencies
from sshmux.tools.handlers import (
    handle_cache_stats,
    handle_cleanup,
    handle_connect,
    handle_device_type_clear,
    handle_device_type_get,
    handle_device_type_set,
    handle_disconnect,
    handle_exec,
    handle_last_target,
    handle_list,
    handle_reconnect,
    handle_status,
)

Tool = Callable[..., Awaitable[str]]


def build_tools(deps: Dependencies) -> list[Tool]:
    """Create the tool functions bound to ``deps``.

    Returns:
        Tool callables in registration order
    """

    async def ssh_connect(target: str) -> str:
        """Open (or reuse) a persistent SSH session to user@host[:port].

        Reports whether an existing session was reused and the detected
        device type.
        """
        return await handle_connect(deps, target)

    async def ssh_disconnect(target: str | None = None) -> str:
        """Close the persistent session (default: last connected target)."""
        return await handle_disconnect(deps, target)

    async def ssh_reconnect(target: str | None = None) -> str:
        """Close and re-open the persistent session."""
        return await handle_reconnect(deps, target)

    async def ssh_exec(
        command: str,
        target: str | None = None,
        timeout: float | None = None,
    ) -> str:
        """Run a shell command on a connected target.

        Args:
            command: Command line executed by the remote shell
            target: user@host[:port] (default: last connected target)
            timeout: Seconds before the command is abandoned (exit code 124)
        """
        return await handle_exec(deps, command, target, timeout)

    async def ssh_status(target: str | None = None) -> str:
        """Show connected/stale/disconnected for one target, or all registered."""
        return await handle_status(deps, target)

    async def ssh_list() -> str:
        """List registered connections with health, device type and age."""
        return await handle_list(deps)

    async def ssh_cleanup() -> str:
        """Remove stale control sockets, dangling registry rows and expired cache files."""
        return await handle_cleanup(deps)

    async def device_type_get(target: str | None = None, force: bool = False) -> str:
        """Return the device type of a connected target.

        Uses the cache unless ``force`` is set, in which case the target is
        probed again.
        """
        return await handle_device_type_get(deps, target, force)

    async def device_type_set(target: str, device_type: str) -> str:
        """Manually record the device type of a target (e.g. ubuntu, cisco)."""
        return await handle_device_type_set(deps, target, device_type)

    async def device_type_clear(target: str) -> str:
        """Forget the cached device type of a target."""
        return await handle_device_type_clear(deps, target)

    async def cache_stats() -> str:
        """Show device-type cache statistics and entries."""
        return await handle_cache_stats(deps)

    async def last_target() -> str:
        """Show the most recently connected target."""
        return await handle_last_target(deps)

    return [
        ssh_connect,
        ssh_disconnect,
        ssh_reconnect,
        ssh_exec,
        ssh_status,
        ssh_list,
        ssh_cleanup,
        device_type_get,
        device_type_set,
        device_type_clear,
        cache_stats,
        last_target,
    ]
