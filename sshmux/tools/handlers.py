"""Tool handlers for sshmux operations.

Each handler takes the Dependencies container plus the tool arguments and
returns plain text. Expected failures (SSHMuxError) become "Error: ..."
strings; anything else propagates to the middleware.
"""

import asyncio
import logging

from sshmux.dependencies import Dependencies
from sshmux.exceptions import SSHMuxError
from sshmux.models import (
    CloseOutcome,
    CommandResult,
    ConnectionInfo,
    ConnectionStatus,
    EstablishOutcome,
    SweepReport,
)

logger = logging.getLogger(__name__)


def resolve_target(deps: Dependencies, target: str | None) -> str:
    """Trim ``target``, defaulting to the last connected one.

    Raises:
        NoLastTarget: If target is empty and nothing was connected before
    """
    target = (target or "").strip()
    if target:
        return target
    return deps.last_target.get()


def _remember(deps: Dependencies, target: str) -> None:
    try:
        deps.last_target.set(target)
    except OSError as e:
        logger.warning("Could not record last target %s: %s", target, e)


def format_command_result(result: CommandResult) -> str:
    """Render a command result the way a terminal would show it."""
    output_parts = []
    if result.output:
        output_parts.append(result.output.rstrip("\n"))
    if result.error:
        stderr = result.error.rstrip("\n")
        output_parts.append(f"[stderr]\n{stderr}")
    if result.returncode != 0:
        output_parts.append(f"[exit code: {result.returncode}]")

    return "\n".join(output_parts) if output_parts else "(no output)"


def format_status(status: ConnectionStatus) -> str:
    lines = [
        f"{status.target}: {status.state.value}",
        f"  control socket: {status.control_socket}",
    ]
    if status.connected_since is not None:
        lines.append(f"  since: {status.connected_since:%Y-%m-%d %H:%M:%S}")
    return "\n".join(lines)


def format_connection_list(infos: list[ConnectionInfo], max_connections: int) -> str:
    if not infos:
        return "No registered connections"

    lines = [f"Registered connections ({len(infos)}/{max_connections}):"]
    for info in infos:
        lines.append(
            f"  {info.target:<32} {info.state.value:<13} "
            f"{info.device_type:<12} {info.registered_at_display}"
        )
    return "\n".join(lines)


async def handle_connect(deps: Dependencies, target: str) -> str:
    """Establish (or reuse) a connection and report its device type."""
    target = target.strip()
    try:
        outcome = await deps.lifecycle.establish(target)
    except SSHMuxError as e:
        return f"Error: {e}"

    _remember(deps, target)

    if outcome is EstablishOutcome.REUSED:
        lines = [f"Connected to {target} (reused existing session)"]
    else:
        lines = [f"Connected to {target}"]

    try:
        detection = await deps.detector.detect(target)
    except SSHMuxError as e:
        logger.warning("Device detection for %s failed: %s", target, e)
        lines.append("Device type: unknown")
    else:
        suffix = " (cached)" if detection.cached else ""
        lines.append(f"Device type: {detection.device_type}{suffix}")

    return "\n".join(lines)


async def handle_disconnect(deps: Dependencies, target: str | None = None) -> str:
    try:
        target = resolve_target(deps, target)
        outcome = await deps.lifecycle.close(target)
    except SSHMuxError as e:
        return f"Error: {e}"

    if outcome is CloseOutcome.FORCED:
        return f"Force-closed {target} (control socket removed)"
    return f"Disconnected from {target}"


async def handle_reconnect(deps: Dependencies, target: str | None = None) -> str:
    try:
        target = resolve_target(deps, target)
        await deps.lifecycle.reconnect(target)
    except SSHMuxError as e:
        return f"Error: {e}"

    _remember(deps, target)
    return f"Reconnected to {target}"


async def handle_exec(
    deps: Dependencies,
    command: str,
    target: str | None = None,
    timeout: float | None = None,
) -> str:
    """Run a command through an existing connection.

    Returns:
        Command output, stderr and non-zero exit code, or an error message
    """
    if not command.strip():
        return "Error: command cannot be empty"

    try:
        target = resolve_target(deps, target)
        result = await deps.lifecycle.execute(target, command, timeout=timeout)
    except SSHMuxError as e:
        return f"Error: {e}"

    _remember(deps, target)
    return format_command_result(result)


async def handle_status(deps: Dependencies, target: str | None = None) -> str:
    """Status of one target, or of every registered connection."""
    target = (target or "").strip()
    try:
        if target:
            return format_status(await deps.lifecycle.status(target))

        rows = deps.registry.rows()
        if not rows:
            return "No registered connections"
        statuses = [await deps.lifecycle.status(row.target) for row in rows]
    except SSHMuxError as e:
        return f"Error: {e}"

    return "\n".join(format_status(status) for status in statuses)


async def handle_list(deps: Dependencies) -> str:
    try:
        infos = await deps.registry.list_detailed(deps.health, deps.cache)
    except SSHMuxError as e:
        return f"Error: {e}"
    return format_connection_list(infos, deps.pool.max_connections)


async def handle_cleanup(deps: Dependencies) -> str:
    """Sweep stale sockets and purge expired cache entries."""
    sweep = deps.background.spawn("sweep", deps.sweeper.sweep())
    purge = deps.background.spawn_thread("cache-cleanup", deps.cache.cleanup_expired)
    report, removed_cache = await asyncio.gather(sweep, purge)

    if report is None:
        report = SweepReport()
    return (
        f"Removed {report.sockets_removed} stale socket(s), "
        f"{report.rows_removed} registry row(s) and "
        f"{removed_cache or 0} expired cache file(s)"
    )


async def handle_device_type_get(
    deps: Dependencies, target: str | None = None, force: bool = False
) -> str:
    try:
        target = resolve_target(deps, target)
        detection = await deps.detector.detect(target, force=force)
    except SSHMuxError as e:
        return f"Error: {e}"

    source = "cache" if detection.cached else "detected"
    return f"{target}: {detection.device_type} ({source})"


async def handle_device_type_set(deps: Dependencies, target: str, device_type: str) -> str:
    target = target.strip()
    if not target:
        return "Error: target is required"
    try:
        normalized = deps.detector.set_manual(target, device_type)
    except SSHMuxError as e:
        return f"Error: {e}"
    return f"Device type for {target} set to {normalized}"


async def handle_device_type_clear(deps: Dependencies, target: str) -> str:
    target = target.strip()
    if not target:
        return "Error: target is required"
    if deps.cache.clear(target):
        return f"Cleared cached device type for {target}"
    return f"No cached device type for {target}"


async def handle_cache_stats(deps: Dependencies) -> str:
    stats = deps.cache.stats()
    counters = deps.cache.counters
    lines = [
        f"Cache directory: {stats.cache_dir}",
        f"Entries: {stats.total} (valid {stats.valid}, expired {stats.expired}, "
        f"invalid {stats.invalid})",
        f"TTL: {stats.ttl}s",
        f"Hits: {counters.hits}, misses: {counters.misses}, writes: {counters.writes}, "
        f"evictions: {counters.evictions}",
        f"Hit rate: {counters.hit_rate:.0%}",
    ]

    listings = deps.cache.list_all()
    if listings:
        lines.append("")
        for listing in listings:
            lines.append(
                f"  {listing.target:<32} {listing.device_type:<12} "
                f"{listing.method:<7} {listing.age}s {listing.status}"
            )
    return "\n".join(lines)


async def handle_last_target(deps: Dependencies) -> str:
    try:
        return deps.last_target.get()
    except SSHMuxError as e:
        return f"Error: {e}"
