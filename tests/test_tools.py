"""Tests for MCP tool handlers."""

import os
import time
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from sshmux.models import CommandResult, ConnectionState, ConnectionStatus
from sshmux.tools import build_tools
from sshmux.tools.handlers import (
    format_command_result,
    format_status,
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


def ok(output: str) -> CommandResult:
    return CommandResult(output=output, error="", returncode=0)


class TestFormatting:
    def test_stdout_only(self) -> None:
        assert format_command_result(ok("hello\n")) == "hello"

    def test_stderr_and_exit_code(self) -> None:
        result = CommandResult(output="", error="No such file\n", returncode=2)

        assert format_command_result(result) == "[stderr]\nNo such file\n[exit code: 2]"

    def test_no_output(self) -> None:
        assert format_command_result(ok("")) == "(no output)"

    def test_status(self) -> None:
        status = ConnectionStatus(
            target="root@h",
            state=ConnectionState.CONNECTED,
            control_socket=Path("/tmp/ssh-x"),
            socket_exists=True,
            connected_since=datetime(2024, 1, 2, 3, 4, 5),
        )

        assert format_status(status) == (
            "root@h: connected\n  control socket: /tmp/ssh-x\n  since: 2024-01-02 03:04:05"
        )


class TestConnectionTools:
    @pytest.mark.asyncio
    async def test_connect_reports_device_type(self, deps, fake_ssh) -> None:
        fake_ssh.responses["uname -a"] = ok("Darwin mac.local 23.1.0\n")

        result = await handle_connect(deps, " root@mac ")

        assert result == "Connected to root@mac\nDevice type: macos"
        assert deps.last_target.get() == "root@mac"

    @pytest.mark.asyncio
    async def test_connect_twice_reuses(self, deps, fake_ssh) -> None:
        deps.cache.save("root@h", "debian")
        await handle_connect(deps, "root@h")

        result = await handle_connect(deps, "root@h")

        assert result == "Connected to root@h (reused existing session)\nDevice type: debian (cached)"
        assert fake_ssh.started == ["root@h"]

    @pytest.mark.asyncio
    async def test_connect_invalid_target(self, deps) -> None:
        result = await handle_connect(deps, "no-at-sign")

        assert result.startswith("Error: Invalid SSH target 'no-at-sign'")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", ["root@host:²", "-oProxyCommand=touch@h"])
    async def test_connect_rejects_unsafe_target(self, deps, fake_ssh, target: str) -> None:
        result = await handle_connect(deps, target)

        assert result.startswith(f"Error: Invalid SSH target {target!r}")
        assert fake_ssh.started == []

    @pytest.mark.asyncio
    async def test_connect_failure(self, deps, fake_ssh) -> None:
        fake_ssh.master_mode = "fail"

        result = await handle_connect(deps, "root@h")

        assert result.startswith("Error: Failed to establish connection to root@h (ssh exit 255)")
        assert "Permission denied" in result

    @pytest.mark.asyncio
    async def test_connect_survives_pointer_write_failure(self, deps) -> None:
        with patch.object(deps.last_target, "set", side_effect=OSError("read-only")):
            result = await handle_connect(deps, "root@h")

        assert result.startswith("Connected to root@h")

    @pytest.mark.asyncio
    async def test_disconnect_defaults_to_last_target(self, deps) -> None:
        await handle_connect(deps, "root@h")

        assert await handle_disconnect(deps) == "Disconnected from root@h"
        assert not deps.store.exists("root@h")

    @pytest.mark.asyncio
    async def test_disconnect_forced(self, deps, fake_ssh) -> None:
        await handle_connect(deps, "root@h")
        fake_ssh.exit_fails = True

        assert await handle_disconnect(deps, "root@h") == "Force-closed root@h (control socket removed)"

    @pytest.mark.asyncio
    async def test_disconnect_unknown(self, deps) -> None:
        assert await handle_disconnect(deps, "root@h") == "Error: No connection to root@h"

    @pytest.mark.asyncio
    async def test_disconnect_without_any_target(self, deps) -> None:
        result = await handle_disconnect(deps)

        assert result == "Error: No target given and no previous connection recorded"

    @pytest.mark.asyncio
    async def test_reconnect(self, deps, fake_ssh) -> None:
        await handle_connect(deps, "root@h")

        assert await handle_reconnect(deps) == "Reconnected to root@h"
        assert fake_ssh.started == ["root@h", "root@h"]


class TestExecTool:
    @pytest.mark.asyncio
    async def test_exec_on_last_target(self, deps, fake_ssh) -> None:
        fake_ssh.responses["uptime"] = ok(" 10:00:00 up 3 days\n")
        await handle_connect(deps, "root@h")

        result = await handle_exec(deps, "uptime")

        assert result == " 10:00:00 up 3 days"
        assert fake_ssh.executed[-1] == ("root@h", "uptime", 300)

    @pytest.mark.asyncio
    async def test_exec_timeout(self, deps, fake_ssh) -> None:
        fake_ssh.slow_commands.add("sleep 100")
        await handle_connect(deps, "root@h")

        result = await handle_exec(deps, "sleep 100", timeout=1)

        assert result == "[stderr]\nCommand timed out after 1s\n[exit code: 124]"

    @pytest.mark.asyncio
    async def test_exec_empty_command(self, deps) -> None:
        assert await handle_exec(deps, "   ", "root@h") == "Error: command cannot be empty"

    @pytest.mark.asyncio
    async def test_exec_not_connected(self, deps) -> None:
        assert await handle_exec(deps, "uptime", "root@h") == "Error: No connection to root@h"


class TestStatusTools:
    @pytest.mark.asyncio
    async def test_status_single(self, deps) -> None:
        result = await handle_status(deps, "root@h")

        assert result.startswith("root@h: disconnected")

    @pytest.mark.asyncio
    async def test_status_all_empty(self, deps) -> None:
        assert await handle_status(deps) == "No registered connections"

    @pytest.mark.asyncio
    async def test_status_all(self, deps) -> None:
        await handle_connect(deps, "root@a")
        await handle_connect(deps, "root@b")

        result = await handle_status(deps)

        assert "root@a: connected" in result
        assert "root@b: connected" in result

    @pytest.mark.asyncio
    async def test_list(self, deps) -> None:
        deps.cache.save("root@a", "debian")
        await handle_connect(deps, "root@a")

        result = await handle_list(deps)

        assert result.splitlines()[0] == "Registered connections (1/10):"
        assert "root@a" in result
        assert "debian" in result

    @pytest.mark.asyncio
    async def test_list_empty(self, deps) -> None:
        assert await handle_list(deps) == "No registered connections"

    @pytest.mark.asyncio
    async def test_cleanup(self, deps, fake_ssh) -> None:
        socket = deps.store.path_for("root@dead")
        fake_ssh.open_master(socket)
        fake_ssh.kill_master(socket)
        past = time.time() - 7200
        os.utime(socket, (past, past))
        deps.registry.register("root@dead")

        result = await handle_cleanup(deps)

        assert result == "Removed 1 stale socket(s), 1 registry row(s) and 0 expired cache file(s)"


class TestDeviceTypeTools:
    @pytest.mark.asyncio
    async def test_get_cached(self, deps) -> None:
        deps.cache.save("root@h", "openwrt")

        assert await handle_device_type_get(deps, "root@h") == "root@h: openwrt (cache)"

    @pytest.mark.asyncio
    async def test_get_detected(self, deps, fake_ssh) -> None:
        fake_ssh.responses["uname -a"] = ok("FreeBSD fw 13.2\n")
        await deps.lifecycle.establish("root@fw")

        assert await handle_device_type_get(deps, "root@fw", force=True) == "root@fw: freebsd (detected)"

    @pytest.mark.asyncio
    async def test_set_and_clear(self, deps) -> None:
        assert await handle_device_type_set(deps, "root@h", "Cisco-IOS") == (
            "Device type for root@h set to cisco-ios"
        )
        assert await handle_device_type_clear(deps, "root@h") == "Cleared cached device type for root@h"
        assert await handle_device_type_clear(deps, "root@h") == "No cached device type for root@h"

    @pytest.mark.asyncio
    async def test_set_invalid(self, deps) -> None:
        result = await handle_device_type_set(deps, "root@h", "bad label!")

        assert result.startswith("Error: Invalid device type 'bad label!'")

    @pytest.mark.asyncio
    async def test_target_required(self, deps) -> None:
        assert await handle_device_type_set(deps, " ", "linux") == "Error: target is required"
        assert await handle_device_type_clear(deps, "") == "Error: target is required"

    @pytest.mark.asyncio
    async def test_cache_stats(self, deps) -> None:
        deps.cache.save("root@h", "debian")
        deps.cache.get("root@h")

        result = await handle_cache_stats(deps)

        assert "Entries: 1 (valid 1, expired 0, invalid 0)" in result
        assert "Hit rate: 100%" in result
        assert "root@h" in result

    @pytest.mark.asyncio
    async def test_last_target(self, deps) -> None:
        assert (await handle_last_target(deps)).startswith("Error: ")

        await handle_connect(deps, "root@h")

        assert await handle_last_target(deps) == "root@h"


def test_build_tools_names(deps) -> None:
    names = [tool.__name__ for tool in build_tools(deps)]

    assert names == [
        "ssh_connect",
        "ssh_disconnect",
        "ssh_reconnect",
        "ssh_exec",
        "ssh_status",
        "ssh_list",
        "ssh_cleanup",
        "device_type_get",
        "device_type_set",
        "device_type_clear",
        "cache_stats",
        "last_target",
    ]
