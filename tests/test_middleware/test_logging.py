"""Tests for logging middleware."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from sshmux.middleware.logging import LoggingMiddleware


@pytest.fixture
def mock_tool_context() -> MagicMock:
    """Create a mock middleware context for tool calls."""
    context = MagicMock()
    context.method = "tools/call"
    context.source = "client"
    context.message = MagicMock()
    context.message.name = "ssh_exec"
    context.message.arguments = {"target": "root@192.0.2.10", "command": "uptime"}
    return context


@pytest.mark.asyncio
async def test_logging_middleware_logs_tool_call(mock_tool_context: MagicMock) -> None:
    """LoggingMiddleware logs tool calls with name and arguments."""
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger)
    call_next = AsyncMock(return_value="line one\nline two")

    result = await middleware.on_call_tool(mock_tool_context, call_next)

    assert result == "line one\nline two"
    start = mock_logger.info.call_args.args
    assert start[0] == ">>> TOOL: %s%s"
    assert start[1] == "ssh_exec"
    assert start[2] == "(target='root@192.0.2.10', command='uptime')"

    level, fmt, name, summary, duration = mock_logger.log.call_args.args
    assert level == logging.INFO
    assert fmt.startswith("<<< TOOL")
    assert summary == "17 chars, 2 lines"
    assert duration.endswith("ms")


@pytest.mark.asyncio
async def test_logging_middleware_logs_errors(mock_tool_context: MagicMock) -> None:
    """Failures are logged with "!!! TOOL" and re-raised."""
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger)

    with pytest.raises(RuntimeError):
        await middleware.on_call_tool(mock_tool_context, AsyncMock(side_effect=RuntimeError("x")))

    assert mock_logger.error.call_args.args[0].startswith("!!! TOOL")


@pytest.mark.asyncio
async def test_slow_calls_logged_as_warning(mock_tool_context: MagicMock) -> None:
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger, slow_threshold_ms=0)

    await middleware.on_call_tool(mock_tool_context, AsyncMock(return_value="ok"))

    level, *_, duration = mock_logger.log.call_args.args
    assert level == logging.WARNING
    assert duration.endswith("ms SLOW!")
    assert middleware._format_duration(500.0) == "500.0ms SLOW!"


def test_format_args_truncates_long_values() -> None:
    middleware = LoggingMiddleware()

    formatted = middleware._format_args({"command": "x" * 80})

    assert formatted == f"(command='{'x' * 50}...')"
    assert middleware._format_args(None) == "()"


def test_summarize_result() -> None:
    middleware = LoggingMiddleware()
    result = MagicMock()
    result.content = [1, 2]

    assert middleware._summarize_result(None) == "null"
    assert middleware._summarize_result("abc") == "3 chars"
    assert middleware._summarize_result(result) == "2 content item(s)"
    assert middleware._summarize_result(42) == "int"
