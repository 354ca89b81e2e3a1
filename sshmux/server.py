"""sshmux FastMCP server.

A thin wrapper that wires the MCP tools to one Dependencies container. All
connection and cache logic lives in services/.
"""

import logging
import sys
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from sshmux.config import Settings
from sshmux.dependencies import Dependencies
from sshmux.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from sshmux.tools import build_tools
from sshmux.utils.console import ConnectionEventFormatter

logger = logging.getLogger(__name__)

NOISY_LOGGERS = [
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
    "httpcore",
    "fastmcp",
    "starlette",
    "anyio",
    "mcp",
]


def configure_logging(settings: Settings) -> None:
    """Configure colorful logging for the sshmux package.

    Colors are disabled when stderr is not a TTY or SSHMUX_LOG_COLORS=false.
    """
    use_colors = settings.log_colors and sys.stderr.isatty()

    package_logger = logging.getLogger("sshmux")
    package_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

    # Only add handler if not already configured
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ConnectionEventFormatter(use_colors=use_colors))
        package_logger.addHandler(handler)
        package_logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def make_lifespan(
    deps: Dependencies,
) -> Callable[[FastMCP], AbstractAsyncContextManager[dict[str, Any]]]:
    """Build the server lifespan around an existing container."""

    @asynccontextmanager
    async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
        logger.info("sshmux server starting up")
        await deps.startup()
        logger.info(
            "Control dir %s, cache dir %s, %d registered connection(s) (max %d)",
            deps.config.control_dir,
            deps.config.cache_dir,
            deps.registry.count(),
            deps.pool.max_connections,
        )

        try:
            yield {"control_dir": str(deps.config.control_dir)}
        finally:
            logger.info("sshmux server shutting down")
            await deps.cleanup()
            logger.info("sshmux server shutdown complete")

    return app_lifespan


def configure_middleware(server: FastMCP, deps: Dependencies) -> None:
    """Add middleware (first added = innermost): ErrorHandling -> Logging."""
    server.add_middleware(
        ErrorHandlingMiddleware(include_traceback=deps.config.settings.include_traceback)
    )
    server.add_middleware(LoggingMiddleware())


def create_server(deps: Dependencies | None = None) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        deps: Service container (default: built from the environment)

    Returns:
        Configured FastMCP server instance
    """
    if deps is None:
        deps = Dependencies.create()

    server = FastMCP("sshmux", lifespan=make_lifespan(deps))
    configure_middleware(server, deps)

    for tool in build_tools(deps):
        server.tool()(tool)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    return server
