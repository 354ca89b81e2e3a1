"""Entry point for the sshmux server."""

import logging

from sshmux.config import Config
from sshmux.dependencies import Dependencies
from sshmux.server import configure_logging, create_server

logger = logging.getLogger(__name__)


def run_server() -> None:
    """Run the MCP server with configured transport."""
    config = Config.from_env()
    configure_logging(config.settings)
    logger.info(
        "Logging configured: level=%s, transport=%s",
        config.settings.log_level,
        config.transport,
    )

    server = create_server(Dependencies.from_config(config))

    if config.transport == "stdio":
        logger.info("Starting sshmux server (transport=stdio)")
        server.run(transport="stdio")
    else:
        logger.info(
            "Starting sshmux server (transport=http, host=%s, port=%d)",
            config.http_host,
            config.http_port,
        )
        server.run(
            transport="http",
            host=config.http_host,
            port=config.http_port,
        )


if __name__ == "__main__":
    run_server()
