"""Tests for main entry point."""

from unittest.mock import MagicMock, patch

import pytest

from sshmux.config import Config


class TestMain:
    """Tests for __main__ module."""

    @pytest.fixture
    def run(self, config: Config):
        def _run(transport: str) -> MagicMock:
            config.settings.transport = transport
            config.settings.http_host = "127.0.0.1"
            config.settings.http_port = 8000
            mock_server = MagicMock()

            with patch("sshmux.__main__.Config.from_env", return_value=config), \
                 patch("sshmux.__main__.configure_logging") as configure_logging, \
                 patch("sshmux.__main__.create_server", return_value=mock_server):
                from sshmux.__main__ import run_server
                run_server()

            configure_logging.assert_called_once_with(config.settings)
            return mock_server

        return _run

    def test_runs_with_http_transport(self, run) -> None:
        """Server runs with HTTP transport when configured."""
        server = run("http")

        server.run.assert_called_once_with(
            transport="http",
            host="127.0.0.1",
            port=8000,
        )

    def test_runs_with_stdio_when_configured(self, run) -> None:
        """Server runs with STDIO transport when configured."""
        server = run("stdio")

        server.run.assert_called_once_with(transport="stdio")
