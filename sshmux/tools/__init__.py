"""MCP tools for sshmux."""

from sshmux.tools.mux import build_tools

__all__ = ["build_tools"]
