"""FastMCP tool surface for the command catalog."""

from .server import configure_dispatcher, main, mcp

__all__ = ["mcp", "configure_dispatcher", "main"]
