"""Stealth browser: MFA-capable browser automation commands behind an MCP server."""

from .browser import BrowserSettings, CommandDispatcher, CommandResult, create_dispatcher
from .mcp.server import configure_dispatcher

__all__ = [
    "BrowserSettings",
    "CommandDispatcher",
    "CommandResult",
    "create_dispatcher",
    "configure_dispatcher",
]
