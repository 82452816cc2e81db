"""Top-level FastMCP server entrypoint.

FastMCP Cloud expects to inspect a module path like ``mcp_server:mcp``.  This
thin wrapper re-exports the configured server from the packaged implementation.
"""

from stealth_browser.mcp.server import configure_dispatcher, main, mcp  # noqa: F401

__all__ = ["mcp", "configure_dispatcher", "main"]

if __name__ == "__main__":
    main()
