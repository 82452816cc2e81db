"""ASGI application serving the command catalog over streamable HTTP.

``uvicorn stealth_browser.app:app`` serves the tools at ``/mcp``; call
:func:`create_app` to mount them elsewhere or with explicit settings.
"""

from __future__ import annotations

from typing import Any, Optional

from stealth_browser.browser.settings import BrowserSettings
from stealth_browser.mcp.server import configure_dispatcher, mcp


def create_app(settings: Optional[BrowserSettings] = None, *, path: str = "/mcp") -> Any:
    if settings is not None:
        configure_dispatcher(settings=settings)
    return mcp.http_app(path=path)


app = create_app()
