"""FastMCP server that exposes the stealth browser command catalog."""

from __future__ import annotations

import asyncio
import logging
import sys
from threading import Lock
from typing import Any, Dict, Literal, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.utilities.types import Image

from stealth_browser.browser.core import CommandDispatcher, CommandResult, create_dispatcher
from stealth_browser.browser.errors import BrowserCommandError
from stealth_browser.browser.settings import BrowserSettings

mcp = FastMCP(name="stealth-browser")

logger = logging.getLogger(__name__)

_dispatcher: Optional[CommandDispatcher] = None
_dispatcher_lock = Lock()


def configure_dispatcher(
    *,
    settings: Optional[BrowserSettings] = None,
    dispatcher: Optional[CommandDispatcher] = None,
) -> CommandDispatcher:
    """Replace the dispatcher used by every tool."""
    global _dispatcher
    with _dispatcher_lock:
        _dispatcher = dispatcher or create_dispatcher(settings=settings)
        return _dispatcher


def _get_dispatcher() -> CommandDispatcher:
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is None:
            _dispatcher = create_dispatcher()
        return _dispatcher


def _call_with_errors(command: str, params: Dict[str, Any]) -> CommandResult:
    try:
        return _get_dispatcher().dispatch(command, params)
    except BrowserCommandError as exc:
        message = f"{exc.kind}: {exc}"
        if exc.artifact is not None:
            message += f" (screenshot saved to {exc.artifact.path})"
        logger.error("%s failed: %s", command, message)
        raise ToolError(message) from exc
    except Exception as exc:
        logger.exception("%s failed unexpectedly", command)
        raise ToolError(f"unexpected: {exc}") from exc


async def _run_command(command: str, **params: Any) -> Any:
    arguments = {key: value for key, value in params.items() if value is not None}
    result = await asyncio.to_thread(_call_with_errors, command, arguments)
    if result.is_binary:
        return Image(data=result.data, format=result.mime_type.split("/", 1)[1])
    return result.text or ""


# Tool parameters carry the catalog's camelCase names; the request models
# accept them as aliases.
WaitUntil = Literal["load", "domcontentloaded", "networkidle"]
Algorithm = Literal["SHA1", "SHA256", "SHA512"]


@mcp.tool(name="screenshot")
async def screenshot(
    url: str,
    fullPage: bool = True,
    selector: Optional[str] = None,
    headless: bool = True,
    cookiesPath: Optional[str] = None,
    screenshotOnError: bool = False,
    retry: bool = False,
    waitUntil: WaitUntil = "networkidle",
    imageFormat: Literal["png", "jpeg"] = "png",
    quality: Optional[int] = None,
) -> Image:
    """Navigate to a URL and take a screenshot of the page or an element.

    Args:
        url: Page to capture.
        fullPage: Capture the whole scrollable page instead of the viewport.
        selector: Capture only the first element matching this selector.
        cookiesPath: Cookie jar to restore before navigating.
        screenshotOnError: Save a diagnostic screenshot if the command fails.
        retry: Retry the whole command with exponential backoff.
        quality: JPEG quality (0-100); only valid with imageFormat "jpeg".
    """
    return await _run_command(
        "screenshot",
        url=url,
        fullPage=fullPage,
        selector=selector,
        headless=headless,
        cookiesPath=cookiesPath,
        screenshotOnError=screenshotOnError,
        retry=retry,
        waitUntil=waitUntil,
        imageFormat=imageFormat,
        quality=quality,
    )


@mcp.tool(name="navigate")
async def navigate(
    url: str,
    waitUntil: WaitUntil = "load",
    headless: bool = True,
) -> str:
    """Navigate to a URL in a fresh browser session."""
    return await _run_command("navigate", url=url, waitUntil=waitUntil, headless=headless)


@mcp.tool(name="click")
async def click(
    url: str,
    selector: str,
    waitAfterClick: int = 1000,
    headless: bool = True,
    cookiesPath: Optional[str] = None,
    saveCookiesPath: Optional[str] = None,
) -> str:
    """Click an element on the page."""
    return await _run_command(
        "click",
        url=url,
        selector=selector,
        waitAfterClick=waitAfterClick,
        headless=headless,
        cookiesPath=cookiesPath,
        saveCookiesPath=saveCookiesPath,
    )


@mcp.tool(name="type")
async def type_text(
    url: str,
    selector: str,
    text: str,
    clearFirst: bool = True,
    headless: bool = True,
    cookiesPath: Optional[str] = None,
    saveCookiesPath: Optional[str] = None,
) -> str:
    """Type text into an input field."""
    return await _run_command(
        "type",
        url=url,
        selector=selector,
        text=text,
        clearFirst=clearFirst,
        headless=headless,
        cookiesPath=cookiesPath,
        saveCookiesPath=saveCookiesPath,
    )


@mcp.tool(name="waitForSelector")
async def wait_for_selector(
    url: str,
    selector: str,
    timeout: int = 30000,
    state: Literal["attached", "detached", "visible", "hidden"] = "visible",
    headless: bool = True,
) -> str:
    """Wait for an element to reach ``state`` on the page."""
    return await _run_command(
        "waitForSelector",
        url=url,
        selector=selector,
        timeout=timeout,
        state=state,
        headless=headless,
    )


@mcp.tool(name="getText")
async def get_text(url: str, selector: str, headless: bool = True) -> str:
    """Get the text content of an element on the page."""
    return await _run_command("getText", url=url, selector=selector, headless=headless)


@mcp.tool(name="generateTOTP")
async def generate_totp(
    secret: Optional[str] = None,
    secretEnvVar: Optional[str] = None,
    algorithm: Algorithm = "SHA1",
    digits: int = 6,
    period: int = 30,
) -> str:
    """Generate a TOTP code from a base32 secret (or a named environment secret)."""
    return await _run_command(
        "generateTOTP",
        secret=secret,
        secretEnvVar=secretEnvVar,
        algorithm=algorithm,
        digits=digits,
        period=period,
    )


@mcp.tool(name="enterMFA")
async def enter_mfa(
    url: str,
    selector: str,
    secret: Optional[str] = None,
    secretEnvVar: Optional[str] = None,
    submitAfter: bool = False,
    submitSelector: Optional[str] = None,
    waitAfterEnter: int = 1000,
    headless: bool = True,
    algorithm: Algorithm = "SHA1",
    digits: int = 6,
    period: int = 30,
    cookiesPath: Optional[str] = None,
    saveCookiesPath: Optional[str] = None,
) -> str:
    """Generate a TOTP code and enter it into an MFA input field.

    Args:
        selector: The MFA code input.
        secret: Base32 TOTP secret. Prefer secretEnvVar so the secret stays
            out of the conversation.
        secretEnvVar: Name of the environment variable holding the secret.
        submitAfter: Click submitSelector after entering the code.
        waitAfterEnter: Milliseconds to wait after entering the code.
    """
    return await _run_command(
        "enterMFA",
        url=url,
        selector=selector,
        secret=secret,
        secretEnvVar=secretEnvVar,
        submitAfter=submitAfter,
        submitSelector=submitSelector,
        waitAfterEnter=waitAfterEnter,
        headless=headless,
        algorithm=algorithm,
        digits=digits,
        period=period,
        cookiesPath=cookiesPath,
        saveCookiesPath=saveCookiesPath,
    )


@mcp.tool(name="saveCookies")
async def save_cookies(
    url: str,
    cookiesPath: str,
    waitUntil: WaitUntil = "load",
    headless: bool = True,
) -> str:
    """Navigate to a URL and save the browser cookies to a file."""
    return await _run_command(
        "saveCookies",
        url=url,
        cookiesPath=cookiesPath,
        waitUntil=waitUntil,
        headless=headless,
    )


@mcp.tool(name="loadCookies")
async def load_cookies(
    url: str,
    cookiesPath: str,
    waitUntil: WaitUntil = "load",
    headless: bool = True,
) -> str:
    """Navigate to a URL with previously saved cookies loaded."""
    return await _run_command(
        "loadCookies",
        url=url,
        cookiesPath=cookiesPath,
        waitUntil=waitUntil,
        headless=headless,
    )


@mcp.tool(name="extractTable")
async def extract_table(
    url: str,
    tableSelector: str = "table",
    headless: bool = True,
    cookiesPath: Optional[str] = None,
) -> str:
    """Extract an HTML table from a page as JSON headers and rows."""
    return await _run_command(
        "extractTable",
        url=url,
        tableSelector=tableSelector,
        headless=headless,
        cookiesPath=cookiesPath,
    )



def main() -> None:
    """Run the server over stdio, logging to stderr."""
    logging.basicConfig(
        level=logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    mcp.run()


__all__ = [
    "mcp",
    "configure_dispatcher",
    "screenshot",
    "navigate",
    "click",
    "type_text",
    "wait_for_selector",
    "get_text",
    "generate_totp",
    "enter_mfa",
    "save_cookies",
    "load_cookies",
    "extract_table",
    "main",
]
