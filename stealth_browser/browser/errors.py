"""Typed failures raised by browser commands.

Every failure a command can surface is a :class:`BrowserCommandError`
subclass with a stable ``kind`` string, so callers branch on the type (or
``kind``) instead of parsing messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class ErrorArtifact:
    """Diagnostic side-channel captured when a command fails."""

    path: Path
    captured_at: datetime
    mime_type: str = "image/png"


class BrowserCommandError(Exception):
    """Base class for all command failures."""

    kind = "browser"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.artifact: Optional[ErrorArtifact] = None

    def __str__(self) -> str:
        return self.message


class ValidationError(BrowserCommandError):
    """Malformed, missing or unknown command parameters."""

    kind = "validation"


class PathViolationError(BrowserCommandError):
    """A cookie path resolved outside the configured base directory."""

    kind = "path_violation"


class NavigationError(BrowserCommandError):
    """The browser could not reach or load the target page."""

    kind = "navigation"


class ElementNotFoundError(BrowserCommandError):
    """A required selector matched nothing."""

    kind = "element_not_found"

    def __init__(self, selector: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Element with selector {selector!r} not found")
        self.selector = selector


class CookieIOError(BrowserCommandError):
    """A cookie jar file exists but could not be read, parsed or written."""

    kind = "cookie_io"


class TOTPConfigError(BrowserCommandError):
    """Missing or unresolvable TOTP secret, or code generation failed."""

    kind = "totp_config"


class BrowserOperationError(BrowserCommandError):
    """A Playwright failure that fits no narrower category."""

    kind = "browser_operation"


class RetryExhaustedError(BrowserCommandError):
    """Every retry attempt failed; ``last_error`` is the final attempt's error."""

    kind = "retry_exhausted"

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"Operation failed after {attempts} attempts: "
            f"{type(last_error).__name__}: {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error


__all__ = [
    "BrowserCommandError",
    "BrowserOperationError",
    "CookieIOError",
    "ElementNotFoundError",
    "ErrorArtifact",
    "NavigationError",
    "PathViolationError",
    "RetryExhaustedError",
    "TOTPConfigError",
    "ValidationError",
]
