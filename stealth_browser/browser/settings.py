"""Launch and filesystem configuration for the command envelope.

A single :class:`BrowserSettings` value describes where cookie jars may live,
where failure screenshots go, which browser executable to launch and how.
It is built once (usually from the environment) and threaded into the
session lifecycle and dispatcher, so nothing reads process-wide state while
a command is running.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

# Chromium flags; page-level fingerprint patches come from playwright-stealth.
STEALTH_LAUNCH_ARGS: tuple[str, ...] = (
    "--disable-blink-features=AutomationControlled",
    "--window-size=1920,1080",
    "--no-first-run",
    "--no-default-browser-check",
)

# Desktop-sized viewport for every new context.
DEFAULT_CONTEXT_OPTIONS: Mapping[str, object] = {
    "viewport": {"width": 1920, "height": 1080},
    "locale": "en-US",
}

DEFAULT_TIMEOUT_MS = 30000


@dataclass(frozen=True)
class BrowserSettings:
    """Describe how sessions are launched and where their files may go."""

    cookies_base_dir: Path
    artifacts_dir: Path
    executable_path: Optional[Path] = None
    channel: Optional[str] = None
    launch_args: tuple[str, ...] = STEALTH_LAUNCH_ARGS
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    context_options: Mapping[str, object] = field(default_factory=lambda: dict(DEFAULT_CONTEXT_OPTIONS))
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ, repr=False)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        dotenv_path: Optional[Path] = None,
    ) -> "BrowserSettings":
        """Build settings from environment variables (and ``.env`` if present)."""

        if environ is None:
            load_dotenv(dotenv_path)
            environ = os.environ

        cwd = Path.cwd()
        executable = environ.get("BROWSER_PATH") or None
        timeout_raw = environ.get("BROWSER_TIMEOUT_MS")
        try:
            timeout_ms = int(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_MS
        except ValueError:
            raise ValueError(
                f"BROWSER_TIMEOUT_MS must be an integer, got {timeout_raw!r}."
            ) from None
        if timeout_ms < 0:
            raise ValueError("BROWSER_TIMEOUT_MS must be non-negative.")

        return cls(
            cookies_base_dir=Path(environ.get("COOKIES_BASE_DIR") or cwd),
            artifacts_dir=Path(environ.get("ERROR_SCREENSHOT_DIR") or cwd),
            executable_path=Path(executable) if executable else None,
            channel=environ.get("BROWSER_CHANNEL") or None,
            default_timeout_ms=timeout_ms,
            environ=environ,
        )

    def launch_options(self, *, headless: bool) -> Dict[str, Any]:
        """Keyword arguments for ``BrowserType.launch``."""
        options: Dict[str, Any] = {
            "headless": headless,
            "args": list(self.launch_args),
        }
        if self.executable_path is not None:
            options["executable_path"] = str(self.executable_path)
        if self.channel:
            options["channel"] = self.channel
        return options


__all__ = [
    "BrowserSettings",
    "DEFAULT_CONTEXT_OPTIONS",
    "DEFAULT_TIMEOUT_MS",
    "STEALTH_LAUNCH_ARGS",
]
