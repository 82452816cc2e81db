"""Per-command browser sessions with guaranteed teardown.

Each command gets its own browser, context and page.  :class:`SessionLifecycle`
acquires them and patches the page with playwright-stealth. It then restores
cookies and runs the caller's page operation, captures a screenshot on
failure when asked to, and always closes the browser again.
"""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, TypeVar, Union

from playwright.sync_api import Browser, BrowserContext, ElementHandle, Page, sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright_stealth.stealth import Stealth

from .cookies import CookieStore
from .errors import (
    BrowserCommandError,
    BrowserOperationError,
    ElementNotFoundError,
    ErrorArtifact,
    NavigationError,
)
from .settings import BrowserSettings

T = TypeVar("T")
PathLike = Union[str, Path]
Launcher = Callable[[BrowserSettings, bool], AbstractContextManager[Browser]]

logger = logging.getLogger(__name__)


@contextmanager
def launch_browser(settings: BrowserSettings, headless: bool) -> Iterator[Browser]:
    """Start Playwright and Chromium, closing both on exit."""
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(**settings.launch_options(headless=headless))
        try:
            yield browser
        finally:
            browser.close()


@dataclass
class Session:
    """One browser, one context, one page; owned by a single command."""

    browser: Browser
    context: BrowserContext
    page: Page

    def cookies(self) -> List[Dict[str, Any]]:
        return list(self.context.cookies())

    def add_cookies(self, cookies: Sequence[Dict[str, Any]]) -> None:
        self.context.add_cookies(list(cookies))

    def goto(self, url: str, *, wait_until: str = "load") -> None:
        logger.info("Navigating to %s (wait_until=%s)", url, wait_until)
        try:
            self.page.goto(url, wait_until=wait_until)
        except PlaywrightError as exc:
            raise NavigationError(f"Failed to load {url}: {exc}") from exc

    def query(self, selector: str) -> ElementHandle:
        """Return the first element matching ``selector`` or fail."""
        try:
            element = self.page.query_selector(selector)
        except PlaywrightError as exc:
            raise BrowserOperationError(f"Invalid selector {selector!r}: {exc}") from exc
        if element is None:
            raise ElementNotFoundError(selector)
        return element

    def wait_for(self, selector: str, *, state: str = "visible", timeout_ms: Optional[int] = None) -> None:
        with _selector_errors(selector):
            self.page.wait_for_selector(selector, state=state, timeout=timeout_ms)

    def click(self, selector: str, *, timeout_ms: Optional[int] = None) -> None:
        with _selector_errors(selector):
            self.page.click(selector, timeout=timeout_ms)

    def fill(self, selector: str, text: str, *, timeout_ms: Optional[int] = None) -> None:
        with _selector_errors(selector):
            self.page.fill(selector, text, timeout=timeout_ms)

    def type(self, selector: str, text: str, *, timeout_ms: Optional[int] = None) -> None:
        with _selector_errors(selector):
            self.page.type(selector, text, timeout=timeout_ms)

    def pause(self, delay_ms: int) -> None:
        if delay_ms > 0:
            self.page.wait_for_timeout(delay_ms)


@contextmanager
def _selector_errors(selector: str) -> Iterator[None]:
    try:
        yield
    except PlaywrightTimeoutError as exc:
        raise ElementNotFoundError(
            selector, f"Timed out waiting for selector {selector!r}: {exc}"
        ) from exc
    except PlaywrightError as exc:
        raise BrowserOperationError(f"Action on {selector!r} failed: {exc}") from exc


def _typed(exc: Exception) -> Exception:
    if isinstance(exc, PlaywrightError) and not isinstance(exc, BrowserCommandError):
        return BrowserOperationError(str(exc))
    return exc


class SessionLifecycle:
    """Run page operations inside freshly acquired, always-released sessions."""

    def __init__(
        self,
        settings: BrowserSettings,
        *,
        cookie_store: Optional[CookieStore] = None,
        launcher: Launcher = launch_browser,
        stealth: Optional[Stealth] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._settings = settings
        self._stealth = stealth or Stealth()
        self._cookie_store = cookie_store or CookieStore(settings.cookies_base_dir)
        self._launcher = launcher
        self._clock = clock

    @property
    def cookie_store(self) -> CookieStore:
        return self._cookie_store

    @contextmanager
    def open_session(self, *, headless: bool = True) -> Iterator[Session]:
        """Acquire a new browser/page; the browser is closed on every exit path."""
        with self._launcher(self._settings, headless) as browser:
            context = browser.new_context(**dict(self._settings.context_options))
            context.set_default_timeout(self._settings.default_timeout_ms)
            page = context.new_page()
            self._stealth.apply_stealth_sync(page)
            yield Session(browser=browser, context=context, page=page)

    def run(
        self,
        operation: Callable[[Session], T],
        *,
        headless: bool = True,
        cookies_path: Optional[PathLike] = None,
        save_cookies_path: Optional[PathLike] = None,
        setup: Optional[Callable[[Session], None]] = None,
        on_failure: Optional[Callable[[Session, Exception], None]] = None,
        capture_on_failure: bool = False,
    ) -> T:
        """Execute ``operation`` against a new session and return its result.

        ``cookies_path`` is restored before ``setup`` and ``operation`` run,
        so it applies before any navigation.  On failure the optional
        screenshot and ``on_failure`` hook run, and the original error is
        re-raised regardless of what they do.  ``save_cookies_path`` is
        written only after success, and a failure to write it is logged
        rather than raised.
        """
        with self.open_session(headless=headless) as session:
            try:
                if cookies_path is not None:
                    self._cookie_store.load(session, cookies_path)
                if setup is not None:
                    setup(session)
                result = operation(session)
            except Exception as exc:
                error = _typed(exc)
                if capture_on_failure:
                    artifact = self.capture_failure(session)
                    if artifact is not None and isinstance(error, BrowserCommandError):
                        error.artifact = artifact
                if on_failure is not None:
                    self._run_failure_hook(on_failure, session, error)
                if error is exc:
                    raise
                raise error from exc
            if save_cookies_path is not None:
                self._persist_cookies(session, save_cookies_path)
            return result

    def capture_failure(self, session: Session) -> Optional[ErrorArtifact]:
        """Save a full-page screenshot for diagnosis; never raises."""
        captured_at = self._clock()
        stamp = captured_at.strftime("%Y-%m-%dT%H-%M-%S-%f")
        target = self._settings.artifacts_dir / f"error-screenshot-{stamp}.png"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            session.page.screenshot(path=str(target), full_page=True)
        except Exception as exc:
            logger.warning("Failed to capture error screenshot: %s", exc)
            return None
        logger.info("Error screenshot saved to %s", target)
        return ErrorArtifact(path=target, captured_at=captured_at)

    def _run_failure_hook(
        self,
        hook: Callable[[Session, Exception], None],
        session: Session,
        error: Exception,
    ) -> None:
        try:
            hook(session, error)
        except Exception as exc:
            logger.warning("Failure hook raised %s: %s", type(exc).__name__, exc)

    def _persist_cookies(self, session: Session, path: PathLike) -> None:
        try:
            self._cookie_store.save(session, path)
        except (BrowserCommandError, PlaywrightError) as exc:
            logger.warning("Failed to save cookies to %s: %s", path, exc)


__all__ = ["Launcher", "Session", "SessionLifecycle", "launch_browser"]
