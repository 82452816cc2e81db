"""Command dispatcher for the stealth browser tool catalog.

:class:`CommandDispatcher` is the single entry point for every named command.
It validates the raw parameters against the command's schema, builds a page
operation, and hands it to :class:`SessionLifecycle`, which opens a fresh
browser for the call (one per attempt when retry is requested) and always
closes it again.  Failures surface as typed
:class:`~stealth_browser.browser.errors.BrowserCommandError` subclasses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Type, TypeVar

import pydantic

from .errors import ValidationError
from .requests import (
    ClickRequest,
    CommandRequest,
    EnterMFARequest,
    ExtractTableRequest,
    GenerateTOTPRequest,
    GetTextRequest,
    LoadCookiesRequest,
    NavigateRequest,
    SaveCookiesRequest,
    ScreenshotRequest,
    SecretRequest,
    TypeRequest,
    WaitForSelectorRequest,
)
from .retry import RetryPolicy
from .session import Session, SessionLifecycle
from .settings import BrowserSettings
from .tables import TableExtractor
from .totp import TOTPGenerator, TOTPParameters

T = TypeVar("T")

SUBMIT_SETTLE_MS = 1000
REDACTED_FIELDS = frozenset({"secret", "text"})

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Successful command output: either text or binary content."""

    text: Optional[str] = None
    data: Optional[bytes] = None
    mime_type: str = "text/plain"

    @classmethod
    def of_text(cls, text: str) -> "CommandResult":
        return cls(text=text)

    @classmethod
    def of_image(cls, data: bytes, image_format: str = "png") -> "CommandResult":
        return cls(data=data, mime_type=f"image/{image_format}")

    @property
    def is_binary(self) -> bool:
        return self.data is not None


@dataclass(frozen=True)
class Command:
    name: str
    request_model: Type[CommandRequest]
    handler: str
    description: str


COMMANDS: Dict[str, Command] = {
    command.name: command
    for command in (
        Command("screenshot", ScreenshotRequest, "_run_screenshot",
                "Navigate to a URL and take a screenshot of the page or an element"),
        Command("navigate", NavigateRequest, "_run_navigate",
                "Navigate to a URL in a fresh browser session"),
        Command("click", ClickRequest, "_run_click",
                "Click an element on the page"),
        Command("type", TypeRequest, "_run_type",
                "Type text into an input field"),
        Command("waitForSelector", WaitForSelectorRequest, "_run_wait_for_selector",
                "Wait for an element to reach a state on the page"),
        Command("getText", GetTextRequest, "_run_get_text",
                "Get the text content of an element on the page"),
        Command("generateTOTP", GenerateTOTPRequest, "_run_generate_totp",
                "Generate a TOTP code from a base32 secret"),
        Command("enterMFA", EnterMFARequest, "_run_enter_mfa",
                "Generate a TOTP code and enter it into an MFA field"),
        Command("saveCookies", SaveCookiesRequest, "_run_save_cookies",
                "Navigate to a URL and save the browser cookies to a file"),
        Command("loadCookies", LoadCookiesRequest, "_run_load_cookies",
                "Navigate to a URL with previously saved cookies loaded"),
        Command("extractTable", ExtractTableRequest, "_run_extract_table",
                "Extract an HTML table from a page as JSON"),
    )
}


class CommandDispatcher:
    """Validate and execute catalog commands.

    Collaborators are injectable so the envelope can be exercised without a
    real browser: pass a ``lifecycle`` built with a fake launcher, a
    ``retry_policy`` with a recording sleep, or a ``totp`` generator with a
    fixed clock.
    """

    def __init__(
        self,
        settings: Optional[BrowserSettings] = None,
        *,
        lifecycle: Optional[SessionLifecycle] = None,
        retry_policy: Optional[RetryPolicy] = None,
        totp: Optional[TOTPGenerator] = None,
        tables: Optional[TableExtractor] = None,
    ) -> None:
        self._settings = settings or BrowserSettings.from_env()
        self._lifecycle = lifecycle or SessionLifecycle(self._settings)
        self._cookies = self._lifecycle.cookie_store
        self._retry_policy = retry_policy or RetryPolicy()
        self._totp = totp or TOTPGenerator()
        self._tables = tables or TableExtractor()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def dispatch(self, name: str, params: Optional[Mapping[str, Any]] = None) -> CommandResult:
        """Run command ``name`` with raw ``params`` and return its result."""
        command = COMMANDS.get(name)
        if command is None:
            allowed = ", ".join(sorted(COMMANDS))
            raise ValidationError(f"Unknown command {name!r}; expected one of {{{allowed}}}.")
        request = self.validate(command, params or {})
        self._log_call(name, request)
        result = getattr(self, command.handler)(request)
        self._log_result(name, result)
        return result

    def validate(self, command: Command, params: Mapping[str, Any]) -> CommandRequest:
        """Parse ``params`` and confine cookie paths; touches no browser."""
        try:
            request = command.request_model.model_validate(dict(params))
        except pydantic.ValidationError as exc:
            raise ValidationError(
                f"Invalid parameters for {command.name}: {_describe(exc)}"
            ) from exc
        for field_name in ("cookies_path", "save_cookies_path"):
            path = getattr(request, field_name, None)
            if path is not None:
                self._cookies.validate_path(path)
        return request

    def screenshot(self, url: str, **params: Any) -> CommandResult:
        return self.dispatch("screenshot", {"url": url, **params})

    def navigate(self, url: str, **params: Any) -> CommandResult:
        return self.dispatch("navigate", {"url": url, **params})

    def click(self, url: str, selector: str, **params: Any) -> CommandResult:
        return self.dispatch("click", {"url": url, "selector": selector, **params})

    def type(self, url: str, selector: str, text: str, **params: Any) -> CommandResult:
        return self.dispatch("type", {"url": url, "selector": selector, "text": text, **params})

    def wait_for_selector(self, url: str, selector: str, **params: Any) -> CommandResult:
        return self.dispatch("waitForSelector", {"url": url, "selector": selector, **params})

    def get_text(self, url: str, selector: str, **params: Any) -> CommandResult:
        return self.dispatch("getText", {"url": url, "selector": selector, **params})

    def generate_totp(self, **params: Any) -> CommandResult:
        return self.dispatch("generateTOTP", params)

    def enter_mfa(self, url: str, selector: str, **params: Any) -> CommandResult:
        return self.dispatch("enterMFA", {"url": url, "selector": selector, **params})

    def save_cookies(self, url: str, cookies_path: str, **params: Any) -> CommandResult:
        return self.dispatch("saveCookies", {"url": url, "cookies_path": cookies_path, **params})

    def load_cookies(self, url: str, cookies_path: str, **params: Any) -> CommandResult:
        return self.dispatch("loadCookies", {"url": url, "cookies_path": cookies_path, **params})

    def extract_table(self, url: str, **params: Any) -> CommandResult:
        return self.dispatch("extractTable", {"url": url, **params})

    # ------------------------------------------------------------------ #
    # Command handlers
    # ------------------------------------------------------------------ #

    def _run_screenshot(self, request: ScreenshotRequest) -> CommandResult:
        options: Dict[str, Any] = {"type": request.image_format}
        if request.quality is not None:
            options["quality"] = request.quality

        def operation(session: Session) -> bytes:
            session.goto(request.url, wait_until=request.wait_until)
            if request.selector:
                return session.query(request.selector).screenshot(**options)
            return session.page.screenshot(full_page=request.full_page, **options)

        data = self._execute(
            operation,
            headless=request.headless,
            cookies_path=request.cookies_path,
            capture_on_failure=request.screenshot_on_error,
            retry=request.retry,
        )
        return CommandResult.of_image(data, request.image_format)

    def _run_navigate(self, request: NavigateRequest) -> CommandResult:
        def operation(session: Session) -> str:
            session.goto(request.url, wait_until=request.wait_until)
            return f"Successfully navigated to {request.url}"

        return CommandResult.of_text(self._execute(operation, headless=request.headless))

    def _run_click(self, request: ClickRequest) -> CommandResult:
        def operation(session: Session) -> str:
            session.goto(request.url)
            logger.info("Clicking element: %s", request.selector)
            session.click(request.selector)
            session.pause(request.wait_after_click)
            return f"Successfully clicked element: {request.selector}"

        return CommandResult.of_text(
            self._execute(
                operation,
                headless=request.headless,
                cookies_path=request.cookies_path,
                save_cookies_path=request.save_cookies_path,
            )
        )

    def _run_type(self, request: TypeRequest) -> CommandResult:
        def operation(session: Session) -> str:
            session.goto(request.url)
            logger.info("Typing into element: %s", request.selector)
            if request.clear_first:
                session.fill(request.selector, request.text)
            else:
                session.type(request.selector, request.text)
            return f"Successfully typed text into: {request.selector}"

        return CommandResult.of_text(
            self._execute(
                operation,
                headless=request.headless,
                cookies_path=request.cookies_path,
                save_cookies_path=request.save_cookies_path,
            )
        )

    def _run_wait_for_selector(self, request: WaitForSelectorRequest) -> CommandResult:
        def operation(session: Session) -> str:
            session.goto(request.url)
            logger.info("Waiting for selector: %s (state: %s)", request.selector, request.state)
            session.wait_for(request.selector, state=request.state, timeout_ms=request.timeout)
            return f"Successfully found element: {request.selector} (state: {request.state})"

        return CommandResult.of_text(self._execute(operation, headless=request.headless))

    def _run_get_text(self, request: GetTextRequest) -> CommandResult:
        def operation(session: Session) -> str:
            session.goto(request.url)
            element = session.query(request.selector)
            return element.text_content() or ""

        return CommandResult.of_text(self._execute(operation, headless=request.headless))

    def _run_generate_totp(self, request: GenerateTOTPRequest) -> CommandResult:
        params = self._totp_parameters(request)
        return CommandResult.of_text(self._totp.generate(params).code)

    def _run_enter_mfa(self, request: EnterMFARequest) -> CommandResult:
        params = self._totp_parameters(request)

        def operation(session: Session) -> str:
            session.goto(request.url)
            code = self._totp.generate(params)
            logger.info("TOTP generated, entering code into element: %s", request.selector)
            session.fill(request.selector, code.code)
            session.pause(request.wait_after_enter)
            if request.submit_after:
                logger.info("Clicking submit button: %s", request.submit_selector)
                session.click(request.submit_selector)
                session.pause(SUBMIT_SETTLE_MS)
                return "Successfully entered MFA code and submitted form"
            return f"Successfully entered MFA code into: {request.selector}"

        return CommandResult.of_text(
            self._execute(
                operation,
                headless=request.headless,
                cookies_path=request.cookies_path,
                save_cookies_path=request.save_cookies_path,
            )
        )

    def _run_save_cookies(self, request: SaveCookiesRequest) -> CommandResult:
        def operation(session: Session) -> str:
            session.goto(request.url, wait_until=request.wait_until)
            count = self._cookies.save(session, request.cookies_path)
            return f"Successfully saved {count} cookies to {request.cookies_path}"

        return CommandResult.of_text(self._execute(operation, headless=request.headless))

    def _run_load_cookies(self, request: LoadCookiesRequest) -> CommandResult:
        def operation(session: Session) -> str:
            session.goto(request.url, wait_until=request.wait_until)
            return (
                f"Successfully navigated to {request.url} "
                f"with cookies from {request.cookies_path}"
            )

        return CommandResult.of_text(
            self._execute(
                operation,
                headless=request.headless,
                cookies_path=request.cookies_path,
            )
        )

    def _run_extract_table(self, request: ExtractTableRequest) -> CommandResult:
        def operation(session: Session) -> str:
            session.goto(request.url)
            logger.info("Extracting table: %s", request.table_selector)
            return self._tables.extract(session.page, request.table_selector).to_json()

        return CommandResult.of_text(
            self._execute(
                operation,
                headless=request.headless,
                cookies_path=request.cookies_path,
            )
        )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _execute(
        self,
        operation: Callable[[Session], T],
        *,
        headless: bool,
        cookies_path: Optional[str] = None,
        save_cookies_path: Optional[str] = None,
        capture_on_failure: bool = False,
        retry: bool = False,
    ) -> T:
        def attempt() -> T:
            return self._lifecycle.run(
                operation,
                headless=headless,
                cookies_path=cookies_path,
                save_cookies_path=save_cookies_path,
                capture_on_failure=capture_on_failure,
            )

        if retry:
            return self._retry_policy.call(attempt)
        return attempt()

    def _totp_parameters(self, request: SecretRequest) -> TOTPParameters:
        return request.totp_parameters(self._settings.environ)

    def _log_call(self, action: str, request: CommandRequest) -> None:
        payload = request.model_dump(exclude_none=True)
        for key in REDACTED_FIELDS & payload.keys():
            payload[key] = "<redacted>"
        logger.info("%s call: %s", action, payload)

    def _log_result(self, action: str, result: CommandResult) -> None:
        if result.is_binary:
            summary = f"<{len(result.data)} bytes {result.mime_type}>"
        elif action == "generateTOTP":
            summary = "<code>"
        else:
            summary = result.text
        logger.info("%s result: %s", action, summary)


def _describe(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "request"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def create_dispatcher(
    *,
    settings: Optional[BrowserSettings] = None,
    retry_policy: Optional[RetryPolicy] = None,
) -> CommandDispatcher:
    """Factory helper that builds a dispatcher from the environment."""
    return CommandDispatcher(settings or BrowserSettings.from_env(), retry_policy=retry_policy)


__all__ = ["COMMANDS", "Command", "CommandDispatcher", "CommandResult", "create_dispatcher"]
