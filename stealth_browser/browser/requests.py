"""Parameter schemas for every command in the catalog.

Models accept the catalog's camelCase names (``fullPage``) as well as the
Python field names (``full_page``) and reject anything they do not declare.
"""

from __future__ import annotations

from typing import Annotated, Literal, Mapping, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .totp import SecretSource, TOTPParameters, resolve_secret, secret_source

WaitUntil = Literal["load", "domcontentloaded", "networkidle"]
SelectorState = Literal["attached", "detached", "visible", "hidden"]
Algorithm = Literal["SHA1", "SHA256", "SHA512"]
ImageFormat = Literal["png", "jpeg"]

Selector = Annotated[str, Field(min_length=1)]
CookiePath = Annotated[str, Field(min_length=1)]
Milliseconds = Annotated[int, Field(ge=0)]


class CommandRequest(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PageRequest(CommandRequest):
    """Fields shared by every command that opens a page."""

    url: str
    headless: bool = True

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        target = value.strip()
        parsed = urlparse(target)
        if not parsed.scheme or not (parsed.netloc or parsed.path):
            raise ValueError(f"{value!r} is not a valid absolute URL")
        return target


class SecretRequest(CommandRequest):
    """TOTP secret (inline or by variable name) and code parameters."""

    secret: Optional[SecretStr] = None
    secret_env_var: Optional[str] = None
    algorithm: Algorithm = "SHA1"
    digits: int = Field(6, ge=1, le=10)
    period: int = Field(30, gt=0)

    def secret_source(self) -> SecretSource:
        literal = self.secret.get_secret_value() if self.secret is not None else None
        return secret_source(literal, self.secret_env_var)

    def totp_parameters(self, environ: Mapping[str, str]) -> TOTPParameters:
        return TOTPParameters(
            secret=resolve_secret(self.secret_source(), environ),
            algorithm=self.algorithm,
            digits=self.digits,
            period=self.period,
        )


class ScreenshotRequest(PageRequest):
    full_page: bool = True
    selector: Optional[Selector] = None
    cookies_path: Optional[CookiePath] = None
    screenshot_on_error: bool = False
    retry: bool = False
    wait_until: WaitUntil = "networkidle"
    image_format: ImageFormat = "png"
    quality: Optional[int] = Field(None, ge=0, le=100)

    @model_validator(mode="after")
    def check_quality(self) -> "ScreenshotRequest":
        if self.quality is not None and self.image_format != "jpeg":
            raise ValueError("quality is only supported for jpeg screenshots")
        return self


class NavigateRequest(PageRequest):
    wait_until: WaitUntil = "load"


class ClickRequest(PageRequest):
    selector: Selector
    wait_after_click: Milliseconds = 1000
    cookies_path: Optional[CookiePath] = None
    save_cookies_path: Optional[CookiePath] = None


class TypeRequest(PageRequest):
    selector: Selector
    text: str
    clear_first: bool = True
    cookies_path: Optional[CookiePath] = None
    save_cookies_path: Optional[CookiePath] = None


class WaitForSelectorRequest(PageRequest):
    selector: Selector
    timeout: Milliseconds = 30000
    state: SelectorState = "visible"


class GetTextRequest(PageRequest):
    selector: Selector


class GenerateTOTPRequest(SecretRequest):
    pass


class EnterMFARequest(PageRequest, SecretRequest):
    selector: Selector
    submit_after: bool = False
    submit_selector: Optional[Selector] = None
    wait_after_enter: Milliseconds = 1000
    cookies_path: Optional[CookiePath] = None
    save_cookies_path: Optional[CookiePath] = None

    @model_validator(mode="after")
    def check_submit(self) -> "EnterMFARequest":
        if self.submit_after and not self.submit_selector:
            raise ValueError("submitSelector is required when submitAfter is true")
        return self


class SaveCookiesRequest(PageRequest):
    cookies_path: CookiePath
    wait_until: WaitUntil = "load"


class LoadCookiesRequest(PageRequest):
    cookies_path: CookiePath
    wait_until: WaitUntil = "load"


class ExtractTableRequest(PageRequest):
    table_selector: Selector = "table"
    cookies_path: Optional[CookiePath] = None


__all__ = [
    "ClickRequest",
    "CommandRequest",
    "EnterMFARequest",
    "ExtractTableRequest",
    "GenerateTOTPRequest",
    "GetTextRequest",
    "LoadCookiesRequest",
    "NavigateRequest",
    "PageRequest",
    "SaveCookiesRequest",
    "ScreenshotRequest",
    "SecretRequest",
    "TypeRequest",
    "WaitForSelectorRequest",
]
