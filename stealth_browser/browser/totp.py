"""RFC 6238 time-based one-time passwords for MFA prompts."""

from __future__ import annotations

import hashlib
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

import pyotp

from .errors import TOTPConfigError

ALGORITHMS: Mapping[str, Callable[..., Any]] = {
    "SHA1": hashlib.sha1,
    "SHA256": hashlib.sha256,
    "SHA512": hashlib.sha512,
}


@dataclass(frozen=True)
class LiteralSecret:
    """A base32 secret supplied inline."""

    value: str

    def __repr__(self) -> str:
        return "LiteralSecret(value=<redacted>)"


@dataclass(frozen=True)
class EnvironmentSecret:
    """A secret looked up by variable name when the command is validated."""

    name: str


SecretSource = Union[LiteralSecret, EnvironmentSecret]


def secret_source(
    secret: Optional[str] = None,
    secret_env_var: Optional[str] = None,
) -> SecretSource:
    """Turn the ``secret`` / ``secretEnvVar`` pair into a single variant."""
    if secret and secret_env_var:
        raise TOTPConfigError("Provide either secret or secretEnvVar, not both")
    if secret_env_var:
        return EnvironmentSecret(secret_env_var)
    if secret:
        return LiteralSecret(secret)
    raise TOTPConfigError("Either secret or secretEnvVar must be provided")


def resolve_secret(source: SecretSource, environ: Mapping[str, str]) -> str:
    if isinstance(source, LiteralSecret):
        return source.value
    value = environ.get(source.name)
    if not value:
        raise TOTPConfigError(
            f"Environment variable {source.name!r} is not set or empty"
        )
    return value


@dataclass(frozen=True)
class TOTPParameters:
    secret: str
    algorithm: str = "SHA1"
    digits: int = 6
    period: int = 30

    def __repr__(self) -> str:
        return (
            f"TOTPParameters(secret=<redacted>, algorithm={self.algorithm!r}, "
            f"digits={self.digits}, period={self.period})"
        )


@dataclass(frozen=True)
class TOTPCode:
    """A generated code and the end of the window it is valid in."""

    code: str
    counter: int
    valid_until: int

    def __str__(self) -> str:
        return self.code


class TOTPGenerator:
    """Compute TOTP codes; ``clock`` supplies ``now`` when it is omitted."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def generate(self, params: TOTPParameters, now: Optional[float] = None) -> TOTPCode:
        digest = ALGORITHMS.get(params.algorithm.upper())
        if digest is None:
            allowed = ", ".join(ALGORITHMS)
            raise TOTPConfigError(f"algorithm must be one of {{{allowed}}}")
        if not 1 <= params.digits <= 10:
            raise TOTPConfigError("digits must be between 1 and 10")
        if params.period <= 0:
            raise TOTPConfigError("period must be a positive number of seconds")
        secret = "".join(params.secret.split()).upper()
        if not secret:
            raise TOTPConfigError("TOTP secret is empty")

        timestamp = self._clock() if now is None else now
        counter = math.floor(timestamp / params.period)
        try:
            otp = pyotp.TOTP(
                secret,
                digits=params.digits,
                digest=digest,
                interval=params.period,
            )
            code = otp.generate_otp(counter)
        except ValueError as exc:
            # binascii.Error (bad base32) is a ValueError subclass
            raise TOTPConfigError(f"Failed to generate TOTP: {exc}") from exc
        return TOTPCode(
            code=code,
            counter=counter,
            valid_until=(counter + 1) * params.period,
        )


def generate(params: TOTPParameters, now: Optional[float] = None) -> TOTPCode:
    return TOTPGenerator().generate(params, now)


__all__ = [
    "ALGORITHMS",
    "EnvironmentSecret",
    "LiteralSecret",
    "SecretSource",
    "TOTPCode",
    "TOTPGenerator",
    "TOTPParameters",
    "generate",
    "resolve_secret",
    "secret_source",
]
