"""Persist and restore a session's cookie jar on disk.

Jars are stored as a UTF-8 JSON array of Playwright-shaped cookie objects,
overwritten wholesale on every save.  Every path is confined to a base
directory before the filesystem is touched.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Union

from playwright.sync_api import Error as PlaywrightError

from .errors import CookieIOError, PathViolationError

if TYPE_CHECKING:
    from .session import Session

PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CookieRecord:
    """One cookie as Playwright reports and accepts it."""

    name: str
    value: str
    domain: Optional[str] = None
    path: Optional[str] = None
    expires: Optional[float] = None
    http_only: Optional[bool] = None
    secure: Optional[bool] = None
    same_site: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "CookieRecord":
        if not isinstance(data, Mapping):
            raise CookieIOError(f"Cookie entry must be an object, got {type(data).__name__}.")
        if not isinstance(data.get("name"), str) or not isinstance(data.get("value"), str):
            raise CookieIOError("Cookie entry must include string 'name' and 'value'.")
        for key in ("domain", "path", "sameSite"):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise CookieIOError(f"Cookie {data['name']!r} has a non-string {key!r}.")
        expires = data.get("expires")
        if expires is not None:
            try:
                expires = float(expires)
            except (TypeError, ValueError):
                raise CookieIOError(
                    f"Cookie {data['name']!r} has an invalid expires value {expires!r}."
                ) from None
        return cls(
            name=data["name"],
            value=data["value"],
            domain=data.get("domain"),
            path=data.get("path"),
            expires=expires,
            http_only=data.get("httpOnly"),
            secure=data.get("secure"),
            same_site=data.get("sameSite"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "expires": self.expires,
            "httpOnly": self.http_only,
            "secure": self.secure,
            "sameSite": self.same_site,
        }
        return {key: value for key, value in payload.items() if value is not None}


class CookieStore:
    """Read and write cookie jars under ``base_dir``."""

    def __init__(self, base_dir: PathLike) -> None:
        self._base_dir = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir.expanduser().resolve()

    def validate_path(self, path: PathLike) -> Path:
        """Resolve ``path`` and reject it unless it lies inside the base dir."""
        base = self.base_dir
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_relative_to(base):
            raise PathViolationError(f"Cookie path must be within {base}")
        return resolved

    def read(self, path: PathLike) -> List[CookieRecord]:
        """Return the jar stored at ``path``; an absent file is an empty jar."""
        target = self.validate_path(path)
        try:
            raw = target.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No cookies file found at %s, starting fresh", target)
            return []
        except (OSError, UnicodeDecodeError) as exc:
            raise CookieIOError(f"Could not read cookies from {target}: {exc}") from exc
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CookieIOError(f"Cookies file {target} is not valid JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise CookieIOError(f"Cookies file {target} must contain a JSON array.")
        return [CookieRecord.from_dict(item) for item in payload]

    def write(self, path: PathLike, records: Sequence[CookieRecord]) -> Path:
        """Overwrite ``path`` with ``records``, creating parent directories."""
        target = self.validate_path(path)
        body = json.dumps([record.to_dict() for record in records], indent=2)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(body, encoding="utf-8")
        except OSError as exc:
            raise CookieIOError(f"Could not write cookies to {target}: {exc}") from exc
        return target

    def save(self, session: "Session", path: PathLike) -> int:
        """Persist the session's current cookies; returns the record count."""
        self.validate_path(path)
        records = [CookieRecord.from_dict(item) for item in session.cookies()]
        target = self.write(path, records)
        logger.info("Saved %d cookies to %s", len(records), target)
        return len(records)

    def load(self, session: "Session", path: PathLike) -> int:
        """Install the jar at ``path`` into the session; returns the record count."""
        records = self.read(path)
        if not records:
            return 0
        try:
            session.add_cookies([record.to_dict() for record in records])
        except PlaywrightError as exc:
            raise CookieIOError(f"Browser rejected cookies from {path}: {exc}") from exc
        logger.info("Loaded %d cookies from %s", len(records), self.validate_path(path))
        return len(records)


__all__ = ["CookieRecord", "CookieStore"]
