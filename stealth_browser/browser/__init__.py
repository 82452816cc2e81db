"""Command envelope: validation, sessions, retry, cookies, TOTP and tables."""

from .core import COMMANDS, CommandDispatcher, CommandResult, create_dispatcher
from .settings import BrowserSettings

__all__ = [
    "BrowserSettings",
    "COMMANDS",
    "CommandDispatcher",
    "CommandResult",
    "create_dispatcher",
]
