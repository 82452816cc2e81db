from __future__ import annotations

from pathlib import Path

import pytest

from stealth_browser.browser.core import CommandDispatcher
from stealth_browser.browser.retry import RetryPolicy
from stealth_browser.browser.session import SessionLifecycle
from stealth_browser.browser.settings import BrowserSettings
from stealth_browser.browser.totp import TOTPGenerator
from tests.fakes import FakeLauncher, RecordingSleep


@pytest.fixture
def settings(tmp_path: Path) -> BrowserSettings:
    return BrowserSettings(
        cookies_base_dir=tmp_path / "cookies",
        artifacts_dir=tmp_path / "artifacts",
        environ={"BANK_TOTP": "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"},
    )


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def sleeps() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def lifecycle(settings: BrowserSettings, launcher: FakeLauncher) -> SessionLifecycle:
    return SessionLifecycle(settings, launcher=launcher)


@pytest.fixture
def dispatcher(
    settings: BrowserSettings,
    lifecycle: SessionLifecycle,
    sleeps: RecordingSleep,
) -> CommandDispatcher:
    return CommandDispatcher(
        settings,
        lifecycle=lifecycle,
        retry_policy=RetryPolicy(sleep=sleeps),
        totp=TOTPGenerator(clock=lambda: 59),
    )
