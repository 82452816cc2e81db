"""CLI helper to prime a cookie jar through a manual (MFA) login."""

from __future__ import annotations

import argparse
import logging

from stealth_browser.browser.requests import SaveCookiesRequest
from stealth_browser.browser.session import SessionLifecycle
from stealth_browser.browser.settings import BrowserSettings


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Open a headed browser, log in manually, then save the session cookies.",
    )
    parser.add_argument("url", help="Login page to open (e.g. https://portal.example.com/login)")
    parser.add_argument("cookies_path", help="Where to write the cookie jar (inside COOKIES_BASE_DIR)")
    parser.add_argument(
        "--wait-until",
        default="load",
        choices=["load", "domcontentloaded", "networkidle"],
        help="When to consider the initial navigation finished.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    request = SaveCookiesRequest(
        url=args.url, cookies_path=args.cookies_path, wait_until=args.wait_until, headless=False
    )
    lifecycle = SessionLifecycle(BrowserSettings.from_env())
    target = lifecycle.cookie_store.validate_path(request.cookies_path)

    def login(session) -> int:
        session.goto(request.url, wait_until=request.wait_until)
        input("Complete the login (including any MFA), then press Enter to save cookies...")
        return lifecycle.cookie_store.save(session, target)

    count = lifecycle.run(login, headless=False)
    print(f"Saved {count} cookies to {target}")


if __name__ == "__main__":
    main()
