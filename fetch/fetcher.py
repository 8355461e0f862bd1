"""
Profile page fetcher: Playwright page load + ordered selector match.

One browser per fetch. Tor hands out circuits per connection, so a fresh
browser is what makes an identity rotation visible to the target site.
"""

import random
from dataclasses import dataclass

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright
from playwright_stealth import Stealth

from .config import ACCEPT_LANGUAGES, DEFAULT_HEADERS, USER_AGENTS, VIEWPORTS, FetchConfig


EMPTY_SENTINELS = ("", "0")
UNDEFINED_TOKEN = "undefined"


class FetchError(Exception):
    """Raised when a profile page could not be loaded."""
    pass


class NavigationTimeout(FetchError):
    """Page navigation exceeded its timeout."""
    pass


class NetworkError(FetchError):
    """Browser launch or navigation failed at the network level."""
    pass


@dataclass(frozen=True)
class FieldMatch:
    """A selector produced a usable value."""
    value: str
    selector: str
    user_agent: str | None = None


@dataclass(frozen=True)
class FieldMiss:
    """Page loaded but no selector produced a usable value.

    Carries a snapshot of the rendered page for diagnostics.
    """
    html: str | None = None
    screenshot: bytes | None = None
    user_agent: str | None = None


def is_meaningful_value(text: str | None) -> bool:
    """True unless the text is empty, "0", or mentions "undefined".

    A real zero balance also fails this check; see DESIGN.md.
    """
    if text is None:
        return False
    text = text.strip()
    if text in EMPTY_SENTINELS:
        return False
    return UNDEFINED_TOKEN not in text


def get_user_agent(config: FetchConfig, rng: random.Random | None = None) -> str:
    """Get user agent string (fixed or rotated)."""
    if config.user_agent:
        return config.user_agent
    if config.rotate_user_agent:
        return (rng or random).choice(USER_AGENTS)
    return USER_AGENTS[0]


def match_selectors(page, selectors, timeout_ms: int) -> tuple[str, str] | None:
    """
    Try selectors in order against a loaded page.

    Args:
        page: Playwright page object
        selectors: ordered selector candidates
        timeout_ms: wait budget per selector

    Returns:
        (value, selector) for the first meaningful match, or None
    """
    for selector in selectors:
        try:
            handle = page.wait_for_selector(selector, timeout=timeout_ms)
            if handle is None:
                continue
            text = handle.text_content()
        except PlaywrightError:
            continue
        if is_meaningful_value(text):
            return text.strip(), selector
    return None


def _page_snapshot(page) -> tuple[str | None, bytes | None]:
    html = None
    screenshot = None
    try:
        html = page.content()
    except PlaywrightError:
        pass
    try:
        screenshot = page.screenshot(full_page=True)
    except PlaywrightError:
        pass
    return html, screenshot


class PageFetcher:
    """Loads one profile page per call and reads the first matching field."""

    def __init__(self, config: FetchConfig | None = None, rng: random.Random | None = None):
        self.config = config or FetchConfig()
        self._rng = rng or random.Random()

    def _launch_args(self) -> dict:
        args = {
            'headless': self.config.headless,
            'args': list(self.config.browser_args),
        }
        if self.config.proxy_server:
            args['proxy'] = {'server': self.config.proxy_server}
        return args

    def _context_args(self, user_agent: str) -> dict:
        headers = DEFAULT_HEADERS.copy()
        headers['Accept-Language'] = self._rng.choice(ACCEPT_LANGUAGES)
        return {
            'user_agent': user_agent,
            'viewport': self._rng.choice(VIEWPORTS),
            'extra_http_headers': headers,
        }

    def fetch_field(self, target: str, selectors, timeout_ms: int) -> FieldMatch | FieldMiss:
        """
        Load the profile page for target and read the first meaningful selector.

        Raises:
            NavigationTimeout: navigation did not finish in time
            NetworkError: browser launch or navigation failed
        """
        url = self.config.profile_url(target)
        user_agent = get_user_agent(self.config, self._rng)

        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(**self._launch_args())
                try:
                    context = browser.new_context(**self._context_args(user_agent))
                    page = context.new_page()
                    if self.config.stealth:
                        Stealth().apply_stealth_sync(page)

                    page.goto(
                        url,
                        wait_until=self.config.wait_until,
                        timeout=self.config.navigation_timeout_ms,
                    )

                    settle_ms = self._rng.randint(self.config.settle_min_ms, self.config.settle_max_ms)
                    print(f"  [fetch] waiting {settle_ms / 1000:.2f}s for content to load...")
                    page.wait_for_timeout(settle_ms)

                    found = match_selectors(page, selectors, timeout_ms)
                    if found:
                        value, selector = found
                        return FieldMatch(value=value, selector=selector, user_agent=user_agent)

                    html, screenshot = _page_snapshot(page)
                    return FieldMiss(html=html, screenshot=screenshot, user_agent=user_agent)
                finally:
                    browser.close()

        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"navigation timed out: {url}") from e
        except PlaywrightError as e:
            raise NetworkError(f"{type(e).__name__}: {str(e)[:200]}") from e
