"""
Configuration for the profile page fetcher.
"""

from dataclasses import dataclass, field


# User agents for rotation
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0",
]

ACCEPT_LANGUAGES = [
    "en-US,en;q=0.9",
    "en-GB,en;q=0.9",
    "en-US,en;q=0.9,es;q=0.8",
    "en-CA,en;q=0.9,fr;q=0.8",
]

VIEWPORTS = [
    {"width": 1920, "height": 1080},
    {"width": 1366, "height": 768},
    {"width": 1536, "height": 864},
    {"width": 1440, "height": 900},
]

# Default request headers (Accept-Language is filled per page)
DEFAULT_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'DNT': '1',
    'Upgrade-Insecure-Requests': '1',
}

# Total-asset header on the profile page, most specific first
TOTAL_ASSET_SELECTORS = (
    '.HeaderInfo_totalAssetInner__HyrdC.HeaderInfo_curveEnable__HVRYq',
    '[class*="HeaderInfo_totalAssetInner"]',
)

DEFAULT_PROFILE_URL = "https://debank.com/profile/{target}"

# Chromium flags carried over from the proxied launches
BROWSER_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
)


@dataclass(frozen=True)
class FetchConfig:
    """Configuration for profile page fetches."""

    profile_url_template: str = DEFAULT_PROFILE_URL
    headless: bool = True
    proxy_server: str | None = None  # e.g. socks5://127.0.0.1:9050

    # Navigation
    navigation_timeout_ms: int = 45000
    wait_until: str = "networkidle"
    settle_min_ms: int = 2000  # random pause after load, before selectors
    settle_max_ms: int = 3000

    # Fingerprint
    user_agent: str | None = None  # if None, rotates from USER_AGENTS
    rotate_user_agent: bool = True
    stealth: bool = True  # playwright-stealth patches
    browser_args: tuple[str, ...] = field(default=BROWSER_ARGS)

    def __post_init__(self):
        if self.settle_min_ms < 0 or self.settle_max_ms < self.settle_min_ms:
            raise ValueError("settle_min_ms/settle_max_ms must satisfy 0 <= min <= max")
        if self.navigation_timeout_ms <= 0:
            raise ValueError("navigation_timeout_ms must be > 0")

    def profile_url(self, target: str) -> str:
        return self.profile_url_template.format(target=target)
