"""
Tests for fetch/fetcher.py and fetch/capture.py.

Playwright is replaced by fake pages and a mocked sync_playwright; no browser
is launched.
"""

import random
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

import fetch.fetcher as fetcher_mod
from fetch.capture import debug_stem, write_debug_artifacts
from fetch.config import USER_AGENTS, FetchConfig
from fetch.fetcher import (
    FieldMatch,
    FieldMiss,
    NavigationTimeout,
    NetworkError,
    PageFetcher,
    get_user_agent,
    is_meaningful_value,
    match_selectors,
)


class FakeHandle:
    def __init__(self, text):
        self.text = text

    def text_content(self):
        return self.text


class FakePage:
    """Page whose selectors resolve from a dict; missing ones time out."""

    def __init__(self, texts=None, goto_error=None):
        self.texts = texts or {}
        self.goto_error = goto_error
        self.waited: list[str] = []
        self.visited: list[str] = []

    def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        if self.goto_error:
            raise self.goto_error

    def wait_for_timeout(self, ms):
        pass

    def wait_for_selector(self, selector, timeout=None):
        self.waited.append(selector)
        if selector not in self.texts:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded")
        return FakeHandle(self.texts[selector])

    def content(self):
        return "<html>snapshot</html>"

    def screenshot(self, full_page=False):
        return b"png-bytes"


# ---------------------------------------------------------------------------
# Value filter
# ---------------------------------------------------------------------------

class TestMeaningfulValue:

    @pytest.mark.parametrize("text", ["$8,869-1.29%", "$0.01", "12", " $3,576+100.00% "])
    def test_real_values(self, text):
        assert is_meaningful_value(text)

    @pytest.mark.parametrize("text", [None, "", "   ", "0", " 0 ", "undefined", "$undefined+0%"])
    def test_sentinels(self, text):
        assert not is_meaningful_value(text)


# ---------------------------------------------------------------------------
# Selector matching
# ---------------------------------------------------------------------------

class TestMatchSelectors:

    def test_first_selector_wins(self):
        page = FakePage({"a": "$1", "b": "$2"})
        assert match_selectors(page, ["a", "b"], 100) == ("$1", "a")
        assert page.waited == ["a"]

    def test_falls_through_on_timeout(self):
        page = FakePage({"b": "$2"})
        assert match_selectors(page, ["a", "b"], 100) == ("$2", "b")

    def test_falls_through_on_sentinel(self):
        page = FakePage({"a": "0", "b": " $2 "})
        assert match_selectors(page, ["a", "b"], 100) == ("$2", "b")

    def test_none_when_nothing_matches(self):
        page = FakePage({"a": "undefined"})
        assert match_selectors(page, ["a", "b"], 100) is None

    def test_empty_selector_list(self):
        assert match_selectors(FakePage(), [], 100) is None


# ---------------------------------------------------------------------------
# Config helpers
# ---------------------------------------------------------------------------

class TestFetchConfig:

    def test_profile_url(self):
        config = FetchConfig()
        assert config.profile_url("0xabc") == "https://debank.com/profile/0xabc"

    def test_custom_template(self):
        config = FetchConfig(profile_url_template="http://localhost:8000/p/{target}")
        assert config.profile_url("0xabc") == "http://localhost:8000/p/0xabc"

    def test_fixed_user_agent(self):
        assert get_user_agent(FetchConfig(user_agent="ua/1.0")) == "ua/1.0"

    def test_rotated_user_agent(self):
        assert get_user_agent(FetchConfig(), random.Random(3)) in USER_AGENTS

    def test_rotation_disabled(self):
        assert get_user_agent(FetchConfig(rotate_user_agent=False)) == USER_AGENTS[0]

    def test_launch_args_use_proxy(self):
        fetcher = PageFetcher(FetchConfig(proxy_server="socks5://127.0.0.1:9050"))
        args = fetcher._launch_args()
        assert args["proxy"] == {"server": "socks5://127.0.0.1:9050"}
        assert args["headless"] is True

    def test_launch_args_without_proxy(self):
        assert "proxy" not in PageFetcher(FetchConfig())._launch_args()


# ---------------------------------------------------------------------------
# fetch_field with a mocked browser
# ---------------------------------------------------------------------------

@pytest.fixture
def browser_with(monkeypatch):
    """Install a mocked sync_playwright serving the given page."""

    def _install(page):
        playwright = MagicMock()
        browser = playwright.chromium.launch.return_value
        context = browser.new_context.return_value
        context.new_page.return_value = page

        manager = MagicMock()
        manager.__enter__.return_value = playwright
        manager.__exit__.return_value = False
        monkeypatch.setattr(fetcher_mod, "sync_playwright", lambda: manager)
        stealth = MagicMock()
        monkeypatch.setattr(fetcher_mod, "Stealth", stealth)
        return playwright, browser, stealth

    return _install


class TestFetchField:

    def _fetcher(self):
        config = FetchConfig(settle_min_ms=0, settle_max_ms=0)
        return PageFetcher(config, rng=random.Random(0))

    def test_match(self, browser_with):
        page = FakePage({"sel": "$8,869-1.29%"})
        _, browser, stealth = browser_with(page)

        result = self._fetcher().fetch_field("0xabc", ["sel"], 100)

        assert isinstance(result, FieldMatch)
        assert result.value == "$8,869-1.29%"
        assert result.selector == "sel"
        assert page.visited == ["https://debank.com/profile/0xabc"]
        stealth.return_value.apply_stealth_sync.assert_called_once_with(page)
        browser.close.assert_called_once()

    def test_miss_carries_snapshot(self, browser_with):
        _, browser, _ = browser_with(FakePage())

        result = self._fetcher().fetch_field("0xabc", ["sel"], 100)

        assert isinstance(result, FieldMiss)
        assert result.html == "<html>snapshot</html>"
        assert result.screenshot == b"png-bytes"
        browser.close.assert_called_once()

    def test_navigation_timeout(self, browser_with):
        _, browser, _ = browser_with(FakePage(goto_error=PlaywrightTimeoutError("Timeout 45000ms")))

        with pytest.raises(NavigationTimeout):
            self._fetcher().fetch_field("0xabc", ["sel"], 100)
        browser.close.assert_called_once()

    def test_network_error(self, browser_with):
        browser_with(FakePage(goto_error=PlaywrightError("net::ERR_SOCKS_CONNECTION_FAILED")))

        with pytest.raises(NetworkError, match="ERR_SOCKS"):
            self._fetcher().fetch_field("0xabc", ["sel"], 100)

    def test_launch_failure(self, browser_with):
        playwright, _, _ = browser_with(FakePage())
        playwright.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")

        with pytest.raises(NetworkError):
            self._fetcher().fetch_field("0xabc", ["sel"], 100)


# ---------------------------------------------------------------------------
# Debug capture
# ---------------------------------------------------------------------------

class TestCapture:

    def test_stem_is_filesystem_safe(self):
        assert debug_stem("0xabc/../x y", 123) == "debug_0xabc_.._x_y_123"

    def test_writes_both_files(self, tmp_path):
        miss = FieldMiss(html="<html/>", screenshot=b"png")
        written = write_debug_artifacts("0xabc", miss, tmp_path / "debug")

        assert sorted(p.suffix for p in written) == [".html", ".png"]
        assert all(p.exists() for p in written)

    def test_skips_missing_parts(self, tmp_path):
        written = write_debug_artifacts("0xabc", FieldMiss(html="<html/>"), tmp_path)
        assert [p.suffix for p in written] == [".html"]

    def test_write_failure_is_swallowed(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        miss = FieldMiss(html="<html/>", screenshot=b"png")

        assert write_debug_artifacts("0xabc", miss, blocker) == []
