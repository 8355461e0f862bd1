"""
Shared fakes for the scrape pipeline tests.

FakeFetcher replays a scripted list of fetch outcomes; FakeIdentity stands in
for the Tor provider. Neither touches the network or a browser.
"""

import random
import sys
from pathlib import Path

import pytest

# Ensure project root on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fetch.fetcher import FieldMatch, FieldMiss


class FakeFetcher:
    """Page fetcher returning scripted results per target.

    script maps target -> list of FieldMatch / FieldMiss / Exception. Once a
    target's list is used up, its last item repeats.
    """

    def __init__(self, script: dict | None = None, default=None):
        self.script = {k.lower(): list(v) for k, v in (script or {}).items()}
        self.default = default if default is not None else FieldMiss()
        self.calls: list[tuple[str, list, int]] = []

    def fetch_field(self, target, selectors, timeout_ms):
        self.calls.append((target, list(selectors), timeout_ms))
        items = self.script.get(target)
        if not items:
            item = self.default
        elif len(items) > 1:
            item = items.pop(0)
        else:
            item = items[0]
        if isinstance(item, BaseException):
            raise item
        return item


class FakeIdentity:
    """Identity provider with scripted reachability and IPs.

    identities is consumed one item per current_identity() call; an Exception
    item is raised instead of returned. When exhausted, the last IP repeats.
    """

    def __init__(self, reachable=True, identities=None, renew_error=None):
        self.reachable = reachable
        self.identities = list(identities) if identities is not None else None
        self.renew_error = renew_error
        self.renew_calls = 0
        self.identity_calls = 0
        self._counter = 0
        self._last = None

    def is_reachable(self):
        return self.reachable

    def current_identity(self):
        self.identity_calls += 1
        if self.identities is None:
            self._counter += 1
            return f"10.0.0.{self._counter}"
        if self.identities:
            item = self.identities.pop(0)
        else:
            item = self._last
        if isinstance(item, BaseException):
            raise item
        self._last = item
        return item

    def renew(self):
        self.renew_calls += 1
        if self.renew_error is not None:
            raise self.renew_error


@pytest.fixture
def match():
    def _make(value="$8,869-1.29%", selector='[class*="HeaderInfo_totalAssetInner"]'):
        return FieldMatch(value=value, selector=selector, user_agent="test-agent")
    return _make


@pytest.fixture
def miss():
    def _make(html="<html><body>blocked</body></html>", screenshot=b"\x89PNG"):
        return FieldMiss(html=html, screenshot=screenshot, user_agent="test-agent")
    return _make


@pytest.fixture
def sleeps():
    """Recorded sleep durations."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append


@pytest.fixture
def rng():
    return random.Random(1234)
