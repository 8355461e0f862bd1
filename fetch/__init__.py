"""
Profile page fetch layer.

Primary interface:
    from fetch import PageFetcher, FetchConfig

    fetcher = PageFetcher(FetchConfig(proxy_server="socks5://127.0.0.1:9050"))
    found = fetcher.fetch_field("0xabc...", TOTAL_ASSET_SELECTORS, timeout_ms=4000)

    # Returns FieldMatch(value, selector, user_agent) on success or
    # FieldMiss(html, screenshot, user_agent) when no selector matched.
    # Raises NavigationTimeout / NetworkError (both FetchError).
"""

from .config import FetchConfig, TOTAL_ASSET_SELECTORS, USER_AGENTS
from .fetcher import (
    FetchError,
    FieldMatch,
    FieldMiss,
    NavigationTimeout,
    NetworkError,
    PageFetcher,
    is_meaningful_value,
)
from .capture import write_debug_artifacts


__all__ = [
    'FetchConfig',
    'TOTAL_ASSET_SELECTORS',
    'USER_AGENTS',
    'FetchError',
    'FieldMatch',
    'FieldMiss',
    'NavigationTimeout',
    'NetworkError',
    'PageFetcher',
    'is_meaningful_value',
    'write_debug_artifacts',
]
