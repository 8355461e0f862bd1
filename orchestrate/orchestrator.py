"""
Scrape orchestrator: one fetch attempt for one target.

attempt() is a step function over (target, attempt_index). It keeps no state
between calls; the batch runner owns all retry bookkeeping and acts on the
tagged result:

    Success        -> record the value
    NeedsRotation  -> rotate identity, call again with next_attempt_index
    Exhausted      -> record a failed outcome
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from fetch.capture import write_debug_artifacts
from fetch.fetcher import FetchError, FieldMatch, FieldMiss, is_meaningful_value
from orchestrate.config import RunConfig, ScrapeConfig


NOT_FOUND_ERROR = "Could not find total asset value"


@dataclass(frozen=True)
class Success:
    value: str
    matched_selector: str
    user_agent: str | None = None


@dataclass(frozen=True)
class NeedsRotation:
    next_attempt_index: int
    error: str


@dataclass(frozen=True)
class Exhausted:
    error: str
    retries_used: int


AttemptResult = Union[Success, NeedsRotation, Exhausted]


class ScrapeOrchestrator:
    """Runs single fetch attempts against a page fetcher."""

    def __init__(self, fetcher, config: ScrapeConfig | None = None) -> None:
        self.fetcher = fetcher
        self.config = config or ScrapeConfig()

    def attempt(self, target: str, attempt_index: int, max_attempts: int | None = None) -> AttemptResult:
        """
        Make attempt number attempt_index (0-based) for target.

        A fetch error and "no selector matched" are handled alike: both ask
        for a new identity while attempts remain. max_attempts defaults to
        RunConfig's.
        """
        if max_attempts is None:
            max_attempts = RunConfig().max_attempts
        if not target:
            raise ValueError("target must be a non-empty string")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        miss: FieldMiss | None = None
        try:
            found = self.fetcher.fetch_field(
                target,
                list(self.config.selectors),
                self.config.selector_timeout_ms,
            )
        except FetchError as e:
            error = str(e) or type(e).__name__
        else:
            if isinstance(found, FieldMatch) and is_meaningful_value(found.value):
                print(f"  [fetch] found total assets: {found.value} (selector: {found.selector})")
                return Success(
                    value=found.value.strip(),
                    matched_selector=found.selector,
                    user_agent=found.user_agent,
                )
            if isinstance(found, FieldMiss):
                miss = found
            error = NOT_FOUND_ERROR

        print(f"  [fetch] error scraping {target}: {error}")

        if attempt_index + 1 < max_attempts:
            return NeedsRotation(next_attempt_index=attempt_index + 1, error=error)

        if miss is not None and self.config.capture_debug:
            write_debug_artifacts(target, miss, self.config.debug_dir)
        return Exhausted(error=error, retries_used=attempt_index)
