"""
Batch run records: per-target outcomes, rotation log, and the batch result.
"""

from __future__ import annotations

from dataclasses import dataclass


STATUS_COMPLETED = "completed"
STATUS_FATAL = "fatal"


@dataclass(frozen=True)
class Outcome:
    """Terminal result for one target after all attempts."""
    target: str
    value: str | None = None
    matched_selector: str | None = None
    succeeded: bool = False
    error: str | None = None
    retries_used: int = 0
    user_agent: str | None = None
    duration_seconds: float = 0.0


@dataclass(frozen=True)
class RotationLogEntry:
    """One observed identity, tagged with the request it preceded.

    sequence_label is the 1-based request number (0 for the initial
    identity) or "<request>-retry-<n>" for rotations inside a retry.
    """
    sequence_label: int | str
    identity: str | None
    target: str
    changed: bool = False


@dataclass(frozen=True)
class BatchTiming:
    start: str  # ISO 8601 UTC
    end: str
    duration_seconds: float
    average_per_target_seconds: float = 0.0
    estimated_seconds: float = 0.0


@dataclass(frozen=True)
class BatchResult:
    """Everything a batch run produced. Built once, at the end of the run."""
    outcomes: tuple[Outcome, ...]
    rotation_log: tuple[RotationLogEntry, ...]
    failed_targets: tuple[str, ...]
    timing: BatchTiming
    fatal_error: str | None = None

    @property
    def status(self) -> str:
        return STATUS_FATAL if self.fatal_error else STATUS_COMPLETED

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def successful(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        return self.total - self.successful

    @property
    def success_rate(self) -> float:
        """Percentage in [0, 100]; 0.0 for an empty batch."""
        if not self.total:
            return 0.0
        return self.successful / self.total * 100.0
