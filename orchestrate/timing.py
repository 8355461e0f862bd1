"""
Run timing: duration formatting and running ETA projection.

Informational only; nothing here feeds back into control flow.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta


def format_duration(sec: float) -> str:
    """Format seconds as e.g. '1h 2m 3s', '2m 5s' or '42s'."""
    total = int(max(0.0, sec))
    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_clock(moment: datetime) -> str:
    """Wall-clock time as HH:MM:SS."""
    return moment.strftime("%H:%M:%S")


@dataclass(frozen=True)
class Progress:
    """Snapshot of batch progress before processing the next target."""
    done: int
    total: int
    elapsed_seconds: float
    average_seconds: float
    remaining_seconds: float

    @property
    def percent(self) -> float:
        return (self.done / self.total * 100.0) if self.total else 100.0

    def eta(self, now: datetime) -> datetime:
        return now + timedelta(seconds=self.remaining_seconds)


class EtaTracker:
    """Running average time-per-target and remaining-time projection."""

    def __init__(self, total: int, started: float, estimated_seconds_per_target: float = 0.0):
        self.total = total
        self.started = started
        self.estimated_seconds_per_target = estimated_seconds_per_target

    @property
    def estimated_total_seconds(self) -> float:
        return self.total * self.estimated_seconds_per_target

    def progress(self, done: int, now: float) -> Progress:
        elapsed = max(0.0, now - self.started)
        if done > 0:
            average = elapsed / done
        else:
            average = self.estimated_seconds_per_target
        remaining = max(0, self.total - done) * average
        return Progress(
            done=done,
            total=self.total,
            elapsed_seconds=elapsed,
            average_seconds=average,
            remaining_seconds=remaining,
        )
