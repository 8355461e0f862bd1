"""
Batch runner: sequences the scrape orchestrator over a target list.

Targets run strictly one at a time so exactly one exit identity is in use at
any moment. Per target:

    Ready -> Fetching -> Success
                      -> NeedsRotation -> Rotating -> Fetching
                      -> Exhausted

Between targets the identity is rotated unconditionally, whether or not the
previous target failed. Only an unreachable Tor proxy before the first target
aborts the batch; every other error ends up in that target's Outcome.
"""

from __future__ import annotations

import random
import sys
import time
from dataclasses import replace
from datetime import datetime, timezone

from orchestrate.config import RunConfig, normalize_targets
from orchestrate.orchestrator import Exhausted, NeedsRotation, ScrapeOrchestrator, Success
from orchestrate.results import BatchResult, BatchTiming, Outcome, RotationLogEntry
from orchestrate.timing import EtaTracker, format_clock, format_duration


UNREACHABLE_ERROR = "Tor proxy is not reachable"

BANNER = "=" * 60


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BatchRunner:
    """Runs a batch of targets with identity rotation between requests."""

    def __init__(
        self,
        orchestrator: ScrapeOrchestrator,
        identity,
        config: RunConfig | None = None,
        sleep=time.sleep,
        clock=time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.identity = identity
        self.config = config or RunConfig()
        self._sleep = sleep
        self._clock = clock
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def run(self, targets) -> BatchResult:
        targets = normalize_targets(targets)
        started_at = _utc_now()
        started = self._clock()
        eta = EtaTracker(len(targets), started, self.config.estimated_seconds_per_target)

        self._print_estimate(started_at, eta)

        outcomes: list[Outcome] = []
        rotation_log: list[RotationLogEntry] = []
        failed_targets: list[str] = []

        print("Checking Tor proxy accessibility...")
        if not self.identity.is_reachable():
            print(f"Fatal error: {UNREACHABLE_ERROR}", file=sys.stderr)
            return self._build_result(
                outcomes, rotation_log, failed_targets, started_at, started, eta,
                fatal_error=UNREACHABLE_ERROR,
            )

        initial = self._observe_identity()
        rotation_log.append(RotationLogEntry(0, initial, "Initial"))
        print(f"[tor] initial IP: {initial or 'unknown'}")
        print(f"\nScraping {len(targets)} addresses with IP rotation...\n")

        for i, target in enumerate(targets):
            target_started = self._clock()

            print(f"\n[{BANNER}]")
            print(f"[{i + 1}/{len(targets)}] Processing: {target}")
            if i > 0:
                self._print_progress(eta.progress(i, self._clock()))
            print(f"[{BANNER}]")

            outcome = self._process_target(i, target, rotation_log)
            duration = self._clock() - target_started
            outcome = replace(outcome, duration_seconds=round(duration, 3))
            print(f"  [done] {target} in {format_duration(duration)}")

            outcomes.append(outcome)
            if not outcome.succeeded:
                failed_targets.append(target)

            if i < len(targets) - 1:
                self._pause(self.config.request_delay_seconds, "before next request")

        return self._build_result(outcomes, rotation_log, failed_targets, started_at, started, eta)

    # ------------------------------------------------------------------
    # Target
    # ------------------------------------------------------------------

    def _process_target(self, index: int, target: str, rotation_log: list[RotationLogEntry]) -> Outcome:
        max_attempts = self.config.max_attempts
        attempt_index = 0
        try:
            if index > 0:
                self._rotate(index + 1, target, rotation_log)
                self._pause(self.config.settle_delay_seconds, "for circuit stabilization")

            while True:
                result = self.orchestrator.attempt(target, attempt_index, max_attempts)

                if isinstance(result, Success):
                    return Outcome(
                        target=target,
                        value=result.value,
                        matched_selector=result.matched_selector,
                        succeeded=True,
                        retries_used=attempt_index,
                        user_agent=result.user_agent,
                    )

                if isinstance(result, NeedsRotation) and result.next_attempt_index < max_attempts:
                    attempt_index = result.next_attempt_index
                    print(f"  [retry] changing IP for retry... (attempt {attempt_index}/{max_attempts - 1})")
                    self._rotate(f"{index + 1}-retry-{attempt_index}", target, rotation_log)
                    self._pause(self.config.retry_settle_delay_seconds, "for circuit stabilization")
                    continue

                if isinstance(result, Exhausted):
                    return Outcome(
                        target=target,
                        succeeded=False,
                        error=result.error,
                        retries_used=result.retries_used,
                    )

                return Outcome(
                    target=target,
                    succeeded=False,
                    error=getattr(result, "error", None) or "attempt budget exhausted",
                    retries_used=attempt_index,
                )

        except Exception as e:
            message = f"{type(e).__name__}: {e}"
            print(f"  [error] {target}: {message}", file=sys.stderr)
            return Outcome(target=target, succeeded=False, error=message, retries_used=attempt_index)

    # ------------------------------------------------------------------
    # Rotation
    # ------------------------------------------------------------------

    def _observe_identity(self) -> str | None:
        try:
            return self.identity.current_identity()
        except Exception as e:
            print(f"  [tor] could not read current IP: {e}", file=sys.stderr)
            return None

    def _rotate(self, label: int | str, target: str, rotation_log: list[RotationLogEntry]) -> None:
        """Renew identity, poll until it changes, and log it either way."""
        # last identity actually observed; failed checks log None
        previous = next((e.identity for e in reversed(rotation_log) if e.identity is not None), None)

        print("\n  [rotate] forcing new Tor circuit...")
        try:
            self.identity.renew()
        except Exception as e:
            print(f"  [rotate] warning: renewal failed: {e}", file=sys.stderr)

        identity, changed = self._await_new_identity(previous)
        rotation_log.append(RotationLogEntry(label, identity, target, changed))

    def _await_new_identity(self, previous: str | None) -> tuple[str | None, bool]:
        polls = self.config.rotation_poll_attempts
        observed = None

        for poll in range(1, polls + 1):
            try:
                observed = self.identity.current_identity()
            except Exception as e:
                print(f"  [rotate] failed to check IP: {e}")
                if poll < polls:
                    self._sleep(self.config.rotation_poll_error_backoff_seconds)
                continue

            if previous is None or observed != previous:
                print(f"  [rotate] new IP acquired: {observed}")
                return observed, True

            print(f"  [rotate] IP unchanged ({observed}), waiting longer... ({poll}/{polls})")
            if poll < polls:
                self._sleep(self.config.rotation_poll_backoff_seconds)

        print("  [rotate] warning: could not acquire new IP after multiple attempts", file=sys.stderr)
        return observed, False

    def _pause(self, bounds: tuple[float, float], reason: str) -> None:
        low, high = bounds
        delay = self._rng.uniform(low, high)
        print(f"  waiting {delay:.2f}s {reason}...")
        self._sleep(delay)

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    def _print_estimate(self, started_at: datetime, eta: EtaTracker) -> None:
        estimated = eta.estimated_total_seconds
        end_at = eta.progress(0, eta.started).eta(started_at)
        print("\n" + BANNER)
        print("TIME ESTIMATION")
        print(BANNER)
        print(f"Start Time: {format_clock(started_at.astimezone())}")
        print(f"Estimated End Time: {format_clock(end_at.astimezone())}")
        print(f"Estimated Duration: {format_duration(estimated)}")
        print(f"Total Addresses: {eta.total}")
        print(BANNER + "\n")

    def _print_progress(self, progress) -> None:
        eta_at = progress.eta(_utc_now()).astimezone()
        print(
            f"[eta] Progress: {progress.percent:.1f}% | "
            f"Elapsed: {format_duration(progress.elapsed_seconds)} | "
            f"ETA: {format_clock(eta_at)} ({format_duration(progress.remaining_seconds)} remaining)"
        )

    def _build_result(
        self,
        outcomes: list[Outcome],
        rotation_log: list[RotationLogEntry],
        failed_targets: list[str],
        started_at: datetime,
        started: float,
        eta: EtaTracker,
        fatal_error: str | None = None,
    ) -> BatchResult:
        duration = max(0.0, self._clock() - started)
        average = duration / len(outcomes) if outcomes else 0.0
        timing = BatchTiming(
            start=started_at.isoformat(),
            end=_utc_now().isoformat(),
            duration_seconds=round(duration, 3),
            average_per_target_seconds=round(average, 3),
            estimated_seconds=eta.estimated_total_seconds,
        )
        return BatchResult(
            outcomes=tuple(outcomes),
            rotation_log=tuple(rotation_log),
            failed_targets=tuple(failed_targets),
            timing=timing,
            fatal_error=fatal_error,
        )
