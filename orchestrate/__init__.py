"""
Orchestration modules for the wallet scrape pipeline.

The orchestrator makes single attempts, the runner sequences them with Tor
identity rotation, and the presenter turns the batch result into the JSON
artifact.
"""

from .config import (
    RunConfig,
    ScrapeConfig,
    Settings,
    build_settings,
    load_run_config,
    load_targets,
    normalize_targets,
    PROJECT_ROOT,
    OUTPUT_FILE,
    DEBUG_DIR,
    EXEC_LOG_FILE,
)
from .orchestrator import (
    AttemptResult,
    Exhausted,
    NeedsRotation,
    ScrapeOrchestrator,
    Success,
)
from .results import BatchResult, BatchTiming, Outcome, RotationLogEntry
from .runner import BatchRunner
from .presenter import (
    append_execution_log,
    batch_result_from_artifact,
    build_artifact,
    load_artifact,
    print_summary,
    write_artifact,
)

__all__ = [
    "RunConfig",
    "ScrapeConfig",
    "Settings",
    "build_settings",
    "load_run_config",
    "load_targets",
    "normalize_targets",
    "PROJECT_ROOT",
    "OUTPUT_FILE",
    "DEBUG_DIR",
    "EXEC_LOG_FILE",
    "AttemptResult",
    "Exhausted",
    "NeedsRotation",
    "ScrapeOrchestrator",
    "Success",
    "BatchResult",
    "BatchTiming",
    "Outcome",
    "RotationLogEntry",
    "BatchRunner",
    "append_execution_log",
    "batch_result_from_artifact",
    "build_artifact",
    "load_artifact",
    "print_summary",
    "write_artifact",
]
