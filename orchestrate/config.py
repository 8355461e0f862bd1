"""
Configuration loading for scrape orchestration.

Policy values live in frozen dataclasses that are passed explicitly into the
orchestrator and batch runner. A run config file (JSON or YAML) overrides the
defaults section by section: run, scrape, fetch, tor.
"""

import json
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

import yaml

from fetch.config import FetchConfig, TOTAL_ASSET_SELECTORS
from network.tor import TorConfig


# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
OUTPUT_FILE = PROJECT_ROOT / "debank-results.json"
DEBUG_DIR = PROJECT_ROOT / "debug"
LOGS_DIR = PROJECT_ROOT / "logs"
EXEC_LOG_FILE = LOGS_DIR / "executions.jsonl"


@dataclass(frozen=True)
class RunConfig:
    """Batch policy: retry ceiling, rotation polling, and delays (seconds)."""
    max_attempts: int = 3
    rotation_poll_attempts: int = 3
    rotation_poll_backoff_seconds: float = 2.0  # identity unchanged
    rotation_poll_error_backoff_seconds: float = 1.5  # identity check failed
    settle_delay_seconds: tuple[float, float] = (1.0, 1.5)  # after inter-target rotation
    retry_settle_delay_seconds: tuple[float, float] = (1.0, 2.0)  # after retry rotation
    request_delay_seconds: tuple[float, float] = (0.5, 1.0)  # between targets
    estimated_seconds_per_target: float = 13.0  # up-front ETA only

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.rotation_poll_attempts < 1:
            raise ValueError("rotation_poll_attempts must be >= 1")
        for name in ("settle_delay_seconds", "retry_settle_delay_seconds", "request_delay_seconds"):
            low, high = getattr(self, name)
            if low < 0 or high < low:
                raise ValueError(f"{name} must be a (min, max) pair with 0 <= min <= max")


@dataclass(frozen=True)
class ScrapeConfig:
    """What to read from each page and where to keep diagnostics."""
    selectors: tuple[str, ...] = field(default=TOTAL_ASSET_SELECTORS)
    selector_timeout_ms: int = 4000
    capture_debug: bool = True
    debug_dir: Path = DEBUG_DIR


@dataclass(frozen=True)
class Settings:
    """Everything a batch run needs."""
    run: RunConfig = field(default_factory=RunConfig)
    scrape: ScrapeConfig = field(default_factory=ScrapeConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    tor: TorConfig = field(default_factory=TorConfig)


def load_run_config(path: str) -> dict:
    """Load a run configuration from JSON or YAML."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Run config not found: {path}")

    content = p.read_text(encoding="utf-8").strip()
    if not content:
        return {}

    try:
        if p.suffix.lower() in (".yaml", ".yml"):
            result = yaml.safe_load(content)
        else:
            result = json.loads(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if result and not isinstance(result, dict):
        raise ValueError("Run config must be a mapping of sections")
    return result or {}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce(name: str, key: str, default, value):
    """Check value against the type of the field default; raise ValueError on mismatch."""
    label = f"{name}.{key}"
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"{label} must be true or false, got {value!r}")
        return value
    if isinstance(default, int):
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"{label} must be an integer, got {value!r}")
        return value
    if isinstance(default, float):
        if not _is_number(value):
            raise ValueError(f"{label} must be a number, got {value!r}")
        return float(value)
    if isinstance(default, tuple):
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"{label} must be a list, got {value!r}")
        if default and all(_is_number(v) for v in default):
            if len(value) != len(default) or not all(_is_number(v) for v in value):
                raise ValueError(f"{label} must be a list of {len(default)} numbers, got {value!r}")
        elif not all(isinstance(v, str) for v in value):
            raise ValueError(f"{label} must be a list of strings, got {value!r}")
        return tuple(value)
    if isinstance(default, Path):
        if not isinstance(value, (str, Path)):
            raise ValueError(f"{label} must be a path, got {value!r}")
        return Path(value)
    if default is None or isinstance(default, str):
        # None defaults (proxy_server, user_agent) are optional strings
        if value is None and default is None:
            return value
        if not isinstance(value, str):
            raise ValueError(f"{label} must be a string, got {value!r}")
        return value
    return value


def _apply_section(instance, section, name: str):
    if not section:
        return instance
    if not isinstance(section, dict):
        raise ValueError(f"Run config section '{name}' must be a mapping")

    known = {f.name for f in fields(instance)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown {name} settings: {', '.join(unknown)}")

    defaults = {f.name: f.default for f in fields(instance)}
    values = {k: _coerce(name, k, defaults[k], v) for k, v in section.items()}
    return replace(instance, **values)


def build_settings(cfg: dict | None = None, overrides: dict | None = None) -> Settings:
    """
    Build Settings by merging config layers.

    Precedence: overrides > cfg file > defaults. Both layers are dicts keyed
    by section name (run, scrape, fetch, tor). The browser is pointed at the
    Tor SOCKS port unless fetch.proxy_server is set explicitly.
    """
    cfg = cfg or {}
    overrides = overrides or {}

    unknown = sorted((set(cfg) | set(overrides)) - {"run", "scrape", "fetch", "tor"})
    if unknown:
        raise ValueError(f"Unknown run config sections: {', '.join(unknown)}")

    settings = Settings()
    sections = {}
    for name in ("run", "scrape", "fetch", "tor"):
        instance = getattr(settings, name)
        instance = _apply_section(instance, cfg.get(name), name)
        instance = _apply_section(instance, overrides.get(name), name)
        sections[name] = instance

    if sections["fetch"].proxy_server is None:
        sections["fetch"] = replace(sections["fetch"], proxy_server=sections["tor"].proxy_server)

    return Settings(**sections)


def normalize_targets(raw) -> list[str]:
    """Strip, lower-case and de-duplicate targets, keeping first-seen order."""
    seen: set[str] = set()
    targets: list[str] = []
    for item in raw:
        target = str(item).strip().lower()
        if not target or target in seen:
            continue
        seen.add(target)
        targets.append(target)
    return targets


def parse_targets_text(text: str) -> list[str]:
    """Split whitespace/comma separated addresses, skipping # comments."""
    lines = [line.split("#", 1)[0] for line in text.splitlines()]
    return [tok for tok in re.split(r"[\s,]+", " ".join(lines)) if tok]


def load_targets(path: str) -> list[str]:
    """Load a target list from a text, JSON or YAML file."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Targets file not found: {path}")
    content = p.read_text(encoding="utf-8")

    suffix = p.suffix.lower()
    if suffix in (".json", ".yaml", ".yml"):
        try:
            # BaseLoader keeps unquoted 0x... addresses as strings
            data = yaml.load(content, Loader=yaml.BaseLoader) if suffix != ".json" else json.loads(content)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if isinstance(data, dict):
            data = data.get("addresses", data.get("targets"))
        if not isinstance(data, list):
            raise ValueError("Targets file must be a list or contain 'addresses' list")
        return normalize_targets(data)

    return normalize_targets(parse_targets_text(content))
