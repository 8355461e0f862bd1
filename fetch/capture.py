"""
Diagnostic capture for profile pages that never yielded a value.

Saves the rendered HTML and a full-page screenshot next to each other so a
failed target can be inspected after the run. Purely a side channel: nothing
here raises.
"""

import re
import sys
import time
from pathlib import Path

from .fetcher import FieldMiss


def debug_stem(target: str, timestamp_ms: int | None = None) -> str:
    """Build a filesystem-safe file stem for a target's debug artifacts."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    safe = re.sub(r'[^A-Za-z0-9_.-]', '_', target)[:120] or 'target'
    return f"debug_{safe}_{timestamp_ms}"


def _write(path: Path, data: str | bytes) -> bool:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, bytes):
            path.write_bytes(data)
        else:
            path.write_text(data, encoding='utf-8')
        return True
    except OSError as e:
        print(f"  [capture] could not write {path}: {e}", file=sys.stderr)
        return False


def write_debug_artifacts(target: str, miss: FieldMiss, debug_dir: Path) -> list[Path]:
    """
    Write the page snapshot carried by a miss.

    Args:
        target: wallet address the page belongs to
        miss: FieldMiss with optional html/screenshot
        debug_dir: directory for the artifacts

    Returns:
        Paths actually written (possibly empty)
    """
    written: list[Path] = []
    stem = debug_stem(target)

    if miss.screenshot:
        ss_path = Path(debug_dir) / f"{stem}.png"
        if _write(ss_path, miss.screenshot):
            print(f"  [capture] screenshot saved: {ss_path}")
            written.append(ss_path)

    if miss.html:
        html_path = Path(debug_dir) / f"{stem}.html"
        if _write(html_path, miss.html):
            print(f"  [capture] page content saved: {html_path}")
            written.append(html_path)

    return written
