# data/snapshot_locator.py
from __future__ import annotations
import logging
import re
from pathlib import Path
from typing import List, Optional

_logger = logging.getLogger(__name__)

BACKUP_MARKER = "_backup_"
_REPORT_RE = re.compile(r"^report_(?P<date>.+)\.json$")


def snapshot_path_for_date(reports_dir: Path, date: str) -> Path:
    return Path(reports_dir) / f"report_{date}.json"


def is_backup(path: Path) -> bool:
    return BACKUP_MARKER in Path(path).name


def _candidates(reports_dir: Path):
    d = Path(reports_dir)
    if not d.is_dir():
        return []
    try:
        return [p for p in d.glob("report_*.json") if p.is_file() and not is_backup(p)]
    except OSError as exc:
        _logger.warning("cannot list %s: %s", d, exc)
        return []


def find_latest_snapshot(reports_dir: Path) -> Optional[Path]:
    """Newest non-backup snapshot by modification time, or None."""
    best, best_mtime = None, None
    for p in _candidates(reports_dir):
        try:
            mtime = p.stat().st_mtime
        except OSError:
            # removed between listing and stat
            continue
        if best_mtime is None or mtime > best_mtime:
            best, best_mtime = p, mtime
    return best


def list_report_dates(reports_dir: Path) -> List[str]:
    """Dates that have a report, newest first."""
    dates = set()
    for p in _candidates(reports_dir):
        m = _REPORT_RE.match(p.name)
        if m:
            dates.add(m.group("date"))
    return sorted(dates, reverse=True)
