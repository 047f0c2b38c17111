# data/report_writer.py
from __future__ import annotations
import json
import logging
import shutil
from pathlib import Path
from typing import Optional

from shift_sync.data.file_lock import exclusive_lock
from shift_sync.data.normalizer import derive_managers, shift_record, DEFAULT_SETTINGS
from shift_sync.data.snapshot_locator import snapshot_path_for_date, BACKUP_MARKER
from shift_sync.models.employee import DEFAULT_GROUP_ID, now_stamp
from shift_sync.utils.date_helper import backup_stamp

_logger = logging.getLogger(__name__)


def _group_record(group, lookup) -> dict:
    return {
        "group_id": group.group_id,
        "name": group.name,
        "description": group.description,
        "color": group.color,
        "supervisor_name": group.supervisor_name,
        "is_active": group.is_active,
        "morning_shift": _shift(group.morning_shift, lookup, group.group_id),
        "evening_shift": _shift(group.evening_shift, lookup, group.group_id),
    }


def _shift(shift, lookup, group_id) -> dict:
    return shift_record(shift.shift_type, shift.capacity, shift.slots, shift.team_leader_id,
                        lookup, f"{group_id}.{shift.shift_type}")


def build_report(controller, date: Optional[str] = None) -> dict:
    """
    Canonical snapshot of the controller's entity model.
    Only objects, never JSON-in-string; ids in slots always resolve.
    """
    employees = [e.to_dict() for e in controller.employees()]
    lookup = {e["employee_id"]: e for e in employees}
    groups = [_group_record(g, lookup) for g in controller.shifts.groups()]

    settings = dict(DEFAULT_SETTINGS)
    settings.update(controller.settings)
    shown = next((g for g in groups if g["group_id"] == settings["selected_display_group"]), None)
    if shown is None:
        shown = next(g for g in groups if g["group_id"] == DEFAULT_GROUP_ID)

    absences = {cat: [r.to_dict() for r in recs]
                for cat, recs in controller.absences.by_category().items()}

    return {
        "date": date or controller.today(),
        "employees": employees,
        "managers": derive_managers(employees, controller.config.manager_role_prefixes),
        "roles": controller.roles.to_dict(),
        "shifts": {"morning": shown["morning_shift"], "evening": shown["evening_shift"]},
        "shift_groups": groups,
        "absences": absences,
        "tasks": controller.tasks.to_dict(),
        "settings": settings,
        "last_modified": now_stamp(),
    }


class ReportWriter:
    """
    Writes report_<date>.json under an exclusive lock.
    - the previous file for the same date is copied to report_<date>_backup_<stamp>.json
    - data goes to a .tmp file first and replaces the target in one rename
    """

    def __init__(self, reports_dir, max_backups: int = 10):
        self.reports_dir = Path(reports_dir)
        self.max_backups = max_backups

    def write(self, report: dict) -> Optional[Path]:
        path = snapshot_path_for_date(self.reports_dir, report["date"])
        try:
            self.reports_dir.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(report, ensure_ascii=False, indent=2)
            with exclusive_lock(path):
                if path.exists() and self.max_backups > 0:
                    self._backup(path, report["date"])
                tmp = path.with_suffix(path.suffix + ".tmp")
                tmp.write_text(payload, encoding="utf-8")
                tmp.replace(path)
        except (OSError, TypeError, ValueError):
            _logger.exception("failed to write report %s", path)
            return None
        _logger.info("report written: %s (%d employees)", path.name, len(report.get("employees", [])))
        return path

    def _backup(self, path: Path, date: str):
        target = self.reports_dir / f"report_{date}{BACKUP_MARKER}{backup_stamp()}.json"
        shutil.copy2(path, target)
        backups = sorted(self.reports_dir.glob(f"report_{date}{BACKUP_MARKER}*.json"))
        for old in backups[: max(0, len(backups) - self.max_backups)]:
            try:
                old.unlink()
            except OSError as exc:
                _logger.warning("could not prune backup %s: %s", old, exc)
