# models/absence.py
from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Dict, List, Optional

from shift_sync.models.employee import now_stamp

LEAVE = "leave"
SICK = "sick"
ABSENT = "absent"
CATEGORIES = (LEAVE, SICK, ABSENT)

@dataclass
class AbsenceRecord:
    employee_id: str
    category: str
    date: str                       # business calendar date, YYYY-MM-DD
    notes: str = ""
    employee_name: str = ""
    created_at: str = field(default_factory=now_stamp)

    def to_dict(self):
        return asdict(self)


class AbsenceManager:
    """At most one record per (employee, date); a new mark replaces the old one."""

    def __init__(self):
        self._records: Dict[tuple, AbsenceRecord] = {}

    def mark(self, employee_id: str, category: str, date: str,
             notes: str = "", employee_name: str = "") -> Optional[AbsenceRecord]:
        if category not in CATEGORIES or not employee_id or not date:
            return None
        rec = AbsenceRecord(employee_id, category, date, notes, employee_name)
        self._records[(employee_id, date)] = rec
        return rec

    def clear(self, employee_id: str, date: str) -> bool:
        return self._records.pop((employee_id, date), None) is not None

    def remove_employee(self, employee_id: str) -> int:
        keys = [k for k in self._records if k[0] == employee_id]
        for k in keys:
            del self._records[k]
        return len(keys)

    def get(self, employee_id: str, date: str) -> Optional[AbsenceRecord]:
        return self._records.get((employee_id, date))

    def is_absent(self, employee_id: str, date: str) -> bool:
        return (employee_id, date) in self._records

    def absent_ids(self, date: str) -> set:
        return {emp for (emp, d) in self._records if d == date}

    def for_date(self, date: str) -> List[AbsenceRecord]:
        return [r for (_, d), r in self._records.items() if d == date]

    def by_category(self, date: Optional[str] = None) -> Dict[str, List[AbsenceRecord]]:
        out: Dict[str, List[AbsenceRecord]] = {c: [] for c in CATEGORIES}
        for rec in self._records.values():
            if date is None or rec.date == date:
                out[rec.category].append(rec)
        return out

    def load(self, records):
        self._records = {}
        for r in records:
            self._records[(r.employee_id, r.date)] = r
