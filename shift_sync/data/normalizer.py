# data/normalizer.py
"""
Snapshot -> canonical report.

Snapshots written over the years nest their data three ways: plain objects,
JSON encoded into string fields (sometimes escaped twice), and bare employee
ids that have to be looked up in the snapshot's own employee list. Every
variant is decoded here, once, so the rest of the program only sees the
canonical shape built by the report writer.

A bad entry is logged and skipped. Only a snapshot whose top level is not an
object raises ReportFormatError.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from shift_sync.exceptions import ReportFormatError
from shift_sync.models.absence import CATEGORIES, LEAVE, SICK, ABSENT
from shift_sync.models.employee import DEFAULT_GROUP_ID, DEFAULT_ROLE_ID, now_stamp
from shift_sync.models.role import Role
from shift_sync.models.shift import MORNING, EVENING, DEFAULT_CAPACITY
from shift_sync.models.task import Task, PENDING, IN_PROGRESS, COMPLETED
from shift_sync.utils.date_helper import today_key
from shift_sync.utils.parse_utils import parse_embedded_json, parse_id_list, to_bool, to_int

_logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "shift_capacity": DEFAULT_CAPACITY,
    "morning_capacity": DEFAULT_CAPACITY,
    "evening_capacity": DEFAULT_CAPACITY,
    "shared_folder_path": "",
    "selected_display_group": DEFAULT_GROUP_ID,
}

EMPLOYEE_KEYS = {
    "EmployeeId": "employee_id",
    "FirstName": "first_name",
    "LastName": "last_name",
    "Role": "role",
    "RoleId": "role_id",
    "ShiftGroupId": "shift_group_id",
    "PhotoPath": "photo_path",
    "IsManager": "is_manager",
    "CreatedAt": "created_at",
    "UpdatedAt": "updated_at",
}
SHIFT_KEYS = {
    "ShiftType": "shift_type",
    "Capacity": "capacity",
    "TeamLeaderId": "team_leader_id",
    "AssignedEmployeeIds": "assigned_employee_ids",
    "AssignedEmployees": "assigned_employees",
}
GROUP_KEYS = {
    "GroupId": "group_id",
    "Name": "name",
    "Description": "description",
    "Color": "color",
    "SupervisorName": "supervisor_name",
    "IsActive": "is_active",
    "MorningShift": "morning_shift",
    "EveningShift": "evening_shift",
    "AfternoonShift": "afternoon_shift",
    "MorningCapacity": "morning_capacity",
    "EveningCapacity": "evening_capacity",
    "AfternoonCapacity": "afternoon_capacity",
    "TeamLeaderId": "team_leader_id",
}
ABSENCE_KEYS = {
    "EmployeeId": "employee_id",
    "EmployeeName": "employee_name",
    "FirstName": "first_name",
    "LastName": "last_name",
    "Category": "category",
    "Date": "date",
    "Notes": "notes",
    "CreatedAt": "created_at",
    "Employee": "employee",
}
TASK_KEYS = {
    "TaskId": "task_id",
    "Title": "title",
    "Description": "description",
    "Priority": "priority",
    "Status": "status",
    "EstimatedHours": "estimated_hours",
    "ActualHours": "actual_hours",
    "TargetDate": "target_date",
    "StartDate": "start_date",
    "CompletionDate": "completion_date",
    "Notes": "notes",
    "AssignedEmployees": "assigned_employees",
    "CreatedAt": "created_at",
    "UpdatedAt": "updated_at",
}
ROLE_KEYS = {
    "RoleId": "role_id",
    "Name": "name",
    "Description": "description",
    "Color": "color",
    "Priority": "priority",
}

# canonical, capitalized English and the Persian keys of old snapshots
ABSENCE_CATEGORY_KEYS = {
    "leave": LEAVE, "Leave": LEAVE, "مرخصی": LEAVE,
    "sick": SICK, "Sick": SICK, "بیمار": SICK,
    "absent": ABSENT, "Absent": ABSENT, "غایب": ABSENT,
}

TASK_PRIORITY_ALIASES = {
    "low": "low", "medium": "medium", "high": "high", "urgent": "high",
    "کم": "low", "متوسط": "medium", "زیاد": "high", "فوری": "high",
    0: "low", 1: "medium", 2: "high", 3: "high",
}
# cancelled tasks are closed; they read back as completed
TASK_STATUS_ALIASES = {
    "pending": PENDING, "in_progress": IN_PROGRESS, "inprogress": IN_PROGRESS,
    "completed": COMPLETED, "cancelled": COMPLETED,
    "در انتظار": PENDING, "در حال انجام": IN_PROGRESS, "تکمیل شده": COMPLETED, "لغو شده": COMPLETED,
    0: PENDING, 1: IN_PROGRESS, 2: COMPLETED, 3: COMPLETED,
}


def _map_keys(data: dict, key_map: dict) -> dict:
    out = {}
    for k, v in data.items():
        out.setdefault(key_map.get(k, k), v)
    # canonical keys beat their legacy spelling
    for k, v in data.items():
        if k in key_map.values():
            out[k] = v
    return out


def _decode_dict(value, what: str, where) -> Optional[dict]:
    data = parse_embedded_json(value)
    if not isinstance(data, dict):
        _logger.warning("skipping malformed %s at %s", what, where)
        return None
    return data


def _str(value) -> str:
    return "" if value is None else str(value)


# ---------------- employees ----------------
def normalize_employee(entry, where="?") -> Optional[dict]:
    data = _decode_dict(entry, "employee", where)
    if data is None:
        return None
    data = _map_keys(data, EMPLOYEE_KEYS)
    emp_id = data.get("employee_id")
    if emp_id in (None, ""):
        _logger.warning("skipping employee without id at %s", where)
        return None
    role_id = _str(data.get("role_id") or data.get("role") or DEFAULT_ROLE_ID)
    return {
        "employee_id": _str(emp_id),
        "first_name": _str(data.get("first_name")),
        "last_name": _str(data.get("last_name")),
        "role_id": role_id,
        "role": role_id,
        "shift_group_id": _str(data.get("shift_group_id") or DEFAULT_GROUP_ID),
        "photo_path": _str(data.get("photo_path")),
        "is_manager": to_bool(data.get("is_manager", False)),
        "created_at": _str(data.get("created_at")),
        "updated_at": _str(data.get("updated_at")),
    }


def _normalize_employee_list(entries, section: str) -> List[dict]:
    entries = parse_embedded_json(entries) if isinstance(entries, str) else entries
    if entries is None:
        return []
    if not isinstance(entries, list):
        _logger.warning("%s is not a list, ignored", section)
        return []
    out = []
    for i, entry in enumerate(entries):
        rec = normalize_employee(entry, f"{section}[{i}]")
        if rec is not None:
            out.append(rec)
    return out


def full_name(rec: dict) -> str:
    return f"{rec.get('first_name', '')} {rec.get('last_name', '')}".strip()


def matches_manager_role(rec: dict, prefixes: Sequence[str]) -> bool:
    role = (rec.get("role") or rec.get("role_id") or "").strip().lower()
    return any(p and role.startswith(p.lower()) for p in prefixes)


def derive_managers(employees: Iterable[dict], prefixes: Sequence[str]) -> List[dict]:
    return [e for e in employees if e.get("is_manager") or matches_manager_role(e, prefixes)]


# ---------------- shifts ----------------
def empty_shift(shift_type: str, capacity: int = DEFAULT_CAPACITY) -> dict:
    return {
        "shift_type": shift_type,
        "capacity": capacity,
        "team_leader_id": "",
        "team_leader_name": "",
        "slots": [None] * capacity,
        "assigned_employees": [],
    }


def shift_record(shift_type, capacity, ids, team_leader_id, lookup, where) -> dict:
    slots = []
    for emp_id in ids:
        if emp_id is not None and emp_id not in lookup:
            _logger.warning("%s: unknown employee %s dropped from roster", where, emp_id)
            emp_id = None
        slots.append(emp_id)
    # compact rosters from old writers must still fit the capacity
    if len(slots) > capacity:
        overflow = [s for s in slots[capacity:] if s is not None]
        if overflow:
            _logger.warning("%s: %d assigned beyond capacity %d, truncated", where, len(overflow), capacity)
        slots = slots[:capacity]
    slots.extend([None] * (capacity - len(slots)))
    leader = _str(team_leader_id)
    return {
        "shift_type": shift_type,
        "capacity": capacity,
        "team_leader_id": leader,
        "team_leader_name": full_name(lookup[leader]) if leader in lookup else "",
        "slots": slots,
        "assigned_employees": [lookup[s] for s in slots if s is not None],
    }


def _is_record(item) -> bool:
    if isinstance(item, dict):
        return "employee_id" in item or "EmployeeId" in item
    if isinstance(item, str) and item.lstrip().startswith("{"):
        return _is_record(parse_embedded_json(item))
    return False


def normalize_shift(raw, shift_type: str, lookup: Dict[str, dict], where: str = "?",
                    capacity_hint=None, leader_hint=None) -> dict:
    """
    One shift in any encoding -> ShiftRecord.

    Roster sources, first found wins:
    - "slots" (canonical, positions kept)
    - "AssignedEmployeeIds" (legacy id list, nulls are empty slots)
    - "assigned_employees": records when the first non-null entry carries an
      employee_id, otherwise bare ids
    Missing or undecodable input gives an empty shift.
    """
    capacity = to_int(capacity_hint, DEFAULT_CAPACITY)
    if raw in (None, ""):
        return shift_record(shift_type, max(1, capacity), [], leader_hint, lookup, where)
    data = _decode_dict(raw, "shift", where)
    if data is None:
        return shift_record(shift_type, max(1, capacity), [], leader_hint, lookup, where)
    data = _map_keys(data, SHIFT_KEYS)
    capacity = max(1, to_int(data.get("capacity"), capacity))

    local = lookup
    assigned = data.get("assigned_employees")
    if isinstance(assigned, str):
        assigned = parse_embedded_json(assigned)
    if not isinstance(assigned, list):
        assigned = []
    first = next((a for a in assigned if a is not None), None)
    record_ids = None
    if _is_record(first):
        local = dict(lookup)
        record_ids = []
        for i, item in enumerate(assigned):
            rec = normalize_employee(item, f"{where}.assigned_employees[{i}]") if item is not None else None
            if rec is not None:
                local.setdefault(rec["employee_id"], rec)
                record_ids.append(rec["employee_id"])

    if isinstance(data.get("slots"), list):
        ids = parse_id_list(data["slots"])
    elif "assigned_employee_ids" in data:
        ids = parse_id_list(data["assigned_employee_ids"])
    elif record_ids is not None:
        ids = record_ids
    else:
        ids = parse_id_list(assigned)

    leader = data.get("team_leader_id") or leader_hint
    return shift_record(shift_type, capacity, ids, leader, local, where)


# ---------------- groups ----------------
def normalize_group(raw, lookup: Dict[str, dict], group_id_hint: str = "", where: str = "?") -> Optional[dict]:
    data = _decode_dict(raw, "shift group", where)
    if data is None:
        return None
    data = _map_keys(data, GROUP_KEYS)
    group_id = _str(data.get("group_id") or group_id_hint)
    if not group_id:
        _logger.warning("skipping shift group without id at %s", where)
        return None
    evening_raw = data.get("evening_shift")
    evening_cap = data.get("evening_capacity")
    if evening_raw in (None, ""):
        evening_raw = data.get("afternoon_shift")
        evening_cap = evening_cap if evening_cap is not None else data.get("afternoon_capacity")
    leader = data.get("team_leader_id")
    return {
        "group_id": group_id,
        "name": _str(data.get("name") or group_id),
        "description": _str(data.get("description")),
        "color": _str(data.get("color") or "#4CAF50"),
        "supervisor_name": _str(data.get("supervisor_name")),
        "is_active": to_bool(data.get("is_active", True)),
        "morning_shift": normalize_shift(data.get("morning_shift"), MORNING, lookup,
                                         f"{where}.morning", data.get("morning_capacity"), leader),
        "evening_shift": normalize_shift(evening_raw, EVENING, lookup,
                                         f"{where}.evening", evening_cap, leader),
    }


def _default_group(morning: dict, evening: dict) -> dict:
    return {
        "group_id": DEFAULT_GROUP_ID,
        "name": "Default",
        "description": "",
        "color": "#4CAF50",
        "supervisor_name": "",
        "is_active": True,
        "morning_shift": morning,
        "evening_shift": evening,
    }


def _normalize_groups(section, shifts: dict, lookup) -> List[dict]:
    """
    - list of group objects (current writer)
    - {"ShiftGroups": {id: json-string}} (old writer)
    - absent: one group from shifts.selected_group, else shifts.morning/evening
    """
    section = parse_embedded_json(section) if isinstance(section, str) else section
    groups: List[dict] = []
    if isinstance(section, list):
        for i, item in enumerate(section):
            g = normalize_group(item, lookup, where=f"shift_groups[{i}]")
            if g is not None:
                groups.append(g)
    elif isinstance(section, dict):
        mapping = section.get("ShiftGroups", section.get("shift_groups", section))
        mapping = parse_embedded_json(mapping) if isinstance(mapping, str) else mapping
        if isinstance(mapping, dict):
            for gid, item in mapping.items():
                if gid in ("DefaultGroupId", "default_group_id"):
                    continue
                g = normalize_group(item, lookup, _str(gid), where=f"shift_groups.{gid}")
                if g is not None:
                    groups.append(g)
    if groups:
        groups.sort(key=lambda g: g["group_id"] != DEFAULT_GROUP_ID)
        return groups

    selected = shifts.get("selected_group") if isinstance(shifts, dict) else None
    selected = parse_embedded_json(selected)
    if isinstance(selected, dict) and selected:
        g = normalize_group(selected, lookup, DEFAULT_GROUP_ID, where="shifts.selected_group")
        if g is not None:
            return [g]
    return []


def _normalize_top_shifts(shifts, lookup) -> Optional[Dict[str, dict]]:
    """The top-level morning/evening pair, or None when the snapshot has none."""
    shifts = parse_embedded_json(shifts) if isinstance(shifts, str) else shifts
    if not isinstance(shifts, dict):
        return None
    if "morning" in shifts or "evening" in shifts:
        return {
            "morning": normalize_shift(shifts.get("morning"), MORNING, lookup, "shifts.morning"),
            "evening": normalize_shift(shifts.get("evening"), EVENING, lookup, "shifts.evening"),
        }
    if "MorningShift" in shifts or "EveningShift" in shifts:
        cap = shifts.get("Capacity")
        return {
            "morning": normalize_shift(shifts.get("MorningShift"), MORNING, lookup, "shifts.MorningShift", cap),
            "evening": normalize_shift(shifts.get("EveningShift"), EVENING, lookup, "shifts.EveningShift", cap),
        }
    return None


# ---------------- absences ----------------
def _normalize_absence(entry, category: str, lookup, where) -> Optional[dict]:
    data = _decode_dict(entry, "absence", where)
    if data is None:
        return None
    data = _map_keys(data, ABSENCE_KEYS)
    emp = parse_embedded_json(data.get("employee"))
    if isinstance(emp, dict):
        emp = _map_keys(emp, EMPLOYEE_KEYS)
        for k in ("employee_id", "first_name", "last_name"):
            data.setdefault(k, emp.get(k))
    emp_id = _str(data.get("employee_id"))
    if not emp_id:
        _logger.warning("skipping absence without employee at %s", where)
        return None
    name = _str(data.get("employee_name"))
    if not name:
        name = full_name(lookup[emp_id]) if emp_id in lookup else full_name(
            {"first_name": _str(data.get("first_name")), "last_name": _str(data.get("last_name"))})
    return {
        "employee_id": emp_id,
        "category": category,
        "date": _str(data.get("date")).replace("/", "-"),
        "notes": _str(data.get("notes")),
        "employee_name": name,
        "created_at": _str(data.get("created_at")),
    }


def _normalize_absences(section, lookup) -> Dict[str, List[dict]]:
    out: Dict[str, List[dict]] = {c: [] for c in CATEGORIES}
    section = parse_embedded_json(section) if section is not None else None
    if not isinstance(section, dict):
        if section is not None:
            _logger.warning("absences is not an object, ignored")
        return out
    for nested in ("Absences", "absences"):
        if isinstance(section.get(nested), (dict, str)):
            section = parse_embedded_json(section[nested]) or {}
            break
    for key, entries in section.items():
        category = ABSENCE_CATEGORY_KEYS.get(key) or ABSENCE_CATEGORY_KEYS.get(_str(key).lower())
        if category is None:
            _logger.warning("unknown absence category %r ignored", key)
            continue
        entries = parse_embedded_json(entries) if isinstance(entries, str) else entries
        if not isinstance(entries, list):
            _logger.warning("absences.%s is not a list, ignored", key)
            continue
        for i, entry in enumerate(entries):
            rec = _normalize_absence(entry, category, lookup, f"absences.{key}[{i}]")
            if rec is not None:
                out[category].append(rec)
    return out


# ---------------- tasks / roles ----------------
def _alias(value, table, default):
    if isinstance(value, str):
        key = value.strip()
        return table.get(key) or table.get(key.lower().replace(" ", "_")) or table.get(key.lower().replace(" ", "")) or default
    return table.get(value, default)


def _normalize_tasks(section) -> dict:
    section = parse_embedded_json(section) if section is not None else None
    if not isinstance(section, dict):
        return {"tasks": {}, "next_task_id": 1}
    raw_tasks = section.get("tasks", section.get("Tasks", {}))
    raw_tasks = parse_embedded_json(raw_tasks) if isinstance(raw_tasks, str) else raw_tasks
    tasks = {}
    if isinstance(raw_tasks, dict):
        items = list(raw_tasks.items())
    elif isinstance(raw_tasks, list):
        items = [(None, t) for t in raw_tasks]
    else:
        items = []
    for tid, entry in items:
        data = _decode_dict(entry, "task", f"tasks.{tid}")
        if data is None:
            continue
        data = _map_keys(data, TASK_KEYS)
        data.setdefault("task_id", tid)
        if data.get("task_id") in (None, ""):
            _logger.warning("skipping task without id")
            continue
        data["priority"] = _alias(data.get("priority"), TASK_PRIORITY_ALIASES, "medium")
        data["status"] = _alias(data.get("status"), TASK_STATUS_ALIASES, PENDING)
        data["assigned_employees"] = [x for x in parse_id_list(data.get("assigned_employees")) if x]
        try:
            task = Task.from_dict(data)
        except (TypeError, ValueError):
            _logger.warning("skipping malformed task %s", tid)
            continue
        tasks[task.task_id] = task.to_dict()
    numeric = [int(t) for t in tasks if t.isdigit()]
    next_id = to_int(section.get("next_task_id", section.get("NextTaskId")), 1)
    next_id = max([next_id, 1] + [n + 1 for n in numeric])
    return {"tasks": tasks, "next_task_id": next_id}


def _normalize_roles(section) -> Dict[str, dict]:
    section = parse_embedded_json(section) if section is not None else None
    if not isinstance(section, dict):
        return {}
    for nested in ("Roles", "roles"):
        if isinstance(section.get(nested), (dict, str)):
            section = parse_embedded_json(section[nested]) or {}
            break
    roles = {}
    for rid, entry in section.items():
        data = _decode_dict(entry, "role", f"roles.{rid}")
        if data is None:
            continue
        data = _map_keys(data, ROLE_KEYS)
        data.setdefault("role_id", rid)
        try:
            role = Role.from_dict(data)
        except (KeyError, TypeError, ValueError):
            _logger.warning("skipping malformed role %s", rid)
            continue
        roles[role.role_id] = role.to_dict()
    return roles


def _normalize_settings(section) -> dict:
    out = dict(DEFAULT_SETTINGS)
    section = parse_embedded_json(section) if section is not None else None
    if isinstance(section, dict):
        out.update(section)
    return out


# ---------------- report ----------------
def normalize_report(raw: Any, manager_prefixes: Sequence[str] = ()) -> dict:
    """
    Decoded snapshot (any supported schema) -> canonical report.

    manager_prefixes: role prefixes that count as manager when the snapshot
    has no explicit managers list. Empty disables the role heuristic;
    is_manager still applies.
    """
    if not isinstance(raw, dict):
        raise ReportFormatError(f"snapshot root must be an object, got {type(raw).__name__}")

    employees = _normalize_employee_list(raw.get("employees"), "employees")
    managers = _normalize_employee_list(raw.get("managers"), "managers")

    lookup: Dict[str, dict] = {}
    for rec in managers + employees:
        lookup[rec["employee_id"]] = rec

    if not managers:
        managers = derive_managers(employees, manager_prefixes)

    shifts_raw = raw.get("shifts")
    groups = _normalize_groups(raw.get("shift_groups"), parse_embedded_json(shifts_raw) or {}, lookup)
    shifts = _normalize_top_shifts(shifts_raw, lookup)
    if not groups:
        if shifts is None:
            shifts = {"morning": empty_shift(MORNING), "evening": empty_shift(EVENING)}
        groups = [_default_group(shifts["morning"], shifts["evening"])]
    if shifts is None:
        settings = _normalize_settings(raw.get("settings"))
        wanted = settings.get("selected_display_group", DEFAULT_GROUP_ID)
        shown = next((g for g in groups if g["group_id"] == wanted), groups[0])
        shifts = {"morning": shown["morning_shift"], "evening": shown["evening_shift"]}

    return {
        "date": _str(raw.get("date")),
        "employees": employees,
        "managers": managers,
        "roles": _normalize_roles(raw.get("roles")),
        "shifts": shifts,
        "shift_groups": groups,
        "absences": _normalize_absences(raw.get("absences"), lookup),
        "tasks": _normalize_tasks(raw.get("tasks")),
        "settings": _normalize_settings(raw.get("settings")),
        "last_modified": _str(raw.get("last_modified")),
    }


def default_report(date: Optional[str] = None, settings: Optional[dict] = None) -> dict:
    """Schema-valid report for "no data yet"."""
    merged = dict(DEFAULT_SETTINGS)
    merged.update(settings or {})
    morning = empty_shift(MORNING, to_int(merged.get("morning_capacity"), DEFAULT_CAPACITY))
    evening = empty_shift(EVENING, to_int(merged.get("evening_capacity"), DEFAULT_CAPACITY))
    return {
        "date": date or today_key(),
        "employees": [],
        "managers": [],
        "roles": {},
        "shifts": {"morning": morning, "evening": evening},
        "shift_groups": [_default_group(dict(morning, slots=list(morning["slots"])),
                                        dict(evening, slots=list(evening["slots"])))],
        "absences": {c: [] for c in CATEGORIES},
        "tasks": {"tasks": {}, "next_task_id": 1},
        "settings": merged,
        "last_modified": now_stamp(),
    }
