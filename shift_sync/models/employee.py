# models/employee.py
from __future__ import annotations
import itertools
import time
from datetime import datetime

TIMESTAMP_FMT = "%Y-%m-%dT%H:%M:%S"
DEFAULT_GROUP_ID = "default"
DEFAULT_ROLE_ID = "employee"

_id_counter = itertools.count(1)


def now_stamp() -> str:
    return datetime.now().strftime(TIMESTAMP_FMT)


def new_employee_id() -> str:
    # emp_<n>_<unix seconds>; n keeps ids unique within one second
    return f"emp_{next(_id_counter)}_{int(time.time())}"


class Employee:
    def __init__(self, employee_id, first_name, last_name="",
                 role_id=DEFAULT_ROLE_ID, shift_group_id=DEFAULT_GROUP_ID,
                 is_manager=False, photo_path="",
                 created_at=None, updated_at=None):
        self.employee_id = employee_id
        self.first_name = first_name
        self.last_name = last_name
        self.role_id = role_id or DEFAULT_ROLE_ID
        self.shift_group_id = shift_group_id or DEFAULT_GROUP_ID
        self.is_manager = bool(is_manager)
        self.photo_path = photo_path or ""
        self.created_at = created_at or now_stamp()
        self.updated_at = updated_at or self.created_at

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def update(self, **fields) -> bool:
        """Apply the given fields; unknown names are ignored. Returns True if anything changed."""
        changed = False
        for key in ("first_name", "last_name", "role_id", "shift_group_id", "is_manager", "photo_path"):
            if key not in fields or fields[key] is None:
                continue
            value = bool(fields[key]) if key == "is_manager" else fields[key]
            if getattr(self, key) != value:
                setattr(self, key, value)
                changed = True
        if changed:
            self.updated_at = now_stamp()
        return changed

    def to_dict(self):
        return {
            "employee_id": self.employee_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role_id": self.role_id,
            "role": self.role_id,   # older readers look at "role"
            "shift_group_id": self.shift_group_id,
            "photo_path": self.photo_path,
            "is_manager": self.is_manager,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @staticmethod
    def from_dict(data):
        return Employee(
            employee_id=str(data["employee_id"]),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            role_id=data.get("role_id") or data.get("role") or DEFAULT_ROLE_ID,
            shift_group_id=data.get("shift_group_id") or DEFAULT_GROUP_ID,
            is_manager=data.get("is_manager", False),
            photo_path=data.get("photo_path") or "",
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    def __repr__(self):
        return f"Employee({self.employee_id!r}, {self.full_name!r})"
