# models/shift.py
from __future__ import annotations
from typing import List, Optional

MORNING = "morning"
EVENING = "evening"
SHIFT_TYPES = (MORNING, EVENING)
DEFAULT_CAPACITY = 15


class Shift:
    """Fixed-length slot array. Each slot holds an employee id or None."""

    def __init__(self, shift_type, capacity=DEFAULT_CAPACITY, team_leader_id=""):
        self.shift_type = shift_type
        self.capacity = max(1, int(capacity))
        self.team_leader_id = team_leader_id or ""
        self.slots: List[Optional[str]] = [None] * self.capacity

    def index_of(self, employee_id) -> int:
        try:
            return self.slots.index(employee_id)
        except ValueError:
            return -1

    def occupants(self) -> List[str]:
        return [s for s in self.slots if s is not None]

    def vacate(self, employee_id) -> bool:
        i = self.index_of(employee_id)
        if i < 0:
            return False
        self.slots[i] = None
        return True

    def resize(self, capacity: int) -> List[str]:
        """Grow with empty slots or shrink; returns the displaced occupants."""
        displaced = [s for s in self.slots[capacity:] if s is not None]
        if capacity > self.capacity:
            self.slots.extend([None] * (capacity - self.capacity))
        else:
            del self.slots[capacity:]
        self.capacity = capacity
        return displaced

    def clear(self) -> List[str]:
        gone = self.occupants()
        self.slots = [None] * self.capacity
        return gone

    def to_dict(self):
        return {
            "shift_type": self.shift_type,
            "capacity": self.capacity,
            "team_leader_id": self.team_leader_id,
            "slots": list(self.slots),
        }

    @staticmethod
    def from_dict(data, shift_type=None):
        s = Shift(shift_type or data.get("shift_type", MORNING),
                  data.get("capacity", DEFAULT_CAPACITY),
                  data.get("team_leader_id") or "")
        slots = list(data.get("slots") or [])[: s.capacity]
        s.slots[: len(slots)] = [str(x) if x else None for x in slots]
        return s


class ShiftGroup:
    def __init__(self, group_id, name, description="", color="#4CAF50",
                 supervisor_name="", is_active=True,
                 morning_capacity=DEFAULT_CAPACITY, evening_capacity=DEFAULT_CAPACITY):
        self.group_id = group_id
        self.name = name
        self.description = description
        self.color = color
        self.supervisor_name = supervisor_name
        self.is_active = is_active
        self.morning_shift = Shift(MORNING, morning_capacity)
        self.evening_shift = Shift(EVENING, evening_capacity)

    def shift(self, shift_type) -> Optional[Shift]:
        if shift_type == MORNING:
            return self.morning_shift
        if shift_type == EVENING:
            return self.evening_shift
        return None

    def shifts(self):
        return (self.morning_shift, self.evening_shift)

    def swap(self):
        m, e = self.morning_shift, self.evening_shift
        m.shift_type, e.shift_type = EVENING, MORNING
        self.morning_shift, self.evening_shift = e, m

    def to_dict(self):
        return {
            "group_id": self.group_id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "supervisor_name": self.supervisor_name,
            "is_active": self.is_active,
            "morning_shift": self.morning_shift.to_dict(),
            "evening_shift": self.evening_shift.to_dict(),
        }

    @staticmethod
    def from_dict(data):
        g = ShiftGroup(
            str(data["group_id"]),
            data.get("name") or str(data["group_id"]),
            description=data.get("description", "") or "",
            color=data.get("color") or "#4CAF50",
            supervisor_name=data.get("supervisor_name", "") or "",
            is_active=bool(data.get("is_active", True)),
        )
        g.morning_shift = Shift.from_dict(data.get("morning_shift") or {}, MORNING)
        g.evening_shift = Shift.from_dict(data.get("evening_shift") or {}, EVENING)
        return g
