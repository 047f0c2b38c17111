# logic/shift_manager.py
from __future__ import annotations
import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from shift_sync.models.employee import DEFAULT_GROUP_ID
from shift_sync.models.shift import ShiftGroup, Shift, SHIFT_TYPES, DEFAULT_CAPACITY

_logger = logging.getLogger(__name__)

Assignment = Tuple[str, str, int]   # (group_id, shift_type, slot_index)


class ShiftManager:
    """
    Shift group registry and slot assignment.

    Rules
    - an employee sits in at most one slot across every group and shift
    - slot arrays always have exactly `capacity` entries
    - every mutation validates first and then applies, nothing half-done
    - the "default" group always exists
    """

    def __init__(self, employee_exists: Optional[Callable[[str], bool]] = None,
                 capacity: int = DEFAULT_CAPACITY):
        self._employee_exists = employee_exists
        self._default_capacity = capacity
        self._groups: Dict[str, ShiftGroup] = {}
        self._ensure_default()

    def _ensure_default(self):
        if DEFAULT_GROUP_ID not in self._groups:
            self._groups[DEFAULT_GROUP_ID] = ShiftGroup(
                DEFAULT_GROUP_ID, "Default", "Default shift group",
                morning_capacity=self._default_capacity,
                evening_capacity=self._default_capacity)

    # ---------------- groups ----------------
    def get_group(self, group_id: str) -> Optional[ShiftGroup]:
        return self._groups.get(group_id)

    def groups(self) -> List[ShiftGroup]:
        out = [self._groups[DEFAULT_GROUP_ID]]
        out.extend(g for gid, g in self._groups.items() if gid != DEFAULT_GROUP_ID)
        return out

    def add_group(self, group_id: str, name: str, description: str = "", color: str = "#4CAF50",
                  supervisor_name: str = "", morning_capacity: int = None,
                  evening_capacity: int = None) -> bool:
        group_id = (group_id or "").strip()
        if not group_id or group_id in self._groups:
            return False
        mc = morning_capacity or self._default_capacity
        ec = evening_capacity or self._default_capacity
        if mc < 1 or ec < 1:
            return False
        self._groups[group_id] = ShiftGroup(group_id, name or group_id, description, color,
                                            supervisor_name, True, mc, ec)
        _logger.info("shift group added: %s", group_id)
        return True

    def update_group(self, group_id: str, name=None, description=None, color=None,
                     supervisor_name=None, is_active=None) -> bool:
        g = self._groups.get(group_id)
        if g is None:
            return False
        if name is not None:
            g.name = name
        if description is not None:
            g.description = description
        if color is not None:
            g.color = color
        if supervisor_name is not None:
            g.supervisor_name = supervisor_name
        if is_active is not None:
            g.is_active = bool(is_active)
        return True

    def delete_group(self, group_id: str) -> Optional[List[str]]:
        """Remove a group. Returns the employees who lost their slot, None if refused."""
        if group_id == DEFAULT_GROUP_ID or group_id not in self._groups:
            return None
        g = self._groups.pop(group_id)
        freed = g.morning_shift.occupants() + g.evening_shift.occupants()
        _logger.info("shift group deleted: %s (%d freed)", group_id, len(freed))
        return freed

    def _shift(self, group_id: str, shift_type: str) -> Optional[Shift]:
        g = self._groups.get(group_id)
        if g is None or shift_type not in SHIFT_TYPES:
            return None
        return g.shift(shift_type)

    # ---------------- queries ----------------
    def find_assignment(self, employee_id: str) -> Optional[Assignment]:
        for g in self._groups.values():
            for s in g.shifts():
                i = s.index_of(employee_id)
                if i >= 0:
                    return g.group_id, s.shift_type, i
        return None

    def assigned_ids(self) -> set:
        ids = set()
        for g in self._groups.values():
            for s in g.shifts():
                ids.update(s.occupants())
        return ids

    def available_employees(self, employees: Iterable, absent_ids: Iterable[str] = ()) -> list:
        """Employees not in any slot and not absent. Accepts Employee objects."""
        taken = self.assigned_ids()
        absent = set(absent_ids)
        return [e for e in employees if e.employee_id not in taken and e.employee_id not in absent]

    def first_free_slot(self, shift_type: str, group_id: str = DEFAULT_GROUP_ID) -> int:
        s = self._shift(group_id, shift_type)
        if s is None:
            return -1
        try:
            return s.slots.index(None)
        except ValueError:
            return -1

    # ---------------- slot mutation ----------------
    def assign_employee_to_shift(self, employee_id: str, shift_type: str, slot_index: int,
                                 group_id: str = DEFAULT_GROUP_ID) -> bool:
        s = self._shift(group_id, shift_type)
        if s is None:
            _logger.warning("assign: unknown group/shift %s/%s", group_id, shift_type)
            return False
        if not isinstance(slot_index, int) or not 0 <= slot_index < s.capacity:
            _logger.warning("assign: slot %r out of range for %s/%s", slot_index, group_id, shift_type)
            return False
        if not employee_id or (self._employee_exists and not self._employee_exists(employee_id)):
            _logger.warning("assign: unknown employee %r", employee_id)
            return False

        if s.slots[slot_index] == employee_id:
            return True
        self.vacate_all(employee_id)
        displaced = s.slots[slot_index]
        s.slots[slot_index] = employee_id
        if displaced:
            _logger.debug("assign: %s displaced %s from %s/%s[%d]",
                          employee_id, displaced, group_id, shift_type, slot_index)
        return True

    def remove_employee_from_shift(self, employee_id: str, shift_type: str,
                                   group_id: str = DEFAULT_GROUP_ID) -> bool:
        s = self._shift(group_id, shift_type)
        if s is None:
            return False
        return s.vacate(employee_id)

    def vacate_all(self, employee_id: str) -> bool:
        hit = False
        for g in self._groups.values():
            for s in g.shifts():
                hit = s.vacate(employee_id) or hit
        return hit

    def remove_employee_everywhere(self, employee_id: str) -> bool:
        """Vacate all slots and drop team-leader references to the employee."""
        hit = self.vacate_all(employee_id)
        for g in self._groups.values():
            for s in g.shifts():
                if s.team_leader_id == employee_id:
                    s.team_leader_id = ""
                    hit = True
        return hit

    def clear_shift(self, shift_type: str, group_id: str = DEFAULT_GROUP_ID) -> Optional[List[str]]:
        s = self._shift(group_id, shift_type)
        if s is None:
            return None
        return s.clear()

    def set_shift_capacity(self, capacity: int) -> Optional[List[str]]:
        """Resize every shift of every group. Returns displaced employee ids."""
        if not isinstance(capacity, int) or capacity < 1:
            return None
        displaced = []
        for g in self._groups.values():
            for s in g.shifts():
                displaced.extend(s.resize(capacity))
        self._default_capacity = capacity
        return displaced

    def set_group_capacity(self, group_id: str, shift_type: str, capacity: int) -> Optional[List[str]]:
        s = self._shift(group_id, shift_type)
        if s is None or not isinstance(capacity, int) or capacity < 1:
            return None
        return s.resize(capacity)

    def set_team_leader(self, shift_type: str, employee_id: str,
                        group_id: str = DEFAULT_GROUP_ID) -> bool:
        s = self._shift(group_id, shift_type)
        if s is None:
            return False
        employee_id = employee_id or ""
        if employee_id and self._employee_exists and not self._employee_exists(employee_id):
            return False
        s.team_leader_id = employee_id
        return True

    def swap_shifts(self, group_id: str = DEFAULT_GROUP_ID) -> bool:
        g = self._groups.get(group_id)
        if g is None:
            return False
        g.swap()
        return True

    # ---------------- persistence ----------------
    def to_list(self) -> List[dict]:
        return [g.to_dict() for g in self.groups()]

    def load(self, groups: Iterable[ShiftGroup]):
        """Replace state. Duplicate occupants keep only their first slot."""
        self._groups = {}
        seen = set()
        for g in groups:
            for s in g.shifts():
                for i, emp in enumerate(s.slots):
                    if emp is None:
                        continue
                    if emp in seen or (self._employee_exists and not self._employee_exists(emp)):
                        _logger.warning("load: dropping slot %s/%s[%d] (%s)", g.group_id, s.shift_type, i, emp)
                        s.slots[i] = None
                    else:
                        seen.add(emp)
            self._groups[g.group_id] = g
        self._ensure_default()
