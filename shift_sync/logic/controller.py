# logic/controller.py
from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

from shift_sync.data.data_manager import AppConfig
from shift_sync.data.normalizer import DEFAULT_SETTINGS
from shift_sync.data.report_writer import ReportWriter, build_report
from shift_sync.logic.shift_manager import ShiftManager
from shift_sync.models.absence import AbsenceManager, AbsenceRecord, CATEGORIES
from shift_sync.models.employee import Employee, DEFAULT_GROUP_ID, new_employee_id
from shift_sync.models.role import RoleManager
from shift_sync.models.shift import ShiftGroup, SHIFT_TYPES
from shift_sync.models.task import TaskManager, Task
from shift_sync.utils.date_helper import today_key

_logger = logging.getLogger(__name__)

# observer topics
EMPLOYEES = "employees"
SHIFTS = "shifts"
GROUPS = "groups"
ABSENCES = "absences"
TASKS = "tasks"
ROLES = "roles"
SETTINGS = "settings"
RELOADED = "reloaded"

Observer = Callable[[str], None]


class Controller:
    """
    Entity model of the management console.

    Built once at startup and handed to every window and dialog. Each
    successful mutation writes a snapshot (when a writer is attached) and
    then tells the observers which part changed. Failed mutations change
    nothing and return False / None.
    """

    def __init__(self, config: AppConfig, writer: Optional[ReportWriter] = None,
                 today: Optional[Callable[[], str]] = None):
        self.config = config
        self._writer = writer
        self._today = today or (lambda: today_key(config.calendar))
        self._employees: Dict[str, Employee] = {}
        self.roles = RoleManager(in_use=self._role_in_use)
        self.shifts = ShiftManager(employee_exists=self._employees.__contains__,
                                   capacity=config.shift_capacity)
        self.absences = AbsenceManager()
        self.tasks = TaskManager()
        self.settings = dict(DEFAULT_SETTINGS)
        self.settings.update(
            shift_capacity=config.shift_capacity,
            morning_capacity=config.shift_capacity,
            evening_capacity=config.shift_capacity,
            shared_folder_path=config.reports_directory,
            selected_display_group=config.selected_display_group,
        )
        self._observers: List[Observer] = []
        self._batch_depth = 0
        self._batch_topics: List[str] = []
        self._day = self.today()

    # ---------------- observers ----------------
    def subscribe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)
        return unsubscribe

    def _notify(self, topic: str):
        for obs in list(self._observers):
            try:
                obs(topic)
            except Exception:
                _logger.exception("observer failed on %s", topic)

    def _commit(self, topic: str):
        if self._batch_depth:
            if topic not in self._batch_topics:
                self._batch_topics.append(topic)
            return
        self.save()
        self._notify(topic)

    @contextmanager
    def batch(self):
        """Group several mutations into one snapshot write."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._batch_topics:
                topics, self._batch_topics = self._batch_topics, []
                self.save()
                for t in topics:
                    self._notify(t)

    def today(self) -> str:
        return self._today()

    def _vacate_absent(self, day: str) -> List[str]:
        """Nobody absent on `day` keeps a slot."""
        vacated = [emp_id for emp_id in sorted(self.absences.absent_ids(day))
                   if self.shifts.vacate_all(emp_id)]
        if vacated:
            _logger.info("vacated slots of absent employees on %s: %s", day, ", ".join(vacated))
        return vacated

    def check_day(self) -> bool:
        """
        Call periodically. When the business day has changed, employees absent
        on the new day lose their slots and the result is saved.
        """
        day = self.today()
        if day == self._day:
            return False
        self._day = day
        if self._vacate_absent(day):
            self._commit(SHIFTS)
        return True

    # ---------------- persistence ----------------
    def build_report(self, date: Optional[str] = None) -> dict:
        return build_report(self, date)

    def save(self) -> bool:
        self._vacate_absent(self.today())
        if self._writer is None:
            return True
        return self._writer.write(self.build_report()) is not None

    def load_from_report(self, report: dict) -> None:
        """Replace the whole model with a canonical report. Nothing is written."""
        employees: Dict[str, Employee] = {}
        for rec in report.get("employees", []) + report.get("managers", []):
            if str(rec["employee_id"]) not in employees:
                emp = Employee.from_dict(rec)
                employees[emp.employee_id] = emp
        self._employees.clear()
        self._employees.update(employees)

        self.roles.load(report.get("roles", {}).values())
        self.shifts.load(ShiftGroup.from_dict(g) for g in report.get("shift_groups", []))

        records = []
        for cat in CATEGORIES:
            for rec in report.get("absences", {}).get(cat, []):
                if rec["employee_id"] not in self._employees:
                    continue
                records.append(AbsenceRecord(rec["employee_id"], cat, rec["date"], rec.get("notes", ""),
                                             rec.get("employee_name", ""), rec.get("created_at", "")))
        self.absences.load(records)
        self.tasks.load(report.get("tasks", {}))
        self.settings = dict(DEFAULT_SETTINGS)
        self.settings.update(report.get("settings", {}))
        self._day = self.today()
        self._vacate_absent(self._day)
        _logger.info("model loaded: %d employees, %d groups", len(self._employees), len(self.shifts.groups()))
        self._notify(RELOADED)

    # ---------------- employees ----------------
    def employees(self) -> List[Employee]:
        return list(self._employees.values())

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        return self._employees.get(employee_id)

    def add_employee(self, first_name: str, last_name: str = "", role_id: str = "employee",
                     shift_group_id: str = DEFAULT_GROUP_ID, is_manager: bool = False,
                     photo_path: str = "") -> Optional[Employee]:
        first_name = (first_name or "").strip()
        if not first_name or role_id not in self.roles or self.shifts.get_group(shift_group_id) is None:
            return None
        emp_id = new_employee_id()
        while emp_id in self._employees:
            emp_id = new_employee_id()
        emp = Employee(emp_id, first_name, (last_name or "").strip(), role_id,
                       shift_group_id, is_manager, photo_path)
        self._employees[emp_id] = emp
        _logger.info("employee added: %s (%s)", emp.full_name, emp_id)
        self._commit(EMPLOYEES)
        return emp

    def update_employee(self, employee_id: str, **fields) -> bool:
        emp = self._employees.get(employee_id)
        if emp is None:
            return False
        if fields.get("role_id") is not None and fields["role_id"] not in self.roles:
            return False
        if fields.get("shift_group_id") is not None and self.shifts.get_group(fields["shift_group_id"]) is None:
            return False
        if emp.update(**fields):
            self._commit(EMPLOYEES)
        return True

    def delete_employee(self, employee_id: str) -> bool:
        if self._employees.pop(employee_id, None) is None:
            return False
        self.shifts.remove_employee_everywhere(employee_id)
        self.absences.remove_employee(employee_id)
        self.tasks.remove_employee(employee_id)
        _logger.info("employee deleted: %s", employee_id)
        self._commit(EMPLOYEES)
        return True

    def _role_in_use(self, role_id: str) -> bool:
        return any(e.role_id == role_id for e in self._employees.values())

    # ---------------- shifts ----------------
    def assign_employee_to_shift(self, employee_id: str, shift_type: str, slot_index: int,
                                 group_id: str = DEFAULT_GROUP_ID) -> bool:
        if self.absences.is_absent(employee_id, self.today()):
            _logger.info("assign refused: %s is absent today", employee_id)
            return False
        if self.shifts.find_assignment(employee_id) == (group_id, shift_type, slot_index):
            return True
        if not self.shifts.assign_employee_to_shift(employee_id, shift_type, slot_index, group_id):
            return False
        self._commit(SHIFTS)
        return True

    def assign_to_first_free(self, employee_id: str, shift_type: str,
                             group_id: str = DEFAULT_GROUP_ID) -> bool:
        slot = self.shifts.first_free_slot(shift_type, group_id)
        if slot < 0:
            return False
        return self.assign_employee_to_shift(employee_id, shift_type, slot, group_id)

    def remove_employee_from_shift(self, employee_id: str, shift_type: str,
                                   group_id: str = DEFAULT_GROUP_ID) -> bool:
        if self.shifts.get_group(group_id) is None or shift_type not in SHIFT_TYPES:
            return False
        if self.shifts.remove_employee_from_shift(employee_id, shift_type, group_id):
            self._commit(SHIFTS)
        return True

    def set_shift_capacity(self, capacity: int) -> bool:
        displaced = self.shifts.set_shift_capacity(capacity)
        if displaced is None:
            return False
        self.settings.update(shift_capacity=capacity, morning_capacity=capacity, evening_capacity=capacity)
        if displaced:
            _logger.info("capacity %d displaced %d employees", capacity, len(displaced))
        self._commit(SHIFTS)
        return True

    def set_group_capacity(self, group_id: str, shift_type: str, capacity: int) -> bool:
        if self.shifts.set_group_capacity(group_id, shift_type, capacity) is None:
            return False
        self._commit(SHIFTS)
        return True

    def clear_shift(self, shift_type: str, group_id: str = DEFAULT_GROUP_ID) -> bool:
        if self.shifts.clear_shift(shift_type, group_id) is None:
            return False
        self._commit(SHIFTS)
        return True

    def set_team_leader(self, shift_type: str, employee_id: str, group_id: str = DEFAULT_GROUP_ID) -> bool:
        if not self.shifts.set_team_leader(shift_type, employee_id, group_id):
            return False
        self._commit(SHIFTS)
        return True

    def swap_shifts(self, group_id: str = DEFAULT_GROUP_ID) -> bool:
        if not self.shifts.swap_shifts(group_id):
            return False
        self._commit(SHIFTS)
        return True

    def available_employees(self, date: Optional[str] = None) -> List[Employee]:
        absent = self.absences.absent_ids(date or self.today())
        return self.shifts.available_employees(self.employees(), absent)

    # ---------------- groups ----------------
    def add_group(self, group_id: str, name: str, **kwargs) -> bool:
        if not self.shifts.add_group(group_id, name, **kwargs):
            return False
        self._commit(GROUPS)
        return True

    def update_group(self, group_id: str, **kwargs) -> bool:
        if not self.shifts.update_group(group_id, **kwargs):
            return False
        self._commit(GROUPS)
        return True

    def delete_group(self, group_id: str) -> bool:
        if self.shifts.delete_group(group_id) is None:
            return False
        for emp in self._employees.values():
            if emp.shift_group_id == group_id:
                emp.update(shift_group_id=DEFAULT_GROUP_ID)
        if self.settings.get("selected_display_group") == group_id:
            self.settings["selected_display_group"] = DEFAULT_GROUP_ID
        self._commit(GROUPS)
        return True

    def set_selected_display_group(self, group_id: str) -> bool:
        if self.shifts.get_group(group_id) is None:
            return False
        self.settings["selected_display_group"] = group_id
        self._commit(SETTINGS)
        return True

    # ---------------- absences ----------------
    def mark_absent(self, employee_id: str, category: str, date: Optional[str] = None,
                    notes: str = "") -> bool:
        emp = self._employees.get(employee_id)
        if emp is None or category not in CATEGORIES:
            return False
        date = date or self.today()
        self.absences.mark(employee_id, category, date, notes, emp.full_name)
        if date == self.today():
            self.shifts.vacate_all(employee_id)
        self._commit(ABSENCES)
        return True

    def clear_absence(self, employee_id: str, date: Optional[str] = None) -> bool:
        if not self.absences.clear(employee_id, date or self.today()):
            return False
        self._commit(ABSENCES)
        return True

    # ---------------- tasks ----------------
    def add_task(self, title: str, **kwargs) -> Optional[Task]:
        task = self.tasks.add(title, **kwargs)
        if task is not None:
            self._commit(TASKS)
        return task

    def update_task(self, task_id: str, **fields) -> bool:
        if not self.tasks.update(task_id, **fields):
            return False
        self._commit(TASKS)
        return True

    def delete_task(self, task_id: str) -> bool:
        if not self.tasks.delete(task_id):
            return False
        self._commit(TASKS)
        return True

    def set_task_status(self, task_id: str, status: str) -> bool:
        task = self.tasks.tasks.get(task_id)
        if task is None or not task.set_status(status, self.today()):
            return False
        self._commit(TASKS)
        return True

    def assign_task(self, task_id: str, employee_id: str) -> bool:
        if employee_id not in self._employees or not self.tasks.assign(task_id, employee_id):
            return False
        self._commit(TASKS)
        return True

    def unassign_task(self, task_id: str, employee_id: str) -> bool:
        if not self.tasks.unassign(task_id, employee_id):
            return False
        self._commit(TASKS)
        return True

    def tasks_for_employee(self, employee_id: str) -> List[Task]:
        return self.tasks.for_employee(employee_id)

    # ---------------- roles ----------------
    def add_role(self, role_id: str, name: str, **kwargs) -> bool:
        if not self.roles.add(role_id, name, **kwargs):
            return False
        self._commit(ROLES)
        return True

    def update_role(self, role_id: str, **kwargs) -> bool:
        if not self.roles.update(role_id, **kwargs):
            return False
        self._commit(ROLES)
        return True

    def delete_role(self, role_id: str) -> bool:
        if not self.roles.delete(role_id):
            return False
        self._commit(ROLES)
        return True
