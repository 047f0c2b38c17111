import re

from shift_sync.models.absence import AbsenceManager
from shift_sync.models.employee import Employee, new_employee_id
from shift_sync.models.role import RoleManager
from shift_sync.models.shift import Shift
from shift_sync.models.task import Task, TaskManager, COMPLETED, IN_PROGRESS


def test_employee_ids_are_unique_and_shaped():
    ids = {new_employee_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(re.fullmatch(r"emp_\d+_\d+", i) for i in ids)


def test_employee_update_reports_change_and_touches_timestamp():
    emp = Employee("e1", "Ali", "Rezaei", created_at="2024-01-01T00:00:00")
    assert not emp.update(first_name="Ali", unknown="x")
    assert emp.updated_at == "2024-01-01T00:00:00"
    assert emp.update(last_name="Karimi", is_manager=1)
    assert emp.is_manager is True
    assert emp.updated_at != "2024-01-01T00:00:00"


def test_employee_dict_round_trip_keeps_role_alias():
    emp = Employee("e1", "Ali", role_id="supervisor")
    data = emp.to_dict()
    assert data["role"] == data["role_id"] == "supervisor"
    back = Employee.from_dict({k: v for k, v in data.items() if k != "role_id"})
    assert back.role_id == "supervisor"
    assert back.to_dict() == data


# ── roles ─────────────────────────────────────────────────────────────────────

def test_builtin_roles_sorted_by_priority():
    roles = RoleManager()
    assert [r.role_id for r in roles.all()] == ["manager", "supervisor", "employee", "intern", "contractor"]


def test_role_priority_bounds():
    roles = RoleManager()
    assert not roles.add("lead", "Lead", priority=1001)
    assert roles.add("lead", "Lead", priority=90)
    assert not roles.add("lead", "Again")
    assert not roles.update("lead", priority=-1)
    assert roles.all()[1].role_id == "lead"


def test_role_in_use_cannot_be_deleted():
    roles = RoleManager(in_use=lambda rid: rid == "intern")
    assert not roles.delete("intern")
    assert roles.delete("contractor")
    assert "contractor" not in roles


# ── absences ──────────────────────────────────────────────────────────────────

def test_one_absence_per_employee_and_date():
    absences = AbsenceManager()
    absences.mark("e1", "leave", "2025-01-15")
    absences.mark("e1", "sick", "2025-01-15", notes="flu")
    assert len(absences.for_date("2025-01-15")) == 1
    assert absences.get("e1", "2025-01-15").category == "sick"
    assert absences.mark("e1", "vacation", "2025-01-15") is None


def test_absences_grouped_by_category_for_a_date():
    absences = AbsenceManager()
    absences.mark("e1", "sick", "2025-01-15")
    absences.mark("e2", "absent", "2025-01-15")
    absences.mark("e3", "sick", "2025-01-16")
    grouped = absences.by_category("2025-01-15")
    assert [r.employee_id for r in grouped["sick"]] == ["e1"]
    assert [r.employee_id for r in grouped["absent"]] == ["e2"]
    assert grouped["leave"] == []
    assert absences.absent_ids("2025-01-16") == {"e3"}


# ── tasks ─────────────────────────────────────────────────────────────────────

def test_task_ids_are_not_reused():
    tasks = TaskManager()
    first = tasks.add("Count stock")
    assert tasks.delete(first.task_id)
    second = tasks.add("Clean up")
    assert second.task_id != first.task_id
    assert tasks.add("") is None
    assert tasks.add("x", priority="urgent") is None


def test_task_status_dates_are_stamped_once():
    task = Task("1", "Count stock")
    assert task.set_status(IN_PROGRESS, "2025-01-10")
    assert task.set_status(IN_PROGRESS, "2025-01-11")
    assert task.start_date == "2025-01-10"
    assert task.set_status(COMPLETED, "2025-01-12")
    assert task.completion_date == "2025-01-12"
    assert not task.set_status("archived", "2025-01-13")


def test_completing_pending_task_sets_both_dates():
    task = Task("1", "Count stock")
    task.set_status(COMPLETED, "2025-01-12")
    assert task.start_date == task.completion_date == "2025-01-12"


def test_task_assignment_lists():
    tasks = TaskManager()
    t = tasks.add("Stock")
    tasks.assign(t.task_id, "e1")
    tasks.assign(t.task_id, "e1")
    tasks.assign(t.task_id, "e2")
    assert t.assigned_employees == ["e1", "e2"]
    assert tasks.remove_employee("e1") == 1
    assert not tasks.unassign(t.task_id, "e1")
    assert [x.task_id for x in tasks.for_employee("e2")] == [t.task_id]


def test_task_manager_load_advances_counter():
    tasks = TaskManager()
    tasks.load({"tasks": {"7": {"title": "Old"}}, "next_task_id": 2})
    assert tasks.next_task_id == 8
    assert tasks.tasks["7"].title == "Old"


def test_shift_resize_keeps_prefix():
    shift = Shift("morning", 3)
    shift.slots = ["a", None, "c"]
    assert shift.resize(2) == ["c"]
    assert shift.slots == ["a", None]
    assert shift.resize(4) == []
    assert shift.slots == ["a", None, None, None]
