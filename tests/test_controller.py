import json

from shift_sync.data.normalizer import normalize_report
from shift_sync.data.report_writer import ReportWriter
from shift_sync.data.snapshot_locator import snapshot_path_for_date
from shift_sync.logic.controller import Controller, ABSENCES, EMPLOYEES, RELOADED, SHIFTS
from shift_sync.models.shift import MORNING, EVENING

TODAY = "2025-01-15"


def _without_stamp(report):
    return {k: v for k, v in report.items() if k != "last_modified"}


# ── employees ─────────────────────────────────────────────────────────────────

def test_add_employee_validates_input(controller):
    assert controller.add_employee("  ") is None
    assert controller.add_employee("Ali", role_id="astronaut") is None
    assert controller.add_employee("Ali", shift_group_id="nope") is None
    emp = controller.add_employee(" Ali ", " Rezaei ")
    assert emp.full_name == "Ali Rezaei"
    assert controller.get_employee(emp.employee_id) is emp


def test_delete_employee_cascades(staffed):
    c, ali, reza, sara = staffed
    c.assign_employee_to_shift(ali.employee_id, MORNING, 0)
    c.set_team_leader(EVENING, ali.employee_id)
    c.mark_absent(ali.employee_id, "leave", "2025-02-01")
    task = c.add_task("Stock")
    c.assign_task(task.task_id, ali.employee_id)

    assert c.delete_employee(ali.employee_id)
    assert c.shifts.find_assignment(ali.employee_id) is None
    assert c.shifts.get_group("default").evening_shift.team_leader_id == ""
    assert c.absences.get(ali.employee_id, "2025-02-01") is None
    assert task.assigned_employees == []
    assert not c.delete_employee(ali.employee_id)


def test_role_in_use_is_protected(staffed):
    c, *_ = staffed
    assert not c.delete_role("manager")
    assert c.add_role("lead", "Lead", priority=90)
    assert c.delete_role("lead")


# ── shifts ────────────────────────────────────────────────────────────────────

def test_absent_employee_cannot_be_assigned_today(staffed):
    c, ali, reza, _ = staffed
    c.mark_absent(ali.employee_id, "sick")
    assert not c.assign_employee_to_shift(ali.employee_id, MORNING, 0)
    # absence on another day does not block today
    c.mark_absent(reza.employee_id, "leave", "2025-03-01")
    assert c.assign_employee_to_shift(reza.employee_id, MORNING, 0)


def test_marking_absent_today_vacates_slots(staffed):
    c, ali, _, _ = staffed
    c.assign_employee_to_shift(ali.employee_id, EVENING, 3)
    c.mark_absent(ali.employee_id, "absent", TODAY)
    assert c.shifts.find_assignment(ali.employee_id) is None
    assert ali not in c.available_employees()


def test_loaded_report_drops_slots_of_employees_absent_today(controller, app_config):
    ali = controller.add_employee("Ali", "Rezaei")
    controller.assign_employee_to_shift(ali.employee_id, MORNING, 0)
    report = controller.build_report()
    report["absences"]["sick"].append({"employee_id": ali.employee_id, "employee_name": "Ali Rezaei",
                                       "category": "sick", "date": TODAY, "notes": "", "created_at": ""})

    other = Controller(app_config, today=lambda: TODAY)
    other.load_from_report(report)
    assert other.shifts.find_assignment(ali.employee_id) is None
    assert other.absences.is_absent(ali.employee_id, TODAY)
    assert ali.employee_id not in other.build_report()["shifts"]["morning"]["slots"]


def test_future_absence_vacates_slot_when_the_day_comes(app_config, reports_dir):
    day = ["2025-01-15"]
    c = Controller(app_config, ReportWriter(reports_dir), today=lambda: day[0])
    ali = c.add_employee("Ali")
    c.assign_employee_to_shift(ali.employee_id, MORNING, 0)
    c.mark_absent(ali.employee_id, "leave", "2025-01-16")
    assert c.shifts.find_assignment(ali.employee_id) == ("default", MORNING, 0)
    assert not c.check_day()

    seen = []
    c.subscribe(seen.append)
    day[0] = "2025-01-16"
    assert c.check_day()
    assert c.shifts.find_assignment(ali.employee_id) is None
    assert seen == [SHIFTS]
    raw = json.loads(snapshot_path_for_date(reports_dir, "2025-01-16").read_text(encoding="utf-8"))
    assert ali.employee_id not in raw["shifts"]["morning"]["slots"]
    assert not c.check_day()


def test_any_save_after_rollover_vacates_absent_slots(app_config):
    day = ["2025-01-15"]
    c = Controller(app_config, today=lambda: day[0])
    ali = c.add_employee("Ali")
    c.assign_employee_to_shift(ali.employee_id, EVENING, 1)
    c.mark_absent(ali.employee_id, "sick", "2025-01-16")
    day[0] = "2025-01-16"
    c.add_task("Open store")
    assert c.shifts.find_assignment(ali.employee_id) is None


def test_available_employees(staffed):
    c, ali, reza, sara = staffed
    c.assign_employee_to_shift(ali.employee_id, MORNING, 0)
    c.mark_absent(sara.employee_id, "leave")
    assert c.available_employees() == [reza]


def test_assign_to_first_free_fills_in_order(staffed):
    c, ali, reza, _ = staffed
    c.set_shift_capacity(2)
    assert c.assign_to_first_free(ali.employee_id, MORNING)
    assert c.assign_to_first_free(reza.employee_id, MORNING)
    assert c.shifts.get_group("default").morning_shift.slots == [ali.employee_id, reza.employee_id]
    assert c.settings["shift_capacity"] == 2


def test_remove_from_unknown_shift_is_refused(staffed):
    c, ali, _, _ = staffed
    assert not c.remove_employee_from_shift(ali.employee_id, MORNING, "nope")
    assert not c.remove_employee_from_shift(ali.employee_id, "night")
    # not assigned: nothing to do, still fine
    assert c.remove_employee_from_shift(ali.employee_id, MORNING)


def test_delete_group_moves_members_to_default(staffed):
    c, ali, _, _ = staffed
    assert c.add_group("night", "Night")
    c.update_employee(ali.employee_id, shift_group_id="night")
    c.assign_employee_to_shift(ali.employee_id, MORNING, 0, "night")
    assert c.set_selected_display_group("night")
    assert c.delete_group("night")
    assert ali.shift_group_id == "default"
    assert c.settings["selected_display_group"] == "default"
    assert c.shifts.find_assignment(ali.employee_id) is None
    assert not c.delete_group("default")


# ── observers ─────────────────────────────────────────────────────────────────

def test_observers_hear_topics_and_can_unsubscribe(controller):
    seen = []
    unsubscribe = controller.subscribe(seen.append)
    emp = controller.add_employee("Ali")
    controller.assign_employee_to_shift(emp.employee_id, MORNING, 0)
    controller.mark_absent(emp.employee_id, "leave", "2025-06-01")
    unsubscribe()
    controller.add_employee("Reza")
    assert seen == [EMPLOYEES, SHIFTS, ABSENCES]


def test_failing_observer_does_not_break_mutation(controller, caplog):
    def boom(_topic):
        raise RuntimeError("observer bug")
    seen = []
    controller.subscribe(boom)
    controller.subscribe(seen.append)
    assert controller.add_employee("Ali") is not None
    assert seen == [EMPLOYEES]
    assert "observer failed" in caplog.text


def test_failed_mutation_writes_nothing(writing_controller, reports_dir):
    assert not writing_controller.assign_employee_to_shift("ghost", MORNING, 0)
    assert not list(reports_dir.glob("*.json"))


def test_batch_writes_once(writing_controller, reports_dir):
    with writing_controller.batch():
        a = writing_controller.add_employee("Ali")
        writing_controller.add_employee("Reza")
        writing_controller.assign_employee_to_shift(a.employee_id, MORNING, 0)
    assert not list(reports_dir.glob("*_backup_*.json"))
    data = json.loads(snapshot_path_for_date(reports_dir, TODAY).read_text(encoding="utf-8"))
    assert len(data["employees"]) == 2


# ── persistence ───────────────────────────────────────────────────────────────

def _populate(c):
    ali = c.add_employee("Ali", "Rezaei")
    reza = c.add_employee("Reza", "Ahmadi", role_id="supervisor")
    sara = c.add_employee("Sara", "Karimi", role_id="manager")
    c.add_group("night", "Night", color="#222222")
    c.assign_employee_to_shift(ali.employee_id, MORNING, 2)
    c.assign_employee_to_shift(reza.employee_id, EVENING, 0, "night")
    c.set_team_leader(MORNING, sara.employee_id)
    c.mark_absent(sara.employee_id, "sick", "2025-01-20", notes="flu")
    task = c.add_task("Count stock", priority="high")
    c.assign_task(task.task_id, ali.employee_id)
    c.set_task_status(task.task_id, "in_progress")
    return ali, reza, sara


def test_written_snapshot_normalizes_back_to_the_same_report(writing_controller, reports_dir):
    _populate(writing_controller)
    report = writing_controller.build_report()
    path = ReportWriter(reports_dir).write(report)
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert normalize_report(raw, writing_controller.config.manager_role_prefixes) == report


def test_snapshot_contains_only_objects(writing_controller, reports_dir):
    _populate(writing_controller)
    raw = json.loads(snapshot_path_for_date(reports_dir, TODAY).read_text(encoding="utf-8"))
    morning = raw["shifts"]["morning"]
    assert isinstance(morning["assigned_employees"][0], dict)
    assert len(morning["slots"]) == morning["capacity"]
    assert [m["first_name"] for m in raw["managers"]] == ["Sara"]
    assert morning["team_leader_name"] == "Sara Karimi"


def test_load_from_report_restores_model(controller, app_config):
    ali, reza, sara = _populate(controller)
    report = controller.build_report()

    seen = []
    other = Controller(app_config, today=lambda: TODAY)
    other.subscribe(seen.append)
    other.load_from_report(report)

    assert seen == [RELOADED]
    assert _without_stamp(other.build_report()) == _without_stamp(report)
    assert other.shifts.find_assignment(reza.employee_id) == ("night", EVENING, 0)
    assert other.absences.get(sara.employee_id, "2025-01-20").notes == "flu"
    assert other.tasks.next_task_id == 2


def test_load_from_normalized_legacy_snapshot(controller, legacy_snapshot):
    controller.load_from_report(normalize_report(legacy_snapshot))
    assert [e.employee_id for e in controller.employees()] == ["e1", "e2", "e3"]
    assert controller.shifts.get_group("default").morning_shift.slots == ["e1", "e2", None]
    assert controller.absences.get("e3", "2024-05-01").category == "sick"


# ── tasks ─────────────────────────────────────────────────────────────────────

def test_tasks_for_employee(staffed):
    c, ali, reza, _ = staffed
    stock = c.add_task("Count stock")
    clean = c.add_task("Clean")
    c.assign_task(stock.task_id, ali.employee_id)
    c.assign_task(clean.task_id, ali.employee_id)
    c.assign_task(clean.task_id, reza.employee_id)
    assert [t.title for t in c.tasks_for_employee(ali.employee_id)] == ["Count stock", "Clean"]
    assert [t.title for t in c.tasks_for_employee(reza.employee_id)] == ["Clean"]
    c.unassign_task(clean.task_id, reza.employee_id)
    assert c.tasks_for_employee(reza.employee_id) == []
