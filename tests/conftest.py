"""
Shared test fixtures for shift_sync tests.
"""
import json

import pytest

from shift_sync.data.data_manager import AppConfig
from shift_sync.data.report_writer import ReportWriter
from shift_sync.logic.controller import Controller

TODAY = "2025-01-15"


# ── Config / directories ──────────────────────────────────────────────────────

@pytest.fixture
def app_config(tmp_path):
    data_dir = tmp_path / "data"
    return AppConfig(
        data_directory=str(data_dir),
        reports_directory=str(data_dir / "reports"),
        sync_interval_seconds=1,
        debounce_ms=50,
        retry_initial_delay_ms=10,
    )


@pytest.fixture
def reports_dir(app_config):
    path = app_config.reports_path
    path.mkdir(parents=True, exist_ok=True)
    return path


# ── Controllers ───────────────────────────────────────────────────────────────

@pytest.fixture
def controller(app_config):
    """In-memory controller, nothing written to disk."""
    return Controller(app_config, today=lambda: TODAY)


@pytest.fixture
def writing_controller(app_config, reports_dir):
    return Controller(app_config, ReportWriter(reports_dir), today=lambda: TODAY)


@pytest.fixture
def staffed(controller):
    """Controller with three employees: two staff and one manager."""
    ali = controller.add_employee("Ali", "Rezaei")
    reza = controller.add_employee("Reza", "Ahmadi")
    sara = controller.add_employee("Sara", "Karimi", role_id="manager", is_manager=True)
    return controller, ali, reza, sara


# ── Snapshot fixtures ─────────────────────────────────────────────────────────

EMPLOYEES = [
    {"employee_id": "e1", "first_name": "Ali", "last_name": "Rezaei", "role_id": "employee",
     "role": "employee", "shift_group_id": "default", "photo_path": "", "is_manager": False,
     "created_at": "2024-01-01T08:00:00", "updated_at": "2024-01-01T08:00:00"},
    {"employee_id": "e2", "first_name": "Sara", "last_name": "Karimi", "role_id": "manager",
     "role": "manager", "shift_group_id": "default", "photo_path": "", "is_manager": True,
     "created_at": "2024-01-01T08:00:00", "updated_at": "2024-01-02T08:00:00"},
    {"employee_id": "e3", "first_name": "Reza", "last_name": "Ahmadi", "role_id": "employee",
     "role": "employee", "shift_group_id": "default", "photo_path": "", "is_manager": False,
     "created_at": "2024-01-01T08:00:00", "updated_at": "2024-01-01T08:00:00"},
]


def legacy_employee(rec):
    """Employee as the old writer stored it: capitalized keys, JSON in a string, newlines inside."""
    return json.dumps({
        "EmployeeId": rec["employee_id"],
        "FirstName": rec["first_name"],
        "LastName": rec["last_name"],
        "Role": rec["role_id"],
        "ShiftGroupId": rec["shift_group_id"],
        "PhotoPath": rec["photo_path"],
        "IsManager": rec["is_manager"],
        "CreatedAt": rec["created_at"],
        "UpdatedAt": rec["updated_at"],
    }, indent=2).replace("\n", "\r\n")


@pytest.fixture
def new_schema_snapshot():
    return {
        "date": "2024-05-01",
        "employees": [dict(e) for e in EMPLOYEES],
        "managers": [],
        "shifts": {
            "morning": {"shift_type": "morning", "capacity": 3, "team_leader_id": "e2",
                        "assigned_employees": [dict(EMPLOYEES[0]), dict(EMPLOYEES[1])]},
            "evening": {"shift_type": "evening", "capacity": 3, "team_leader_id": "",
                        "assigned_employees": ["e3"]},
        },
        "absences": {
            "leave": [],
            "sick": [{"employee_id": "e3", "employee_name": "Reza Ahmadi", "category": "sick",
                      "date": "2024-05-01", "notes": "flu", "created_at": ""}],
            "absent": [],
        },
        "tasks": {"tasks": {}, "next_task_id": 1},
        "last_modified": "2024-05-01T09:00:00",
    }


@pytest.fixture
def legacy_snapshot():
    return {
        "date": "2024-05-01",
        "employees": [legacy_employee(e) for e in EMPLOYEES],
        "managers": [],
        "shifts": {
            "MorningShift": json.dumps({"ShiftType": "morning", "Capacity": 3,
                                        "AssignedEmployeeIds": ["e1", "e2", None], "TeamLeaderId": "e2"}),
            "EveningShift": json.dumps({"ShiftType": "evening", "Capacity": 3,
                                        "AssignedEmployeeIds": ["e3"]}),
        },
        "absences": {
            "بیمار": [json.dumps({"EmployeeId": "e3", "EmployeeName": "Reza Ahmadi",
                                  "Category": "بیمار", "Date": "2024/05/01", "Notes": "flu"})],
        },
        "tasks": {"Tasks": {}, "NextTaskId": 1},
        "last_modified": "2024-05-01T09:00:00",
    }


def write_snapshot(directory, name, data):
    path = directory / name
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def snapshot_writer():
    return write_snapshot
