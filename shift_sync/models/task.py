# models/task.py
from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Dict, List, Optional

from shift_sync.models.employee import now_stamp

PRIORITIES = ("low", "medium", "high")
PENDING = "pending"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
STATUSES = (PENDING, IN_PROGRESS, COMPLETED)

@dataclass
class Task:
    task_id: str
    title: str
    description: str = ""
    priority: str = "medium"
    status: str = PENDING
    estimated_hours: float = 8.0
    actual_hours: float = 0.0
    target_date: str = ""
    start_date: Optional[str] = None
    completion_date: Optional[str] = None
    notes: str = ""
    assigned_employees: List[str] = field(default_factory=list)
    created_at: str = field(default_factory=now_stamp)
    updated_at: str = field(default_factory=now_stamp)

    def set_status(self, status: str, today: str) -> bool:
        if status not in STATUSES:
            return False
        self.status = status
        # order is advisory only; stamp dates on first arrival
        if status == IN_PROGRESS and not self.start_date:
            self.start_date = today
        elif status == COMPLETED:
            if not self.start_date:
                self.start_date = today
            self.completion_date = today
        self.updated_at = now_stamp()
        return True

    def to_dict(self):
        d = asdict(self)
        d["assigned_employees"] = list(self.assigned_employees)
        return d

    @staticmethod
    def from_dict(data):
        priority = data.get("priority", "medium")
        status = data.get("status", PENDING)
        return Task(
            task_id=str(data["task_id"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            priority=priority if priority in PRIORITIES else "medium",
            status=status if status in STATUSES else PENDING,
            estimated_hours=float(data.get("estimated_hours", 8.0) or 0.0),
            actual_hours=float(data.get("actual_hours", 0.0) or 0.0),
            target_date=data.get("target_date", "") or "",
            start_date=data.get("start_date"),
            completion_date=data.get("completion_date"),
            notes=data.get("notes", "") or "",
            assigned_employees=[str(x) for x in data.get("assigned_employees", []) or []],
            created_at=data.get("created_at") or now_stamp(),
            updated_at=data.get("updated_at") or now_stamp(),
        )


class TaskManager:
    def __init__(self):
        self.tasks: Dict[str, Task] = {}
        self.next_task_id = 1

    def add(self, title: str, description: str = "", priority: str = "medium",
            estimated_hours: float = 8.0, target_date: str = "", notes: str = "") -> Optional[Task]:
        if not title or priority not in PRIORITIES:
            return None
        task_id = str(self.next_task_id)
        self.next_task_id += 1
        task = Task(task_id, title, description, priority,
                    estimated_hours=estimated_hours, target_date=target_date, notes=notes)
        self.tasks[task_id] = task
        return task

    def update(self, task_id: str, **fields) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        if "priority" in fields and fields["priority"] not in PRIORITIES:
            return False
        for key in ("title", "description", "priority", "estimated_hours",
                    "actual_hours", "target_date", "notes"):
            if fields.get(key) is not None:
                setattr(task, key, fields[key])
        task.updated_at = now_stamp()
        return True

    def delete(self, task_id: str) -> bool:
        # ids are never handed out again, next_task_id stays put
        return self.tasks.pop(task_id, None) is not None

    def assign(self, task_id: str, employee_id: str) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        if employee_id not in task.assigned_employees:
            task.assigned_employees.append(employee_id)
            task.updated_at = now_stamp()
        return True

    def unassign(self, task_id: str, employee_id: str) -> bool:
        task = self.tasks.get(task_id)
        if task is None or employee_id not in task.assigned_employees:
            return False
        task.assigned_employees.remove(employee_id)
        task.updated_at = now_stamp()
        return True

    def remove_employee(self, employee_id: str) -> int:
        n = 0
        for task in self.tasks.values():
            if employee_id in task.assigned_employees:
                task.assigned_employees.remove(employee_id)
                n += 1
        return n

    def for_employee(self, employee_id: str) -> List[Task]:
        return [t for t in self.tasks.values() if employee_id in t.assigned_employees]

    def to_dict(self):
        return {
            "tasks": {tid: t.to_dict() for tid, t in self.tasks.items()},
            "next_task_id": self.next_task_id,
        }

    def load(self, data: dict):
        self.tasks = {}
        for tid, item in (data.get("tasks") or {}).items():
            item = dict(item)
            item.setdefault("task_id", tid)
            task = Task.from_dict(item)
            self.tasks[task.task_id] = task
        numeric = [int(t) for t in self.tasks if t.isdigit()]
        self.next_task_id = max([int(data.get("next_task_id", 1) or 1)] + [n + 1 for n in numeric])
