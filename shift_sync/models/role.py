# models/role.py
from __future__ import annotations
import logging
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Callable, Iterable

_logger = logging.getLogger(__name__)

PRIORITY_MIN = 0
PRIORITY_MAX = 1000

@dataclass
class Role:
    role_id: str
    name: str
    description: str = ""
    color: str = "#4CAF50"
    priority: int = 0

    def to_dict(self):
        return asdict(self)

    @staticmethod
    def from_dict(data):
        return Role(
            role_id=str(data["role_id"]),
            name=data.get("name") or str(data["role_id"]),
            description=data.get("description", ""),
            color=data.get("color") or "#4CAF50",
            priority=int(data.get("priority", 0) or 0),
        )


BUILTIN_ROLES = (
    Role("manager", "Manager", "Shift manager", "#F44336", 100),
    Role("supervisor", "Supervisor", "Shift supervisor", "#FF9800", 80),
    Role("employee", "Employee", "Regular employee", "#4CAF50", 50),
    Role("intern", "Intern", "Intern", "#2196F3", 30),
    Role("contractor", "Contractor", "External contractor", "#9C27B0", 20),
)
BUILTIN_ROLE_IDS = frozenset(r.role_id for r in BUILTIN_ROLES)


def _priority_ok(priority) -> bool:
    return isinstance(priority, int) and PRIORITY_MIN <= priority <= PRIORITY_MAX


class RoleManager:
    """
    Role registry.
    - role_id is immutable once created
    - roles referenced by an employee cannot be deleted
    - built-in roles are re-created when missing from loaded data
    """
    def __init__(self, in_use: Optional[Callable[[str], bool]] = None):
        self._roles: Dict[str, Role] = {}
        self._in_use = in_use or (lambda _role_id: False)
        self.reset()

    def reset(self):
        self._roles = {r.role_id: Role(**asdict(r)) for r in BUILTIN_ROLES}

    def get(self, role_id: str) -> Optional[Role]:
        return self._roles.get(role_id)

    def __contains__(self, role_id) -> bool:
        return role_id in self._roles

    def all(self) -> List[Role]:
        return sorted(self._roles.values(), key=lambda r: (-r.priority, r.name))

    def add(self, role_id: str, name: str, description: str = "",
            color: str = "#4CAF50", priority: int = 0) -> bool:
        role_id = (role_id or "").strip()
        if not role_id or role_id in self._roles:
            return False
        if not _priority_ok(priority):
            _logger.warning("role %s rejected: priority %r out of range", role_id, priority)
            return False
        self._roles[role_id] = Role(role_id, name or role_id, description, color, priority)
        return True

    def update(self, role_id: str, name=None, description=None, color=None, priority=None) -> bool:
        role = self._roles.get(role_id)
        if role is None:
            return False
        if priority is not None and not _priority_ok(priority):
            return False
        if name is not None:
            role.name = name
        if description is not None:
            role.description = description
        if color is not None:
            role.color = color
        if priority is not None:
            role.priority = priority
        return True

    def delete(self, role_id: str) -> bool:
        if role_id not in self._roles:
            return False
        if self._in_use(role_id):
            _logger.info("role %s is in use, not deleted", role_id)
            return False
        del self._roles[role_id]
        return True

    def to_dict(self):
        return {r.role_id: r.to_dict() for r in self.all()}

    def load(self, roles: Iterable[dict]):
        self.reset()
        for item in roles:
            try:
                role = Role.from_dict(item)
            except (KeyError, TypeError, ValueError):
                _logger.warning("skipping malformed role entry: %r", item)
                continue
            self._roles[role.role_id] = role
