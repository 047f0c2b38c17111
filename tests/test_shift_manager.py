from shift_sync.logic.shift_manager import ShiftManager
from shift_sync.models.shift import MORNING, EVENING


def _manager(ids=("a", "b", "c", "d"), capacity=3):
    known = set(ids)
    return ShiftManager(employee_exists=known.__contains__, capacity=capacity)


def _occupancy(mgr):
    seen = []
    for g in mgr.groups():
        for s in g.shifts():
            seen.extend(s.occupants())
    return seen


# ── assignment ────────────────────────────────────────────────────────────────

def test_assign_places_employee_in_slot():
    mgr = _manager()
    assert mgr.assign_employee_to_shift("a", MORNING, 1)
    assert mgr.get_group("default").morning_shift.slots == [None, "a", None]
    assert mgr.find_assignment("a") == ("default", MORNING, 1)


def test_reassign_moves_instead_of_duplicating():
    mgr = _manager()
    mgr.add_group("night", "Night")
    mgr.assign_employee_to_shift("a", MORNING, 0)
    mgr.assign_employee_to_shift("a", EVENING, 2, "night")
    mgr.assign_employee_to_shift("a", MORNING, 2)
    assert _occupancy(mgr).count("a") == 1
    assert mgr.find_assignment("a") == ("default", MORNING, 2)


def test_assign_same_slot_twice_is_noop():
    mgr = _manager()
    mgr.assign_employee_to_shift("a", MORNING, 0)
    before = list(mgr.get_group("default").morning_shift.slots)
    assert mgr.assign_employee_to_shift("a", MORNING, 0)
    assert mgr.get_group("default").morning_shift.slots == before


def test_assign_over_occupied_slot_displaces_occupant():
    mgr = _manager()
    mgr.assign_employee_to_shift("a", MORNING, 0)
    mgr.assign_employee_to_shift("b", MORNING, 0)
    assert mgr.get_group("default").morning_shift.slots[0] == "b"
    assert mgr.find_assignment("a") is None
    assert "a" not in mgr.assigned_ids()


def test_assign_rejects_bad_input_without_changes():
    mgr = _manager()
    mgr.assign_employee_to_shift("a", MORNING, 0)
    snapshot = mgr.to_list()
    assert not mgr.assign_employee_to_shift("a", MORNING, 3)
    assert not mgr.assign_employee_to_shift("a", MORNING, -1)
    assert not mgr.assign_employee_to_shift("a", "night", 0)
    assert not mgr.assign_employee_to_shift("a", MORNING, 0, "missing")
    assert not mgr.assign_employee_to_shift("zz", MORNING, 1)
    assert mgr.to_list() == snapshot


def test_remove_is_idempotent():
    mgr = _manager()
    mgr.assign_employee_to_shift("a", EVENING, 2)
    assert mgr.remove_employee_from_shift("a", EVENING)
    assert not mgr.remove_employee_from_shift("a", EVENING)
    assert mgr.get_group("default").evening_shift.occupants() == []


# ── capacity ──────────────────────────────────────────────────────────────────

def test_shrinking_capacity_displaces_exactly_the_excess():
    mgr = _manager(capacity=4)
    for i, emp in enumerate("abcd"):
        mgr.assign_employee_to_shift(emp, MORNING, i)
    displaced = mgr.set_group_capacity("default", MORNING, 2)
    shift = mgr.get_group("default").morning_shift
    assert displaced == ["c", "d"]
    assert shift.slots == ["a", "b"]
    assert len(shift.occupants()) <= shift.capacity


def test_growing_capacity_appends_empty_slots():
    mgr = _manager(capacity=2)
    mgr.assign_employee_to_shift("a", EVENING, 1)
    assert mgr.set_shift_capacity(4) == []
    assert mgr.get_group("default").evening_shift.slots == [None, "a", None, None]
    assert mgr.get_group("default").morning_shift.capacity == 4


def test_invalid_capacity_is_refused():
    mgr = _manager()
    assert mgr.set_shift_capacity(0) is None
    assert mgr.set_group_capacity("default", MORNING, -2) is None
    assert mgr.get_group("default").morning_shift.capacity == 3


# ── clear / leaders / groups ──────────────────────────────────────────────────

def test_clear_shift_vacates_all_slots():
    mgr = _manager()
    mgr.assign_employee_to_shift("a", MORNING, 0)
    mgr.assign_employee_to_shift("b", MORNING, 2)
    assert sorted(mgr.clear_shift(MORNING)) == ["a", "b"]
    assert mgr.get_group("default").morning_shift.slots == [None, None, None]


def test_team_leader_set_and_clear():
    mgr = _manager()
    assert mgr.set_team_leader(MORNING, "c")
    assert mgr.get_group("default").morning_shift.team_leader_id == "c"
    # a leader does not need a slot
    assert mgr.find_assignment("c") is None
    assert mgr.set_team_leader(MORNING, "")
    assert mgr.get_group("default").morning_shift.team_leader_id == ""
    assert not mgr.set_team_leader(MORNING, "stranger")


def test_default_group_cannot_be_deleted():
    mgr = _manager()
    assert mgr.delete_group("default") is None
    mgr.add_group("night", "Night")
    mgr.assign_employee_to_shift("a", MORNING, 0, "night")
    assert mgr.delete_group("night") == ["a"]
    assert [g.group_id for g in mgr.groups()] == ["default"]
    assert mgr.find_assignment("a") is None


def test_swap_shifts_exchanges_rosters_and_leaders():
    mgr = _manager()
    mgr.assign_employee_to_shift("a", MORNING, 0)
    mgr.assign_employee_to_shift("b", EVENING, 1)
    mgr.set_team_leader(MORNING, "c")
    assert mgr.swap_shifts()
    g = mgr.get_group("default")
    assert g.morning_shift.slots == [None, "b", None]
    assert g.evening_shift.slots == ["a", None, None]
    assert g.evening_shift.team_leader_id == "c"
    assert g.morning_shift.shift_type == MORNING


def test_available_excludes_assigned_and_absent():
    class E:
        def __init__(self, employee_id):
            self.employee_id = employee_id
    mgr = _manager()
    mgr.assign_employee_to_shift("a", MORNING, 0)
    people = [E(x) for x in "abcd"]
    assert [e.employee_id for e in mgr.available_employees(people, absent_ids={"c"})] == ["b", "d"]


def test_load_drops_duplicate_occupants():
    from shift_sync.models.shift import ShiftGroup
    g = ShiftGroup("default", "Default", morning_capacity=2, evening_capacity=2)
    g.morning_shift.slots = ["a", "b"]
    g.evening_shift.slots = ["a", None]
    mgr = _manager()
    mgr.load([g])
    assert _occupancy(mgr).count("a") == 1
