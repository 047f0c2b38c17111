# gui/main_window.py
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QHBoxLayout, QVBoxLayout, QToolBar, QPushButton,
    QLabel, QTableWidget, QTableWidgetItem, QSizePolicy, QMessageBox,
    QLineEdit, QComboBox, QGroupBox, QGridLayout, QHeaderView, QAbstractItemView,
    QSplitter, QCheckBox, QSpinBox, QListWidget, QListWidgetItem
)
from PySide6.QtCore import Qt, QTimer

from shift_sync.logic.controller import Controller
from shift_sync.models.absence import CATEGORIES
from shift_sync.models.employee import DEFAULT_GROUP_ID
from shift_sync.models.shift import MORNING, EVENING
from shift_sync.gui.task_panel import TaskPanel

CATEGORY_LABELS = {"leave": "Leave", "sick": "Sick", "absent": "Absent"}


class MainWindow(QMainWindow):
    """Management console: employees on the left, the selected group's slots on the right."""

    def __init__(self, controller: Controller):
        super().__init__()
        self.setWindowTitle("Shift assignment")
        self.resize(1280, 900)

        self.controller = controller
        self._editing_emp_id = None
        self._group_id = DEFAULT_GROUP_ID

        self._build_ui()
        self._unsubscribe = controller.subscribe(lambda _topic: self.refresh())
        self.refresh()

        # day rollover: absences starting today take effect without a restart
        self._day_timer = QTimer(self)
        self._day_timer.timeout.connect(controller.check_day)
        self._day_timer.start(60_000)

    # ---------------- UI ----------------
    def _build_ui(self):
        tb = QToolBar()
        self.addToolBar(tb)

        tb.addWidget(QLabel("Group "))
        self.cmb_group = QComboBox()
        self.cmb_group.currentIndexChanged.connect(self._on_group_changed)
        tb.addWidget(self.cmb_group)

        btn_show = QPushButton("Show on display")
        btn_show.setToolTip("Display boards show this group's shifts")
        btn_show.clicked.connect(lambda: self.controller.set_selected_display_group(self._group_id))
        tb.addWidget(btn_show)

        tb.addSeparator()

        btn_swap = QPushButton("Swap morning/evening")
        btn_swap.clicked.connect(lambda: self.controller.swap_shifts(self._group_id))
        tb.addWidget(btn_swap)

        tb.addWidget(QLabel(" Capacity "))
        self.spin_capacity = QSpinBox()
        self.spin_capacity.setRange(1, 200)
        tb.addWidget(self.spin_capacity)
        btn_cap = QPushButton("Apply to all")
        btn_cap.clicked.connect(self._apply_capacity)
        tb.addWidget(btn_cap)

        tb.addSeparator()
        btn_save = QPushButton("Save now")
        btn_save.clicked.connect(self._save_now)
        tb.addWidget(btn_save)

        central = QWidget()
        self.setCentralWidget(central)
        root = QHBoxLayout(central)
        root.setContentsMargins(0, 0, 0, 0)

        splitter = QSplitter(Qt.Horizontal)
        splitter.setHandleWidth(2)
        root.addWidget(splitter)

        # ----- left -----
        left_container = QWidget()
        left = QVBoxLayout(left_container)

        self.edit_box = QGroupBox("Add / edit employee")
        form = QGridLayout(self.edit_box)
        r = 0
        self.emp_id = QLineEdit()
        self.emp_id.setReadOnly(True)
        self.emp_id.setPlaceholderText("assigned automatically")
        form.addWidget(QLabel("ID"), r, 0); form.addWidget(self.emp_id, r, 1); r += 1

        self.emp_first = QLineEdit()
        form.addWidget(QLabel("First name*"), r, 0); form.addWidget(self.emp_first, r, 1); r += 1
        self.emp_last = QLineEdit()
        form.addWidget(QLabel("Last name"), r, 0); form.addWidget(self.emp_last, r, 1); r += 1

        self.emp_role = QComboBox()
        form.addWidget(QLabel("Role"), r, 0); form.addWidget(self.emp_role, r, 1); r += 1
        self.emp_group = QComboBox()
        form.addWidget(QLabel("Group"), r, 0); form.addWidget(self.emp_group, r, 1); r += 1
        self.emp_manager = QCheckBox("Manager")
        form.addWidget(self.emp_manager, r, 1); r += 1

        btn_bar = QHBoxLayout()
        self.btn_new_emp = QPushButton("Clear")
        self.btn_save_emp = QPushButton("Save")
        self.btn_del_emp = QPushButton("Delete")
        btn_bar.addWidget(self.btn_new_emp)
        btn_bar.addWidget(self.btn_save_emp)
        btn_bar.addWidget(self.btn_del_emp)
        form.addLayout(btn_bar, r, 1)
        left.addWidget(self.edit_box)

        left.addWidget(QLabel("Employees"))
        self.emp_table = QTableWidget(0, 4)
        self.emp_table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.emp_table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.emp_table.setSelectionMode(QAbstractItemView.SingleSelection)
        self.emp_table.setHorizontalHeaderLabels(["Name", "Role", "Group", "Today"])
        self.emp_table.setSizePolicy(QSizePolicy.Preferred, QSizePolicy.Expanding)
        self.emp_table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        left.addWidget(self.emp_table)

        abs_box = QGroupBox("Absence today")
        ab = QHBoxLayout(abs_box)
        self.cmb_absence = QComboBox()
        for c in CATEGORIES:
            self.cmb_absence.addItem(CATEGORY_LABELS[c], userData=c)
        btn_mark = QPushButton("Mark")
        btn_mark.clicked.connect(self._mark_absent)
        btn_unmark = QPushButton("Clear")
        btn_unmark.clicked.connect(self._clear_absence)
        ab.addWidget(self.cmb_absence)
        ab.addWidget(btn_mark)
        ab.addWidget(btn_unmark)
        left.addWidget(abs_box)

        left_container.setMinimumWidth(340)
        left_container.setMaximumWidth(420)

        # ----- right -----
        right_container = QWidget()
        right = QVBoxLayout(right_container)

        shifts_row = QHBoxLayout()
        self.slot_tables = {}
        self.leader_labels = {}
        for shift_type, title in ((MORNING, "Morning"), (EVENING, "Evening")):
            box = QGroupBox(title)
            bl = QVBoxLayout(box)
            lbl = QLabel("")
            self.leader_labels[shift_type] = lbl
            bl.addWidget(lbl)
            table = QTableWidget(0, 1)
            table.setHorizontalHeaderLabels(["Employee"])
            table.horizontalHeader().setStretchLastSection(True)
            table.setEditTriggers(QAbstractItemView.NoEditTriggers)
            table.setSelectionBehavior(QAbstractItemView.SelectRows)
            table.setSelectionMode(QAbstractItemView.SingleSelection)
            self.slot_tables[shift_type] = table
            bl.addWidget(table)

            row = QHBoxLayout()
            b_assign = QPushButton("Assign selected")
            b_assign.clicked.connect(lambda _=False, st=shift_type: self._assign_selected(st))
            b_remove = QPushButton("Remove")
            b_remove.clicked.connect(lambda _=False, st=shift_type: self._remove_selected(st))
            b_leader = QPushButton("Team leader")
            b_leader.clicked.connect(lambda _=False, st=shift_type: self._set_leader(st))
            b_clear = QPushButton("Clear shift")
            b_clear.clicked.connect(lambda _=False, st=shift_type: self._clear_shift(st))
            for b in (b_assign, b_remove, b_leader, b_clear):
                row.addWidget(b)
            bl.addLayout(row)
            shifts_row.addWidget(box)
        right.addLayout(shifts_row, 3)

        avail_box = QGroupBox("Available today")
        avl = QVBoxLayout(avail_box)
        self.available_list = QListWidget()
        avl.addWidget(self.available_list)
        right.addWidget(avail_box, 1)

        self.task_panel = TaskPanel(self.controller)
        right.addWidget(self.task_panel, 2)

        splitter.addWidget(left_container)
        splitter.addWidget(right_container)
        splitter.setStretchFactor(0, 0)
        splitter.setStretchFactor(1, 1)
        splitter.setCollapsible(1, False)

        self.emp_table.itemSelectionChanged.connect(self._on_emp_selected)
        self.btn_new_emp.clicked.connect(self._clear_emp_form)
        self.btn_save_emp.clicked.connect(self._save_emp_form)
        self.btn_del_emp.clicked.connect(self._delete_selected_emp)

        self.status = self.statusBar()

    # ---------------- binding ----------------
    def refresh(self):
        c = self.controller
        today = c.today()
        absent = c.absences.absent_ids(today)

        self._fill_combo(self.cmb_group, [(g.name, g.group_id) for g in c.shifts.groups()], self._group_id)
        self._fill_combo(self.emp_role, [(r.name, r.role_id) for r in c.roles.all()],
                         self.emp_role.currentData())
        self._fill_combo(self.emp_group, [(g.name, g.group_id) for g in c.shifts.groups()],
                         self.emp_group.currentData())
        self.spin_capacity.setValue(int(c.settings.get("shift_capacity", 15)))

        self.emp_table.setRowCount(0)
        for e in c.employees():
            r = self.emp_table.rowCount()
            self.emp_table.insertRow(r)
            role = c.roles.get(e.role_id)
            group = c.shifts.get_group(e.shift_group_id)
            rec = c.absences.get(e.employee_id, today)
            if rec:
                state = CATEGORY_LABELS[rec.category]
            elif c.shifts.find_assignment(e.employee_id):
                state = "On shift"
            else:
                state = ""
            cells = [e.full_name, role.name if role else e.role_id, group.name if group else e.shift_group_id, state]
            for col, text in enumerate(cells):
                item = QTableWidgetItem(text)
                item.setData(Qt.UserRole, e.employee_id)
                self.emp_table.setItem(r, col, item)

        group = c.shifts.get_group(self._group_id) or c.shifts.get_group(DEFAULT_GROUP_ID)
        for shift in group.shifts():
            table = self.slot_tables[shift.shift_type]
            table.setRowCount(shift.capacity)
            for i, emp_id in enumerate(shift.slots):
                emp = c.get_employee(emp_id) if emp_id else None
                item = QTableWidgetItem(emp.full_name if emp else "-")
                item.setData(Qt.UserRole, emp_id)
                table.setItem(i, 0, item)
            leader = c.get_employee(shift.team_leader_id) if shift.team_leader_id else None
            self.leader_labels[shift.shift_type].setText(
                f"Team leader: {leader.full_name if leader else '-'}   ({len(shift.occupants())}/{shift.capacity})")

        self.available_list.clear()
        for e in c.available_employees(today):
            it = QListWidgetItem(e.full_name)
            it.setData(Qt.UserRole, e.employee_id)
            self.available_list.addItem(it)

        self.task_panel.refresh()
        self.status.showMessage(f"{len(c.employees())} employees, {len(absent)} absent today ({today})")

    def _fill_combo(self, combo: QComboBox, items, selected):
        combo.blockSignals(True)
        combo.clear()
        for label, value in items:
            combo.addItem(label, userData=value)
        idx = combo.findData(selected)
        combo.setCurrentIndex(idx if idx >= 0 else 0)
        combo.blockSignals(False)

    def _on_group_changed(self, _idx):
        self._group_id = self.cmb_group.currentData() or DEFAULT_GROUP_ID
        self.refresh()

    def _selected_employee_id(self):
        if self.available_list.currentItem() is not None:
            return self.available_list.currentItem().data(Qt.UserRole)
        row = self.emp_table.currentRow()
        if row < 0:
            return None
        return self.emp_table.item(row, 0).data(Qt.UserRole)

    def _selected_slot(self, shift_type):
        row = self.slot_tables[shift_type].currentRow()
        return row if row >= 0 else None

    # ---------------- employee form ----------------
    def _on_emp_selected(self):
        row = self.emp_table.currentRow()
        if row < 0:
            return
        emp = self.controller.get_employee(self.emp_table.item(row, 0).data(Qt.UserRole))
        if emp is None:
            return
        self._editing_emp_id = emp.employee_id
        self.emp_id.setText(emp.employee_id)
        self.emp_first.setText(emp.first_name)
        self.emp_last.setText(emp.last_name)
        self.emp_role.setCurrentIndex(max(0, self.emp_role.findData(emp.role_id)))
        self.emp_group.setCurrentIndex(max(0, self.emp_group.findData(emp.shift_group_id)))
        self.emp_manager.setChecked(emp.is_manager)

    def _clear_emp_form(self):
        self._editing_emp_id = None
        for w in (self.emp_id, self.emp_first, self.emp_last):
            w.clear()
        self.emp_role.setCurrentIndex(max(0, self.emp_role.findData("employee")))
        self.emp_group.setCurrentIndex(0)
        self.emp_manager.setChecked(False)
        self.emp_table.clearSelection()

    def _save_emp_form(self):
        first = self.emp_first.text().strip()
        if not first:
            QMessageBox.warning(self, "Check", "First name is required.")
            self.emp_first.setFocus()
            return
        fields = dict(first_name=first, last_name=self.emp_last.text().strip(),
                      role_id=self.emp_role.currentData(), shift_group_id=self.emp_group.currentData(),
                      is_manager=self.emp_manager.isChecked())
        if self._editing_emp_id is None:
            ok = self.controller.add_employee(**fields) is not None
        else:
            ok = self.controller.update_employee(self._editing_emp_id, **fields)
        if not ok:
            QMessageBox.warning(self, "Error", "Employee could not be saved.")
            return
        self._clear_emp_form()
        self.status.showMessage("Saved.", 2000)

    def _delete_selected_emp(self):
        emp = self.controller.get_employee(self._editing_emp_id) if self._editing_emp_id else None
        if emp is None:
            QMessageBox.information(self, "Delete", "Select an employee first.")
            return
        if QMessageBox.question(self, "Delete", f"Delete {emp.full_name}?") != QMessageBox.Yes:
            return
        self.controller.delete_employee(emp.employee_id)
        self._clear_emp_form()

    # ---------------- shifts ----------------
    def _assign_selected(self, shift_type):
        emp_id = self._selected_employee_id()
        if not emp_id:
            QMessageBox.information(self, "Assign", "Select an employee first.")
            return
        slot = self._selected_slot(shift_type)
        if slot is None:
            ok = self.controller.assign_to_first_free(emp_id, shift_type, self._group_id)
        else:
            ok = self.controller.assign_employee_to_shift(emp_id, shift_type, slot, self._group_id)
        if not ok:
            self.status.showMessage("Assignment refused (absent today, or no free slot).", 4000)

    def _remove_selected(self, shift_type):
        slot = self._selected_slot(shift_type)
        if slot is None:
            return
        emp_id = self.slot_tables[shift_type].item(slot, 0).data(Qt.UserRole)
        if emp_id:
            self.controller.remove_employee_from_shift(emp_id, shift_type, self._group_id)

    def _set_leader(self, shift_type):
        emp_id = self._selected_employee_id() or ""
        self.controller.set_team_leader(shift_type, emp_id, self._group_id)

    def _clear_shift(self, shift_type):
        if QMessageBox.question(self, "Clear", f"Vacate every {shift_type} slot?") == QMessageBox.Yes:
            self.controller.clear_shift(shift_type, self._group_id)

    def _apply_capacity(self):
        self.controller.set_shift_capacity(self.spin_capacity.value())

    # ---------------- absences ----------------
    def _mark_absent(self):
        emp_id = self._selected_employee_id()
        if emp_id:
            self.controller.mark_absent(emp_id, self.cmb_absence.currentData())

    def _clear_absence(self):
        emp_id = self._selected_employee_id()
        if emp_id:
            self.controller.clear_absence(emp_id)

    def _save_now(self):
        if self.controller.save():
            self.status.showMessage("Snapshot written.", 2000)
        else:
            QMessageBox.warning(self, "Error", "Snapshot could not be written, see the log.")

    def closeEvent(self, event):
        self._day_timer.stop()
        self._unsubscribe()
        super().closeEvent(event)
