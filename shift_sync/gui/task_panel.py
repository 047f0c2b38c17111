# gui/task_panel.py
from PySide6.QtWidgets import (
    QGroupBox, QVBoxLayout, QHBoxLayout, QTableWidget, QTableWidgetItem,
    QLineEdit, QComboBox, QPushButton, QAbstractItemView, QHeaderView, QDoubleSpinBox, QCheckBox
)
from PySide6.QtCore import Qt

from shift_sync.models.task import PRIORITIES, STATUSES


class TaskPanel(QGroupBox):
    """Task list with add / status / assign controls. All writes go through the controller."""

    def __init__(self, controller, parent=None):
        super().__init__("Tasks", parent)
        self.controller = controller
        self._build_ui()

    def _build_ui(self):
        root = QVBoxLayout(self)

        self.table = QTableWidget(0, 5)
        self.table.setHorizontalHeaderLabels(["#", "Title", "Priority", "Status", "Assigned"])
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.SingleSelection)
        self.table.horizontalHeader().setSectionResizeMode(1, QHeaderView.Stretch)
        root.addWidget(self.table)

        add_row = QHBoxLayout()
        self.txt_title = QLineEdit()
        self.txt_title.setPlaceholderText("New task title")
        self.cmb_priority = QComboBox(); self.cmb_priority.addItems(PRIORITIES)
        self.cmb_priority.setCurrentText("medium")
        self.spin_hours = QDoubleSpinBox(); self.spin_hours.setRange(0.0, 999.0); self.spin_hours.setValue(1.0)
        btn_add = QPushButton("Add")
        btn_add.clicked.connect(self._add)
        add_row.addWidget(self.txt_title, 1)
        add_row.addWidget(self.cmb_priority)
        add_row.addWidget(self.spin_hours)
        add_row.addWidget(btn_add)
        root.addLayout(add_row)

        edit_row = QHBoxLayout()
        self.cmb_status = QComboBox(); self.cmb_status.addItems(STATUSES)
        btn_status = QPushButton("Set status")
        btn_status.clicked.connect(self._set_status)
        self.cmb_employee = QComboBox()
        self.cmb_employee.currentIndexChanged.connect(self._on_filter_changed)
        self.chk_only_employee = QCheckBox("Only this employee")
        self.chk_only_employee.toggled.connect(self._on_filter_changed)
        btn_assign = QPushButton("Assign")
        btn_assign.clicked.connect(self._assign)
        btn_unassign = QPushButton("Unassign")
        btn_unassign.clicked.connect(self._unassign)
        btn_delete = QPushButton("Delete")
        btn_delete.clicked.connect(self._delete)
        for w in (self.cmb_status, btn_status, self.cmb_employee, self.chk_only_employee, btn_assign, btn_unassign, btn_delete):
            edit_row.addWidget(w)
        root.addLayout(edit_row)

    def refresh(self):
        c = self.controller
        selected = self.cmb_employee.currentData()
        self.cmb_employee.blockSignals(True)
        self.cmb_employee.clear()
        for e in c.employees():
            self.cmb_employee.addItem(e.full_name, userData=e.employee_id)
        idx = self.cmb_employee.findData(selected)
        if idx >= 0:
            self.cmb_employee.setCurrentIndex(idx)
        self.cmb_employee.blockSignals(False)
        self._fill_table()

    def _fill_table(self):
        c = self.controller
        only = self.cmb_employee.currentData() if self.chk_only_employee.isChecked() else None
        if only:
            tasks = c.tasks_for_employee(only)
        else:
            tasks = list(c.tasks.tasks.values())

        self.table.setRowCount(0)
        for task in tasks:
            r = self.table.rowCount()
            self.table.insertRow(r)
            names = []
            for emp_id in task.assigned_employees:
                emp = c.get_employee(emp_id)
                names.append(emp.full_name if emp else emp_id)
            cells = [task.task_id, task.title, task.priority, task.status, ", ".join(names)]
            for col, text in enumerate(cells):
                item = QTableWidgetItem(text)
                item.setData(Qt.UserRole, task.task_id)
                self.table.setItem(r, col, item)

    def _on_filter_changed(self, *_args):
        self._fill_table()

    def _current_task_id(self):
        row = self.table.currentRow()
        if row < 0:
            return None
        return self.table.item(row, 0).data(Qt.UserRole)

    def _add(self):
        title = self.txt_title.text().strip()
        if not title:
            return
        self.controller.add_task(title, priority=self.cmb_priority.currentText(),
                                 estimated_hours=self.spin_hours.value())
        self.txt_title.clear()

    def _set_status(self):
        tid = self._current_task_id()
        if tid:
            self.controller.set_task_status(tid, self.cmb_status.currentText())

    def _assign(self):
        tid = self._current_task_id()
        emp_id = self.cmb_employee.currentData()
        if tid and emp_id:
            self.controller.assign_task(tid, emp_id)

    def _unassign(self):
        tid = self._current_task_id()
        emp_id = self.cmb_employee.currentData()
        if tid and emp_id:
            self.controller.unassign_task(tid, emp_id)

    def _delete(self):
        tid = self._current_task_id()
        if tid:
            self.controller.delete_task(tid)
