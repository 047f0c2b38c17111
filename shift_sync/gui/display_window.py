# gui/display_window.py
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QHBoxLayout, QVBoxLayout, QLabel, QGroupBox,
    QListWidget, QScrollArea, QGridLayout
)
from PySide6.QtCore import Qt

from shift_sync.data.data_manager import DisplayConfig
from shift_sync.models.absence import CATEGORIES

CATEGORY_LABELS = {"leave": "Leave", "sick": "Sick", "absent": "Absent"}


class DisplayWindow(QMainWindow):
    """
    Read-only board. Fed canonical reports by the sync engine, never touches
    the entity model.
    """

    def __init__(self, display_config: DisplayConfig = None):
        super().__init__()
        self.setWindowTitle("Shift board")
        self.resize(1600, 900)
        self._report = None
        self._build_ui()
        self.apply_display_config(display_config or DisplayConfig())

    def _build_ui(self):
        central = QWidget()
        self.setCentralWidget(central)
        root = QVBoxLayout(central)

        header = QHBoxLayout()
        self.lbl_date = QLabel("")
        self.lbl_date.setStyleSheet("font-size:22px; font-weight:600;")
        self.lbl_updated = QLabel("")
        header.addWidget(self.lbl_date)
        header.addStretch(1)
        header.addWidget(self.lbl_updated)
        root.addLayout(header)

        body = QHBoxLayout()

        side = QVBoxLayout()
        mgr_box = QGroupBox("Managers")
        ml = QVBoxLayout(mgr_box)
        self.managers_list = QListWidget()
        ml.addWidget(self.managers_list)
        side.addWidget(mgr_box)

        abs_box = QGroupBox("Absences")
        al = QVBoxLayout(abs_box)
        self.absence_labels = {}
        for c in CATEGORIES:
            lbl = QLabel("")
            self.absence_labels[c] = lbl
            al.addWidget(lbl)
        side.addWidget(abs_box)
        side.addStretch(1)
        body.addLayout(side, 1)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        self._groups_host = QWidget()
        self._groups_grid = QGridLayout(self._groups_host)
        scroll.setWidget(self._groups_host)
        body.addWidget(scroll, 4)
        root.addLayout(body)

    def apply_display_config(self, cfg: DisplayConfig):
        self.setStyleSheet(f"QMainWindow {{ background-color: {cfg.background_color}; }}"
                           "QLabel, QGroupBox { color: #f0f0f0; }")

    def show_report(self, report: dict):
        """Re-render everything from one canonical report. Idempotent."""
        self._report = report
        self.lbl_date.setText(report.get("date", ""))
        self.lbl_updated.setText(f"updated {report.get('last_modified', '')}")

        self.managers_list.clear()
        for m in report.get("managers", []):
            self.managers_list.addItem(f"{m['first_name']} {m['last_name']}".strip())

        absences = report.get("absences", {})
        for c, lbl in self.absence_labels.items():
            recs = absences.get(c, [])
            names = ", ".join(r.get("employee_name") or r["employee_id"] for r in recs)
            lbl.setText(f"{CATEGORY_LABELS[c]}: {len(recs)}  {names}")

        while self._groups_grid.count():
            item = self._groups_grid.takeAt(0)
            if item.widget() is not None:
                item.widget().deleteLater()

        for col, group in enumerate(g for g in report.get("shift_groups", []) if g.get("is_active", True)):
            box = QGroupBox(group["name"])
            box.setStyleSheet(f"QGroupBox {{ border: 2px solid {group.get('color', '#4CAF50')}; }}")
            gl = QHBoxLayout(box)
            for key, title in (("morning_shift", "Morning"), ("evening_shift", "Evening")):
                shift = group[key]
                col_w = QVBoxLayout()
                head = QLabel(f"{title} ({len(shift['assigned_employees'])}/{shift['capacity']})")
                head.setAlignment(Qt.AlignCenter)
                col_w.addWidget(head)
                if shift.get("team_leader_name"):
                    col_w.addWidget(QLabel(f"Lead: {shift['team_leader_name']}"))
                roster = QListWidget()
                for e in shift["assigned_employees"]:
                    roster.addItem(f"{e['first_name']} {e['last_name']}".strip())
                col_w.addWidget(roster)
                gl.addLayout(col_w)
            self._groups_grid.addWidget(box, col // 2, col % 2)
