"""Side panel listing measurements, their statistics and an albedo bar chart."""
from __future__ import annotations

import logging
from typing import Optional, TYPE_CHECKING

import numpy as np
import pyqtgraph as pg
from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QAbstractItemView, QGroupBox, QHBoxLayout, QHeaderView, QLabel,
    QPushButton, QTableWidget, QTableWidgetItem, QVBoxLayout, QWidget,
)

from albedoanalysis.model.annotations import Measurement

if TYPE_CHECKING:
    from albedoanalysis.controller.workspace import WorkspaceSession

logger = logging.getLogger(__name__)


class MeasurementPanel(QWidget):
    """Table of measurements bound to a WorkspaceSession."""

    # Emitted with a measurement id when the user asks to rename it
    rename_requested = Signal(str)

    COLUMNS = ("Name", "Albedo", "Size [px]")

    def __init__(self, session: WorkspaceSession, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.session = session
        self._row_ids: list[str] = []
        self._syncing = False

        self._build_ui()

        session.measurements_changed.connect(self.refresh)
        session.selection_changed.connect(self._on_selection_changed)
        self.refresh()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)

        group = QGroupBox("Measurements")
        group_layout = QVBoxLayout(group)

        self.table = QTableWidget(0, len(self.COLUMNS))
        self.table.setHorizontalHeaderLabels(list(self.COLUMNS))
        self.table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        self.table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self.table.itemSelectionChanged.connect(self._on_table_selection)
        self.table.cellDoubleClicked.connect(self._on_cell_double_clicked)
        group_layout.addWidget(self.table)

        btn_row = QHBoxLayout()
        self.rename_btn = QPushButton("Rename...")
        self.rename_btn.clicked.connect(self._on_rename_clicked)
        self.delete_btn = QPushButton("Delete")
        self.delete_btn.clicked.connect(self._on_delete_clicked)
        btn_row.addWidget(self.rename_btn)
        btn_row.addWidget(self.delete_btn)
        btn_row.addStretch()
        group_layout.addLayout(btn_row)

        self.stats_label = QLabel()
        self.stats_label.setTextFormat(Qt.TextFormat.RichText)
        group_layout.addWidget(self.stats_label)

        layout.addWidget(group)

        # PyQtGraph bar chart of albedo per measurement
        self.plot_widget = pg.PlotWidget()
        self.plot_widget.setBackground('w')
        self.plot_widget.showGrid(x=False, y=True, alpha=0.3)
        self.plot_widget.setLabel('left', 'Albedo [-]', color='black')
        self.plot_widget.setLabel('bottom', 'Measurement', color='black')
        self.plot_widget.getAxis('bottom').setPen('k')
        self.plot_widget.getAxis('left').setPen('k')
        self.plot_widget.getAxis('bottom').setTextPen('k')
        self.plot_widget.getAxis('left').setTextPen('k')
        self.plot_widget.setYRange(0.0, 1.0)
        self.plot_widget.setMouseEnabled(x=False, y=False)
        self.plot_widget.setMinimumHeight(160)
        layout.addWidget(self.plot_widget)

    # ---- Refresh ----

    def refresh(self, measurements: Optional[list[Measurement]] = None) -> None:
        if measurements is None:
            measurements = self.session.measurements

        self._syncing = True
        try:
            self.table.setRowCount(len(measurements))
            self._row_ids = [m.id for m in measurements]
            for row, m in enumerate(measurements):
                self.table.setItem(row, 0, QTableWidgetItem(m.description))
                albedo_item = QTableWidgetItem(f"{m.albedo_value:.3f}")
                albedo_item.setTextAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
                self.table.setItem(row, 1, albedo_item)
                self.table.setItem(row, 2, QTableWidgetItem(f"{m.width:.0f} x {m.height:.0f}"))
            self._select_row_of(self.session.selected_id)
        finally:
            self._syncing = False

        stats = self.session.statistics()
        if stats.count:
            self.stats_label.setText(
                f"<b>n</b> = {stats.count} &nbsp; <b>mean</b> = {stats.mean:.3f} &nbsp; "
                f"<b>min</b> = {stats.minimum:.3f} &nbsp; <b>max</b> = {stats.maximum:.3f}"
            )
        else:
            self.stats_label.setText("<i>No measurements yet. Drag on the image to add one.</i>")

        self._update_plot(measurements)
        has_rows = bool(measurements)
        self.rename_btn.setEnabled(has_rows)
        self.delete_btn.setEnabled(has_rows)

    def _update_plot(self, measurements: list[Measurement]) -> None:
        self.plot_widget.clear()
        if not measurements:
            return
        x = np.arange(1, len(measurements) + 1, dtype=np.float64)
        heights = np.array([m.albedo_value for m in measurements], dtype=np.float64)
        bars = pg.BarGraphItem(x=x, height=heights, width=0.6, brush='#2ca02c')
        self.plot_widget.addItem(bars)
        self.plot_widget.getAxis('bottom').setTicks([[(float(i), str(int(i))) for i in x]])
        self.plot_widget.setXRange(0.5, len(measurements) + 0.5)

    # ---- Selection sync ----

    def _select_row_of(self, record_id: Optional[str]) -> None:
        if record_id in self._row_ids:
            self.table.selectRow(self._row_ids.index(record_id))
        else:
            self.table.clearSelection()

    def _on_selection_changed(self, record_id: Optional[str]) -> None:
        self._syncing = True
        try:
            self._select_row_of(record_id)
        finally:
            self._syncing = False

    def _on_table_selection(self) -> None:
        if self._syncing:
            return
        record_id = self.current_id()
        if record_id is not None:
            self.session.select(record_id)

    def current_id(self) -> Optional[str]:
        selected = self.table.selectionModel().selectedRows()
        row = selected[0].row() if selected else self.table.currentRow()
        if 0 <= row < len(self._row_ids):
            return self._row_ids[row]
        return None

    # ---- Buttons ----

    def _on_cell_double_clicked(self, row: int, _column: int) -> None:
        if 0 <= row < len(self._row_ids):
            self.rename_requested.emit(self._row_ids[row])

    def _on_rename_clicked(self) -> None:
        record_id = self.current_id()
        if record_id is not None:
            self.rename_requested.emit(record_id)

    def _on_delete_clicked(self) -> None:
        record_id = self.current_id()
        if record_id is not None:
            self.session.delete_annotation(record_id)
