"""Side panel for the reference field: layout, known albedo and sampled readout."""
from __future__ import annotations

import logging
from typing import Optional, TYPE_CHECKING

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QComboBox, QDoubleSpinBox, QFormLayout, QGroupBox, QLabel,
    QPushButton, QVBoxLayout, QWidget,
)

from albedoanalysis.controller.sampling import grayscale_to_albedo
from albedoanalysis.controller.workspace import InteractionMode
from albedoanalysis.model.annotations import LayoutVariant, ReferenceField

if TYPE_CHECKING:
    from albedoanalysis.controller.workspace import WorkspaceSession

logger = logging.getLogger(__name__)

LAYOUT_LABELS = {
    LayoutVariant.SINGLE: "Single rectangle",
    LayoutVariant.TWO_RECT: "Two rectangles (mean)",
    LayoutVariant.THREE_RECT: "Three rectangles (middle)",
}


class ReferencePanel(QWidget):
    """Edits the first reference field of the session."""

    def __init__(self, session: WorkspaceSession, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.session = session
        self._updating = False

        layout = QVBoxLayout(self)
        group = QGroupBox("Reference Field")
        form = QFormLayout(group)

        self.name_label = QLabel("-")
        form.addRow("Field:", self.name_label)

        self.layout_combo = QComboBox()
        for variant, label in LAYOUT_LABELS.items():
            self.layout_combo.addItem(label, variant.value)
        self.layout_combo.currentIndexChanged.connect(self._on_layout_changed)
        form.addRow("Layout:", self.layout_combo)

        self.albedo_spin = QDoubleSpinBox()
        self.albedo_spin.setRange(0.0, 1.0)
        self.albedo_spin.setDecimals(3)
        self.albedo_spin.setSingleStep(0.01)
        self.albedo_spin.valueChanged.connect(self._on_albedo_changed)
        form.addRow("Known albedo:", self.albedo_spin)

        self.sampled_label = QLabel("-")
        self.sampled_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        form.addRow("Sampled:", self.sampled_label)

        self.add_btn = QPushButton("Place Reference Field")
        self.add_btn.setCheckable(True)
        self.add_btn.toggled.connect(self._on_add_toggled)
        form.addRow(self.add_btn)

        layout.addWidget(group)
        layout.addStretch()

        session.reference_fields_changed.connect(self.refresh)
        session.image_changed.connect(self.refresh)
        session.mode_changed.connect(self._on_mode_changed)
        self.refresh()

    def _field(self) -> Optional[ReferenceField]:
        fields = self.session.reference_fields
        return fields[0] if fields else None

    def refresh(self, *_args) -> None:
        field = self._field()
        self._updating = True
        try:
            enabled = field is not None
            self.layout_combo.setEnabled(enabled)
            self.albedo_spin.setEnabled(enabled)
            if field is None:
                self.name_label.setText("-")
                self.sampled_label.setText("-")
                return
            self.name_label.setText(field.description or "Reference")
            self.layout_combo.setCurrentIndex(max(0, self.layout_combo.findData(field.layout_variant.value)))
            self.albedo_spin.setValue(field.albedo_value)

            gray = self.session.reference_grayscale()
            if gray is None:
                self.sampled_label.setText("-")
            else:
                self.sampled_label.setText(f"gray {gray:.1f} / albedo {grayscale_to_albedo(gray):.3f}")
        finally:
            self._updating = False

    def _on_layout_changed(self, _index: int) -> None:
        field = self._field()
        if self._updating or field is None:
            return
        self.session.update_reference_field(
            field.id, layout_variant=LayoutVariant(self.layout_combo.currentData())
        )

    def _on_albedo_changed(self, value: float) -> None:
        field = self._field()
        if self._updating or field is None:
            return
        self.session.update_reference_field(field.id, albedo_value=value)

    def _on_add_toggled(self, checked: bool) -> None:
        self.session.set_mode(InteractionMode.REFERENCE if checked else InteractionMode.MEASUREMENT)

    def _on_mode_changed(self, mode: str) -> None:
        self.add_btn.blockSignals(True)
        self.add_btn.setChecked(mode == InteractionMode.REFERENCE)
        self.add_btn.blockSignals(False)
