"""
Main Application Window
=======================
The primary GUI container that holds the Menu Bar, the image canvas and the
side panels.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects global actions (like File -> Save) to the
   workspace session, the IOManager and the background image loader.
"""
import logging
import os
from typing import Optional

from PySide6.QtCore import QSettings, QTimer, Qt, Slot
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QFileDialog, QInputDialog, QLineEdit, QMainWindow, QMessageBox,
    QSplitter, QVBoxLayout, QWidget,
)

from albedoanalysis import config
from albedoanalysis.controller.workers import ImageLoadWorker
from albedoanalysis.controller.workspace import WorkspaceSession
from albedoanalysis.model.annotations import Measurement
from albedoanalysis.model.io import IOManager
from albedoanalysis.model.state import Investigation, RasterImage
from albedoanalysis.view.widgets.canvas import ImageCanvas
from albedoanalysis.view.widgets.measurement_panel import MeasurementPanel
from albedoanalysis.view.widgets.reference_panel import ReferencePanel

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, investigation: Investigation) -> None:
        super().__init__()
        self.investigation: Investigation = investigation
        self.session = WorkspaceSession(investigation)
        self.filepath: Optional[str] = None
        self.is_modified: bool = False
        self.load_worker: Optional[ImageLoadWorker] = None
        self._detached_workers: list[ImageLoadWorker] = []
        self._load_marks_modified: bool = True

        self.update_window_title()
        self.resize(1400, 900)

        # --- MAIN CONTAINER ---
        splitter = QSplitter(Qt.Orientation.Horizontal)
        self.setCentralWidget(splitter)

        # --- LEFT SIDE: Image canvas ---
        self.canvas = ImageCanvas(self.session)
        splitter.addWidget(self.canvas)

        # --- RIGHT SIDE: Panels ---
        side = QWidget()
        side_layout = QVBoxLayout(side)
        side_layout.setContentsMargins(0, 0, 0, 0)
        self.reference_panel = ReferencePanel(self.session)
        self.measurement_panel = MeasurementPanel(self.session)
        side_layout.addWidget(self.reference_panel)
        side_layout.addWidget(self.measurement_panel, stretch=1)
        splitter.addWidget(side)

        # Set initial proportions (3 parts image : 1 part sidebar)
        splitter.setSizes([1050, 350])

        # --- SIGNAL CONNECTIONS ---
        self.session.measurement_created.connect(self.on_measurement_created)
        self.session.measurements_changed.connect(self.on_data_changed)
        self.session.reference_fields_changed.connect(self.on_data_changed)
        self.session.image_changed.connect(self._update_action_state)
        self.canvas.rename_requested.connect(self.prompt_rename)
        self.measurement_panel.rename_requested.connect(self.prompt_rename)

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()
        self._update_action_state()
        self.statusBar().showMessage("Open an image to start measuring.")

    def _create_actions(self) -> None:
        # File Actions
        self.act_new = QAction("New Investigation", self)
        self.act_new.setShortcut(QKeySequence.StandardKey.New)
        self.act_new.triggered.connect(self.on_file_new)

        self.act_open_image = QAction("Open Image...", self)
        self.act_open_image.setShortcut("Ctrl+I")
        self.act_open_image.triggered.connect(self.on_open_image)

        self.act_open = QAction("Open Investigation...", self)
        self.act_open.setShortcut(QKeySequence.StandardKey.Open)
        self.act_open.triggered.connect(self.on_file_open)

        self.act_save = QAction("Save", self)
        self.act_save.setShortcut(QKeySequence.StandardKey.Save)
        self.act_save.triggered.connect(self.on_file_save)

        self.act_save_as = QAction("Save As...", self)
        self.act_save_as.setShortcut("Ctrl+Shift+S")
        self.act_save_as.triggered.connect(self.on_file_save_as)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

        # Edit Actions
        self.act_clear = QAction("Clear All Annotations", self)
        self.act_clear.triggered.connect(self.on_clear_all)

        # View Actions
        self.act_zoom_in = QAction("Zoom In", self)
        self.act_zoom_in.setShortcut(QKeySequence.StandardKey.ZoomIn)
        self.act_zoom_in.triggered.connect(self.session.zoom_in)

        self.act_zoom_out = QAction("Zoom Out", self)
        self.act_zoom_out.setShortcut(QKeySequence.StandardKey.ZoomOut)
        self.act_zoom_out.triggered.connect(self.session.zoom_out)

        self.act_zoom_reset = QAction("Fit to Window", self)
        self.act_zoom_reset.setShortcut("Ctrl+0")
        self.act_zoom_reset.triggered.connect(self.session.reset_zoom)

        self.act_zoom_selection = QAction("Zoom to Selection", self)
        self.act_zoom_selection.setShortcut("Ctrl+E")
        self.act_zoom_selection.triggered.connect(self.on_zoom_to_selection)

    def _create_menus(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")
        file_menu.addAction(self.act_new)
        file_menu.addSeparator()
        file_menu.addAction(self.act_open_image)
        file_menu.addAction(self.act_open)
        file_menu.addSeparator()
        file_menu.addAction(self.act_save)
        file_menu.addAction(self.act_save_as)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

        edit_menu = menu_bar.addMenu("&Edit")
        edit_menu.addAction(self.act_clear)

        view_menu = menu_bar.addMenu("&View")
        view_menu.addAction(self.act_zoom_in)
        view_menu.addAction(self.act_zoom_out)
        view_menu.addAction(self.act_zoom_reset)
        view_menu.addAction(self.act_zoom_selection)

    # --- HELPER METHODS ---
    def update_window_title(self) -> None:
        """Updates the window title based on filename and dirty state."""
        filename = os.path.basename(self.filepath) if self.filepath else "Untitled"
        title = f"{config.VISIBLE_APP_NAME} - [{filename}"
        if self.is_modified:
            title += "*"
        title += "]"
        self.setWindowTitle(title)

    def set_modified(self, modified: bool) -> None:
        """Sets the dirty flag and updates title if changed."""
        if self.is_modified != modified:
            self.is_modified = modified
            self.update_window_title()

    def _update_action_state(self, *_args) -> None:
        loaded = self.session.is_image_loaded
        for action in (self.act_zoom_in, self.act_zoom_out, self.act_zoom_reset, self.act_zoom_selection):
            action.setEnabled(loaded)

    def _last_dir(self) -> str:
        return str(QSettings().value(config.SETTINGS_LAST_DIR, "", type=str))

    def _remember_dir(self, path: str) -> None:
        QSettings().setValue(config.SETTINGS_LAST_DIR, os.path.dirname(os.path.abspath(path)))

    def on_data_changed(self, *_args) -> None:
        """Slot called when annotations change."""
        self.set_modified(True)

    # --- MEASUREMENT SLOTS ---

    def on_measurement_created(self, measurement: Measurement) -> None:
        self.statusBar().showMessage(
            f"{measurement.description}: albedo {measurement.albedo_value:.3f}", 5000
        )
        # Prompt after the mouse release has been fully processed
        QTimer.singleShot(config.RENAME_PROMPT_DELAY_MS, lambda: self.prompt_rename(measurement.id))

    def prompt_rename(self, measurement_id: str) -> None:
        current = next((m for m in self.session.measurements if m.id == measurement_id), None)
        if current is None:
            return
        name, ok = QInputDialog.getText(
            self, "Rename Measurement", "Description:", QLineEdit.EchoMode.Normal, current.description
        )
        if ok and name.strip():
            self.session.rename_measurement(measurement_id, name.strip())

    def on_zoom_to_selection(self) -> None:
        record = self.session.find_annotation(self.session.selected_id) if self.session.selected_id else None
        if record is None:
            self.statusBar().showMessage("Select a measurement or reference field first.", 3000)
            return
        self.session.zoom_to_rect(record.rect)

    def on_clear_all(self) -> None:
        if not (self.session.measurements or self.session.reference_fields):
            return
        reply = QMessageBox.question(
            self,
            "Clear All",
            "Remove all reference fields and measurements?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        if reply == QMessageBox.StandardButton.Yes:
            self.session.clear_all()

    # --- IMAGE LOADING ---

    def on_open_image(self) -> None:
        fname, _ = QFileDialog.getOpenFileName(
            self, "Open Image", self._last_dir(), config.IMAGE_FILE_FILTER
        )
        if fname:
            self._remember_dir(fname)
            self.load_image(fname)

    def load_image(self, path: str, mark_modified: bool = True) -> None:
        """
        Decode ``path`` on a worker thread and attach it to the current
        investigation. A load still in flight is detached first: its result
        is dropped, since it was requested for a different state.
        """
        self._detach_load_worker()
        self.session.begin_image_load()
        self.statusBar().showMessage(f"Loading {os.path.basename(path)}...")
        self._load_marks_modified = mark_modified
        self.load_worker = ImageLoadWorker(path)
        self.load_worker.loaded.connect(self.on_image_loaded)
        self.load_worker.error_occurred.connect(self.on_image_error)
        self.load_worker.finished.connect(self._on_load_worker_finished)
        self.load_worker.start()

    def _detach_load_worker(self) -> None:
        worker, self.load_worker = self.load_worker, None
        if worker is None:
            return
        logger.info("Discarding pending image load.")
        worker.loaded.disconnect(self.on_image_loaded)
        worker.error_occurred.disconnect(self.on_image_error)
        # Hold a reference until the thread has finished
        self._detached_workers.append(worker)

    @Slot()
    def _on_load_worker_finished(self) -> None:
        worker = self.sender()
        if worker is self.load_worker:
            self.load_worker = None
        elif worker in self._detached_workers:
            self._detached_workers.remove(worker)

    def _is_stale_result(self) -> bool:
        # Results already queued before a detach still arrive from the old worker
        worker = self.sender()
        return worker is not None and worker is not self.load_worker

    @Slot(object)
    def on_image_loaded(self, image: RasterImage) -> None:
        if self._is_stale_result():
            logger.debug(f"Dropping stale decode of '{image.name}'.")
            return
        self.investigation.attach_image(image)
        self.session.on_image_decoded()
        self.set_modified(self._load_marks_modified)
        self._load_marks_modified = True
        self.statusBar().showMessage(f"{image.name}: {image.width} x {image.height} px", 5000)

    @Slot(str)
    def on_image_error(self, message: str) -> None:
        if self._is_stale_result():
            return
        self.statusBar().clearMessage()
        QMessageBox.critical(self, "Error", f"Could not load image:\n{message}")

    # --- FILE SLOTS ---

    def _maybe_save(self) -> bool:
        """Ask to save unsaved changes. Returns False if the user cancelled."""
        if not self.is_modified:
            return True
        reply = QMessageBox.question(
            self,
            "Save changes?",
            "The investigation was modified. Save changes?",
            QMessageBox.StandardButton.Save | QMessageBox.StandardButton.Discard | QMessageBox.StandardButton.Cancel,
        )
        if reply == QMessageBox.StandardButton.Save:
            self.on_file_save()
            return not self.is_modified
        return reply == QMessageBox.StandardButton.Discard

    def _set_investigation(self, investigation: Investigation, filepath: Optional[str]) -> None:
        self._detach_load_worker()
        self.investigation = investigation
        self.filepath = filepath
        self.session.set_source(investigation)
        self.is_modified = False
        self.update_window_title()

    def on_file_new(self) -> None:
        if not self._maybe_save():
            return
        self._set_investigation(Investigation.new(), None)

    def on_file_open(self) -> None:
        if not self._maybe_save():
            return
        fname, _ = QFileDialog.getOpenFileName(
            self, "Open Investigation", self._last_dir(), config.INVESTIGATION_FILE_FILTER
        )
        if not fname:
            return
        try:
            investigation = IOManager.load_investigation(fname)
        except Exception as e:
            QMessageBox.critical(self, "Error", f"Could not open file:\n{e}")
            return
        self._remember_dir(fname)
        self._set_investigation(investigation, fname)

        info = investigation.image_info
        if info is not None and info.path and os.path.exists(info.path):
            # Re-attaching the stored image is not a user modification
            self.load_image(info.path, mark_modified=False)
        elif info is not None:
            self.statusBar().showMessage(f"Image '{info.name}' not found; open it via File > Open Image.")

    def on_file_save(self) -> None:
        if self.filepath:
            try:
                IOManager.save_investigation(self.investigation, self.filepath)
                self.set_modified(False)
            except Exception as e:
                QMessageBox.critical(self, "Error", f"Could not save file:\n{e}")
        else:
            self.on_file_save_as()

    def on_file_save_as(self) -> None:
        fname, _ = QFileDialog.getSaveFileName(
            self, "Save Investigation", self._last_dir(), config.INVESTIGATION_FILE_FILTER
        )
        if not fname:
            return
        if not fname.endswith(".json"):
            fname += ".json"
        try:
            IOManager.save_investigation(self.investigation, fname)
            self._remember_dir(fname)
            self.filepath = fname
            self.is_modified = False
            self.update_window_title()
        except Exception as e:
            QMessageBox.critical(self, "Error", f"Could not save file:\n{e}")

    def closeEvent(self, event, /) -> None:
        """Handle window close event to prompt for saving if modified."""
        if not self._maybe_save():
            event.ignore()
            return
        for worker in [self.load_worker, *self._detached_workers]:
            if worker is not None and worker.isRunning():
                worker.wait()
        event.accept()
