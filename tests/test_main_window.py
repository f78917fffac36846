"""
Smoke tests for the main window wiring
"""
import pytest
from PySide6.QtCore import QSettings
from PySide6.QtGui import QColor, QImage

from albedoanalysis.model.geometry_primitives import Rect
from albedoanalysis.model.io import IOManager
from albedoanalysis.model.state import Investigation
from albedoanalysis.view.main_window import MainWindow


@pytest.fixture
def window(qapp, gray_investigation, tmp_path, monkeypatch):
    QSettings.setDefaultFormat(QSettings.Format.IniFormat)
    QSettings.setPath(QSettings.Format.IniFormat, QSettings.Scope.UserScope, str(tmp_path))
    win = MainWindow(gray_investigation)
    # Keep the rename prompt from opening a modal dialog
    monkeypatch.setattr(win, "prompt_rename", lambda measurement_id: None)
    yield win
    win.is_modified = False
    win.close()


def _write_png(path, gray):
    image = QImage(40, 30, QImage.Format.Format_RGB32)
    image.fill(QColor(gray, gray, gray))
    assert image.save(str(path))
    return str(path)


class TestMainWindow:
    def test_image_loaded_activates_session(self, window, gray_investigation):
        window.on_image_loaded(gray_investigation.get_image())
        assert window.session.is_image_loaded
        assert window.act_zoom_in.isEnabled()
        assert len(gray_investigation.reference_fields) == 1
        assert window.windowTitle().endswith("*]")

    def test_save_writes_investigation(self, window, gray_investigation, tmp_path):
        window.on_image_loaded(gray_investigation.get_image())
        window.session.commit_measurement(Rect(10, 10, 30, 30))
        window.filepath = str(tmp_path / "out.json")

        window.on_file_save()

        loaded = IOManager.load_investigation(window.filepath)
        assert len(loaded.measurements) == 1
        assert not window.is_modified


class TestBackgroundImageLoad:
    def test_loaded_image_is_attached(self, qapp, window, gray_investigation, tmp_path):
        path = _write_png(tmp_path / "white.png", 255)

        window.load_image(path)
        worker = window.load_worker
        worker.wait()
        qapp.processEvents()

        assert gray_investigation.image_info.name == "white.png"
        assert window.session.is_image_loaded
        assert window.load_worker is None

    def test_new_investigation_drops_pending_load(self, qapp, window, tmp_path):
        path = _write_png(tmp_path / "a.png", 200)

        window.load_image(path)
        worker = window.load_worker
        fresh = Investigation.new()
        window._set_investigation(fresh, None)
        worker.wait()
        qapp.processEvents()

        assert fresh.image_info is None
        assert fresh.reference_fields == []
        assert not window.session.is_image_loaded
        assert not window.is_modified

    def test_newer_load_replaces_pending_one(self, qapp, window, gray_investigation, tmp_path):
        first = _write_png(tmp_path / "first.png", 10)
        second = _write_png(tmp_path / "second.png", 240)

        window.load_image(first)
        stale = window.load_worker
        window.load_image(second)
        current = window.load_worker
        stale.wait()
        current.wait()
        qapp.processEvents()

        assert gray_investigation.image_info.name == "second.png"
        assert window.session.image.name == "second.png"
        assert window._detached_workers == []

    def test_restoring_stored_image_keeps_unmodified(self, qapp, window, tmp_path):
        path = _write_png(tmp_path / "stored.png", 128)
        restored = Investigation.new()
        window._set_investigation(restored, str(tmp_path / "inv.json"))

        window.load_image(path, mark_modified=False)
        worker = window.load_worker
        worker.wait()
        qapp.processEvents()

        assert restored.image_info.name == "stored.png"
        assert not window.is_modified
