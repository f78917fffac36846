"""
Tests for annotation records, investigations and JSON persistence
"""
import json

import pytest

from albedoanalysis.model.annotations import (
    LayoutVariant, Measurement, ReferenceField, measurement_statistics,
)
from albedoanalysis.model.io import FILE_FORMAT, IOManager
from albedoanalysis.model.state import Investigation, Location

from conftest import solid_image


def sample_investigation() -> Investigation:
    investigation = Investigation.new("Parking lot")
    investigation.location = Location(name="Brno", lat=49.19, lng=16.61)
    investigation.attach_image(solid_image(64, 48, (10, 20, 30)))
    investigation.set_reference_fields([ReferenceField.auto_seed()])
    investigation.set_measurements([
        Measurement(id="m1", x=1, y=2, width=20, height=15, albedo_value=0.42, description="Asphalt"),
        Measurement(id="m2", x=30, y=5, width=12, height=12, albedo_value=0.7, description="Roof"),
    ])
    return investigation


class TestLayoutVariant:
    @pytest.mark.parametrize("raw, expected", [
        (None, LayoutVariant.SINGLE),
        ("single", LayoutVariant.SINGLE),
        ("two-rect", LayoutVariant.TWO_RECT),
        ("three_rect", LayoutVariant.THREE_RECT),
        ("twoRect", LayoutVariant.TWO_RECT),
    ])
    def test_parse(self, raw, expected):
        assert LayoutVariant.parse(raw) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            LayoutVariant.parse("hexagon")


class TestRecords:
    def test_reference_field_dict_shape(self):
        data = ReferenceField.auto_seed().to_dict()
        assert data["layoutVariant"] == "two-rect"
        assert data["rectWidth"] == 40
        assert data["spacing"] == 2
        assert data["albedoValue"] == 0.85

    def test_reference_field_legacy_flags(self):
        field = ReferenceField.from_dict({
            "id": "r", "x": 1, "y": 2, "width": 3, "height": 4,
            "hasThreeRectangles": True, "label": "Old",
        })
        assert field.layout_variant is LayoutVariant.THREE_RECT
        assert field.description == "Old"

    def test_measurement_rejects_other_types(self):
        with pytest.raises(ValueError):
            Measurement.from_dict({"id": "x", "x": 0, "y": 0, "width": 1, "height": 1, "type": "reference"})

    def test_auto_seed_ids_are_unique(self):
        assert ReferenceField.auto_seed().id != ReferenceField.auto_seed().id

    def test_statistics_empty(self):
        stats = measurement_statistics([])
        assert stats.count == 0
        assert stats.mean == 0.0


class TestIOManager:
    def test_save_and_load(self, tmp_path):
        original = sample_investigation()
        path = tmp_path / "inv.json"

        IOManager.save_investigation(original, str(path))
        loaded = IOManager.load_investigation(str(path))

        assert loaded == original
        assert loaded.image is None
        assert loaded.image_info.width == 64
        assert loaded.location.name == "Brno"

    def test_file_has_envelope(self, tmp_path):
        path = tmp_path / "inv.json"
        IOManager.save_investigation(sample_investigation(), str(path))
        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["format"] == FILE_FORMAT
        assert payload["investigation"]["measurements"][0]["type"] == "measurement"
        assert payload["investigation"]["image"]["dimensions"] == {"width": 64, "height": 48}

    def test_bare_record_is_accepted(self, tmp_path):
        path = tmp_path / "bare.json"
        record = sample_investigation().to_dict()
        record["location"] = {"name": "Old", "coordinates": {"lat": 1.5, "lng": 2.5}}
        path.write_text(json.dumps(record), encoding="utf-8")

        loaded = IOManager.load_investigation(str(path))
        assert loaded.location.lat == 1.5
        assert len(loaded.measurements) == 2

    def test_malformed_record_raises_value_error(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"name": "missing id"}), encoding="utf-8")
        with pytest.raises(ValueError):
            IOManager.load_investigation(str(path))

    def test_non_record_raises_value_error(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(ValueError):
            IOManager.load_investigation(str(path))

    def test_failed_save_keeps_existing_file(self, tmp_path):
        path = tmp_path / "inv.json"
        path.write_text("previous", encoding="utf-8")
        investigation = sample_investigation()
        investigation.name = object()  # not JSON serializable

        with pytest.raises(TypeError):
            IOManager.save_investigation(investigation, str(path))

        assert path.read_text(encoding="utf-8") == "previous"
        assert [p.name for p in tmp_path.iterdir()] == ["inv.json"]
