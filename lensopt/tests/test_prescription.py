"""Tests for prescription import/export."""

import json
import logging

import pytest

from lensopt.materials import get_all_materials, get_material_by_name, refractive_index_for
from lensopt.prescription import (
    surface_from_dict,
    surface_to_dict,
    surfaces_from_payload,
    to_prescription_json,
)

logger = logging.getLogger(__name__)


@pytest.fixture
def assistant_rows():
    """Surface table in the shape the design assistant returns."""
    return [
        {"name": "L1 front", "radius": 52.0, "thickness": 6.0, "material": "BK7",
         "refractiveIndex": 1.5168, "semiDiameter": 15.0},
        {"name": "L1 back", "radius": 0, "thickness": 40.0, "material": "AIR",
         "refractiveIndex": 1.0, "semiDiameter": 15.0},
        {"name": "Image", "radius": "infinity", "thickness": 0.0, "material": "AIR",
         "refractiveIndex": 1.0, "semiDiameter": 10.0},
    ]


class TestSurfaceFromDict:
    """Tests for flexible key mapping."""

    def test_camel_case_row(self, assistant_rows):
        s = surface_from_dict(assistant_rows[0])
        assert s.radius == 52.0
        assert s.thickness == 6.0
        assert s.refractive_index == 1.5168
        assert s.semi_diameter == 15.0
        assert s.name == "L1 front"
        assert s.id

    def test_alternative_keys(self):
        s = surface_from_dict({"Radius": -30, "Thickness": 2, "semi_diameter": 9, "Material": "AIR"})
        assert s.radius == -30.0
        assert s.thickness == 2.0
        assert s.semi_diameter == 9.0

    def test_curvature_key(self):
        assert surface_from_dict({"curvature": 0.02}).radius == pytest.approx(50.0)

    def test_diameter_halved(self):
        assert surface_from_dict({"radius": 10, "diameter": 30}).semi_diameter == 15.0

    def test_index_from_catalog(self):
        s = surface_from_dict({"radius": 40, "thickness": 8, "material": "BK7"})
        assert s.refractive_index == pytest.approx(1.5168, abs=1e-4)

    def test_unknown_glass_without_index_is_air(self):
        assert surface_from_dict({"radius": 40, "material": "Mystery"}).refractive_index == 1.0

    def test_default_name_uses_position(self):
        assert surface_from_dict({"radius": 10}, 3).name == "Surface 4"

    def test_variable_flag(self):
        assert surface_from_dict({"radius": 10, "isVariable": True}).is_variable
        assert surface_from_dict({"radius": 10, "is_variable": "yes"}).is_variable

    def test_empty_fields_take_defaults(self):
        """Blank editor cells: planar, zero thickness, default semi-diameter, air."""
        s = surface_from_dict({"radius": "", "thickness": "", "semiDiameter": "",
                               "refractiveIndex": "", "material": ""})
        assert s.is_planar
        assert s.thickness == 0.0
        assert s.semi_diameter == 20.0
        assert s.material == "AIR"
        assert s.refractive_index == 1.0

    def test_invalid_row_raises(self):
        with pytest.raises(ValueError):
            surface_from_dict({"radius": 10, "thickness": -2})


class TestSurfacesFromPayload:
    """Tests for payload shapes."""

    def test_list_payload(self, assistant_rows):
        system = surfaces_from_payload(assistant_rows)
        assert len(system) == 3
        assert not system[0].is_planar
        assert system[1].is_planar
        assert system[2].is_planar
        logger.info("Imported %d surfaces, length %.1f", len(system), system.total_length)

    def test_wrapped_payload(self, assistant_rows):
        wrapped = surfaces_from_payload({"surfaces": assistant_rows})
        bare = surfaces_from_payload(assistant_rows)
        # ids are generated per import; everything else matches
        assert [s.with_changes(id="") for s in wrapped] == [s.with_changes(id="") for s in bare]

    def test_json_text_payload(self, assistant_rows):
        system = surfaces_from_payload(json.dumps(assistant_rows))
        assert [s.name for s in system] == ["L1 front", "L1 back", "Image"]

    def test_bytes_payload(self, assistant_rows):
        assert len(surfaces_from_payload(json.dumps({"surfaces": assistant_rows}).encode())) == 3

    def test_non_dict_rows_skipped(self, assistant_rows):
        system = surfaces_from_payload(assistant_rows + ["junk", 3])
        assert len(system) == 3

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError, match="Invalid JSON"):
            surfaces_from_payload("{not json")

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            surfaces_from_payload({"surfaces": []})

    def test_bad_row_reports_position(self, assistant_rows):
        rows = list(assistant_rows)
        rows[1] = dict(rows[1], refractiveIndex=-1.0)
        with pytest.raises(ValueError, match="Surface 2"):
            surfaces_from_payload(rows)


class TestExport:
    """Tests for export and round trip."""

    def test_planar_written_as_zero(self, default_system):
        row = surface_to_dict(default_system[-1])
        assert row["radius"] == 0.0
        assert set(row) == {"id", "name", "radius", "thickness", "material",
                            "refractiveIndex", "semiDiameter", "comment", "isVariable"}

    def test_document_shape(self, default_system):
        doc = to_prescription_json(default_system, project_name="Doublet", date_str="2024-01-01")
        assert doc["metadata"] == {"project_name": "Doublet", "date": "2024-01-01"}
        assert len(doc["optics"]["surfaces"]) == 5
        assert doc["optics"]["total_length"] == pytest.approx(64.0)
        json.dumps(doc)

    def test_round_trip(self, variable_system):
        doc = to_prescription_json(variable_system)
        restored = surfaces_from_payload(json.dumps(doc))
        assert restored == variable_system
        assert restored[-1].is_planar
        assert [s.comment for s in restored] == [s.comment for s in variable_system]


class TestMaterials:
    """Tests for the glass catalog."""

    def test_bk7_d_line(self):
        assert refractive_index_for("N-BK7") == 1.5168

    def test_aliases(self):
        assert get_material_by_name("bk7") is get_material_by_name("N-BK7")
        assert get_material_by_name(" Silica ") is not None

    def test_unknown_returns_fallback(self):
        assert refractive_index_for("Mystery", fallback=1.7) == 1.7
        assert refractive_index_for("Mystery") is None
        assert refractive_index_for("") is None

    def test_air(self):
        assert refractive_index_for("AIR") == 1.0

    def test_catalog_listing(self):
        names = {m["name"] for m in get_all_materials()}
        assert {"N-BK7", "N-SF2", "AIR"} <= names
