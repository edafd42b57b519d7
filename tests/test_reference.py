"""Unit tests for reference data loading and normalization."""

import json

import pytest

from macc_analyzer.data.reference import ReferenceLibrary, normalize_row
from macc_analyzer.models.measure import ALL_SECTORS


class TestNormalizeRow:
    def test_canonical_price_preferred(self):
        row = normalize_row("fuel", {"name": "LNG", "unit": "ton", "price": 10, "price_per_unit_inr": 99,
                                     "ef_tco2_per_unit": 2.559})
        assert row.price == 10
        assert row.ef == 2.559

    def test_alternate_field_names(self):
        row = normalize_row("raw", {"name": "IOP", "unit": "ton", "price_per_unit_inr": 42, "ef_t_per_unit": 0.137})
        assert row.price == 42
        assert row.ef == 0.137

    def test_missing_values_default_to_zero(self):
        row = normalize_row("waste", {"name": "Water treatment"})
        assert row.price == 0.0
        assert row.ef == 0.0

    def test_blank_field_falls_through(self):
        row = normalize_row("fuel", {"name": "X", "price": "", "price_per_unit_inr": 7})
        assert row.price == 7

    def test_electricity_keyed_by_state(self):
        row = normalize_row("electricity", {"state": "India", "price_per_mwh_inr": 450, "ef_tco2_per_mwh": 0.7})
        assert row.name == "India"
        assert row.unit == "MWh"
        assert row.price == 450
        assert row.ef == 0.7

    def test_electricity_defaults(self):
        row = normalize_row("electricity", {"state": "Somewhere"})
        assert row.price == 500.0
        assert row.ef == 0.710

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            normalize_row("fuel", {"name": "Bad", "price": -1})

    def test_rows_are_immutable(self):
        row = normalize_row("fuel", {"name": "LNG"})
        with pytest.raises(Exception):
            row.price = 5


class TestReferenceLibrary:
    def test_packaged_data_loads(self):
        lib = ReferenceLibrary()
        assert "LNG" in lib.names("fuel")
        assert lib.lookup("electricity", "India").ef == pytest.approx(0.710)
        assert "Cement" in lib.sectors
        assert lib.baselines["Power"].production_label == "MWh"

    def test_lookup_unknown_fuel_returns_none(self):
        lib = ReferenceLibrary()
        assert lib.lookup("fuel", "Unobtainium") is None

    def test_lookup_unknown_state_returns_none(self):
        lib = ReferenceLibrary.from_tables({"electricity": [
            {"state": "A", "price_per_mwh": 100, "ef_tco2_per_mwh": 0.5},
            {"state": "B", "price_per_mwh": 200, "ef_tco2_per_mwh": 0.6},
        ]})
        assert lib.lookup("electricity", "B").price == 200
        assert lib.lookup("electricity", "Z") is None

    def test_empty_electricity_table(self):
        lib = ReferenceLibrary.from_tables({})
        assert lib.lookup("electricity", "India") is None

    def test_unknown_category_raises(self):
        lib = ReferenceLibrary.from_tables({})
        with pytest.raises(KeyError):
            lib.get_table("steam")

    def test_load_from_directory(self, tmp_path):
        (tmp_path / "fuels.json").write_text(json.dumps([{"name": "Coal", "unit": "t", "price": 7000,
                                                          "ef_tco2_per_unit": 2.4}]), encoding="utf-8")
        (tmp_path / "raw.json").write_text("{not json", encoding="utf-8")
        (tmp_path / "sectors.json").write_text(json.dumps(["Power"]), encoding="utf-8")
        lib = ReferenceLibrary(str(tmp_path))
        assert lib.lookup("fuel", "Coal").price == 7000
        assert lib.get_table("raw") == []
        assert lib.sectors == ["Power"]

    def test_undecodable_file_leaves_table_empty(self, tmp_path):
        (tmp_path / "fuels.json").write_bytes(b'[{"name": "\xff\xfe bad"}]')
        (tmp_path / "raw.json").write_text(json.dumps([{"name": "IOP", "ef_t_per_unit": 0.137}]), encoding="utf-8")
        lib = ReferenceLibrary(str(tmp_path))
        assert lib.get_table("fuel") == []
        assert lib.lookup("raw", "IOP").ef == 0.137

    def test_directory_in_place_of_file(self, tmp_path):
        (tmp_path / "waste.json").mkdir()
        lib = ReferenceLibrary(str(tmp_path))
        assert lib.get_table("waste") == []

    def test_missing_directory(self, tmp_path):
        lib = ReferenceLibrary(str(tmp_path / "nope"))
        assert lib.get_table("fuel") == []
        assert lib.sectors == []


class TestActiveBaseline:
    def _lib(self):
        return ReferenceLibrary.from_tables({}, baselines={
            "Power": {"production_label": "MWh", "annual_production": 100, "annual_emissions": 300},
            "Cement": {"production_label": "t", "annual_production": 50, "annual_emissions": 40},
        })

    def test_all_sectors_sums(self):
        b = self._lib().active_baseline(ALL_SECTORS)
        assert b.production_label == "units"
        assert b.annual_production == 150
        assert b.annual_emissions == 340

    def test_single_sector(self):
        b = self._lib().active_baseline("Cement")
        assert b.annual_emissions == 40
        assert b.intensity == pytest.approx(0.8)

    def test_unknown_sector_is_neutral(self):
        b = self._lib().active_baseline("Textiles")
        assert (b.production_label, b.annual_production, b.annual_emissions) == ("units", 1.0, 1.0)

    def test_sectors_fall_back_to_baseline_keys(self):
        assert self._lib().sectors == ["Power", "Cement"]
