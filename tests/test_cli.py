"""End-to-end tests for the command-line interface and chart output."""

import json

from macc_analyzer.cli import main
from macc_analyzer.data.storage import import_measures_csv, load_measures, load_settings
from macc_analyzer.models.macc import build_macc
from macc_analyzer.models.measure import Baseline, MACCSettings, Measure, YearRecord
from macc_analyzer.reports.charts import PALETTE, color_for_id, create_macc_chart, create_year_chart


def _template_file(tmp_path):
    path = tmp_path / "template.json"
    path.write_text(json.dumps({
        "name": "LNG switch",
        "sector": "Iron & Steel",
        "adoption": [0, 1, 1, 1, 1, 1, 1],
        "fuel_lines": [{"name": "LNG", "delta": [0, 100, 100, 100, 100, 100, 100], "price_override": 100}],
    }), encoding="utf-8")
    return path


class TestMain:
    def test_sample_run(self, capsys):
        assert main([]) == 0
        out = capsys.readouterr().out
        assert "ANALYSIS COMPLETE" in out

    def test_methodology(self, capsys):
        assert main(["-m"]) == 0
        assert capsys.readouterr().out

    def test_invalid_settings_exit_code(self):
        assert main(["--quiet", "--carbon-price", "-5"]) == 2

    def test_target_out_of_range_exit_code(self):
        assert main(["--quiet", "--target", "150"]) == 2

    def test_missing_template_exit_code(self, tmp_path, capsys):
        assert main(["--quiet", "--template", str(tmp_path / "missing.json")]) == 2
        assert "Error in template" in capsys.readouterr().err

    def test_malformed_template_exit_code(self, tmp_path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        listed = tmp_path / "list.json"
        listed.write_text("[1, 2]", encoding="utf-8")
        assert main(["--quiet", "--template", str(bad)]) == 2
        assert main(["--quiet", "--template", str(listed)]) == 2
        assert capsys.readouterr().err.count("Error in template") == 2

    def test_outputs_written(self, tmp_path):
        csv_path = tmp_path / "out.csv"
        json_path = tmp_path / "out.json"
        settings_path = tmp_path / "settings.json"
        code = main([
            "--quiet",
            "--sector", "Cement",
            "--carbon-price", "250",
            "--export-csv", str(csv_path),
            "--save", str(json_path),
            "--save-settings", str(settings_path),
        ])
        assert code == 0
        assert len(import_measures_csv(str(csv_path))) == len(load_measures(str(json_path)))
        settings = load_settings(str(settings_path))
        assert settings.sector == "Cement"
        assert settings.carbon_price == 250

    def test_template_added_and_charted(self, tmp_path, capsys):
        json_path = tmp_path / "out.json"
        chart = tmp_path / "year.png"
        code = main([
            "--template", str(_template_file(tmp_path)),
            "--save", str(json_path),
            "--year-chart", str(chart),
        ])
        assert code == 0
        assert chart.exists()
        measures = load_measures(str(json_path))
        added = measures[-1]
        assert added.name == "LNG switch"
        assert added.details.mode == "template"
        # 100 t of LNG at 2.559 tCO2/t
        assert round(added.abatement_tco2, 3) == 255.9
        assert "LNG switch" in capsys.readouterr().out


class TestCharts:
    def _result(self, mode="capacity"):
        measures = [
            Measure(id=1, name="A", sector="Power", abatement_tco2=100, cost_per_tco2=-10),
            Measure(id=2, name="B", sector="Power", abatement_tco2=50, cost_per_tco2=20),
            Measure(id=3, name="C", sector="Power", abatement_tco2=80, cost_per_tco2=45),
        ]
        return build_macc(measures, MACCSettings(mode=mode, cost_model="fit"), Baseline("MWh", 1000, 1000))

    def test_macc_chart_written(self, tmp_path):
        path = tmp_path / "macc.png"
        create_macc_chart(self._result(), str(path))
        assert path.stat().st_size > 0

    def test_intensity_chart_written(self, tmp_path):
        path = tmp_path / "macc_pct.png"
        create_macc_chart(self._result("intensity"), str(path), currency="$")
        assert path.exists()

    def test_empty_year_chart_skipped(self, tmp_path):
        path = tmp_path / "none.png"
        create_year_chart([], str(path))
        assert not path.exists()

    def test_year_chart_written(self, tmp_path):
        path = tmp_path / "years.png"
        create_year_chart([YearRecord(year=2020), YearRecord(year=2025, direct_t=10, implied_cost_per_t=5)],
                          str(path))
        assert path.exists()

    def test_colours_stable(self):
        assert color_for_id(7) == color_for_id("7")
        assert color_for_id(7) in PALETTE
