"""Unit tests for input validators."""

from macc_analyzer.data.validators import (
    validate_abatement,
    validate_carbon_price,
    validate_discount_rate,
    validate_measure,
    validate_name,
    validate_settings,
    validate_target_pct,
    validate_template,
)
from macc_analyzer.models.measure import DriverLine, MACCSettings, Measure, MeasureTemplate


class TestSingleValues:
    def test_empty_name_warns(self):
        valid, msg = validate_name("  ")
        assert valid
        assert msg.startswith("Warning")

    def test_non_positive_abatement_warns_but_is_valid(self):
        valid, msg = validate_abatement(0)
        assert valid
        assert "won't appear on the MACC" in msg

    def test_positive_abatement_ok(self):
        assert validate_abatement(10) == (True, "")

    def test_discount_rate(self):
        assert validate_discount_rate(0.08) == (True, "")
        valid, msg = validate_discount_rate(0.45)
        assert valid and "unusual" in msg
        assert validate_discount_rate(-1)[0] is False

    def test_carbon_price(self):
        assert validate_carbon_price(0) == (True, "")
        assert validate_carbon_price(-5)[0] is False

    def test_target_pct(self):
        assert validate_target_pct(20) == (True, "")
        assert validate_target_pct(101)[0] is False
        valid, msg = validate_target_pct(80)
        assert valid and msg.startswith("Warning")


class TestMeasure:
    def test_clean_measure(self):
        assert validate_measure(Measure(name="A", abatement_tco2=5)) == (True, [])

    def test_collects_warnings(self):
        valid, messages = validate_measure(Measure(name="", abatement_tco2=-1))
        assert valid
        assert len(messages) == 2


class TestTemplate:
    def test_default_template_is_clean(self):
        assert validate_template(MeasureTemplate()) == (True, [])

    def test_short_series_warn(self):
        template = MeasureTemplate(
            adoption=[0, 0.5],
            fuel_lines=[DriverLine(name="LNG", delta=[1, 2, 3])],
        )
        valid, messages = validate_template(template)
        assert valid
        assert any("Adoption has 2 values" in m for m in messages)
        assert any("fuel line 1 (LNG) has 3 quantities" in m for m in messages)

    def test_adoption_out_of_range_warns(self):
        template = MeasureTemplate(adoption=[0, 0.5, 1.5, 1, 1, 1, 1])
        _, messages = validate_template(template)
        assert any("clamped" in m for m in messages)

    def test_negative_override_invalid(self):
        line = DriverLine(name="LNG", delta=[0] * 7, price_override=-1)
        valid, messages = validate_template(MeasureTemplate(fuel_lines=[line]))
        assert not valid
        assert any("price override" in m for m in messages)

    def test_unnamed_line_warns(self):
        line = DriverLine(delta=[0] * 7)
        _, messages = validate_template(MeasureTemplate(electricity_lines=[line]))
        assert any("electricity line 1 has no reference name" in m for m in messages)


class TestSettings:
    def test_defaults_valid(self):
        assert validate_settings(MACCSettings()) == (True, [])

    def test_negative_carbon_price(self):
        valid, messages = validate_settings(MACCSettings(carbon_price=-10))
        assert not valid
        assert messages == ["Carbon price cannot be negative."]

    def test_target_out_of_range(self):
        valid, messages = validate_settings(MACCSettings(target_pct=120))
        assert not valid
        assert messages == ["Target must be between 0% and 100% of baseline emissions."]
