"""Unit tests for the MACC builder and curve analytics."""

import pytest

from macc_analyzer.models.analytics import (
    CurvePoint,
    budget_to_target,
    fit_curve,
    quadratic_fit,
)
from macc_analyzer.models.macc import (
    build_curve_points,
    build_macc,
    build_segments,
    compute_summary,
    filter_measures,
    sort_by_effective_cost,
)
from macc_analyzer.models.measure import ALL_SECTORS, Baseline, MACCSettings, Measure


def _measures():
    return [
        Measure(id=1, name="Boiler upgrade", sector="Power", abatement_tco2=12_000_000, cost_per_tco2=300),
        Measure(id=2, name="VFDs", sector="Power", abatement_tco2=6_000_000, cost_per_tco2=-150),
        Measure(id=3, name="Waste heat", sector="Power", abatement_tco2=3_000_000, cost_per_tco2=800),
        Measure(id=4, name="Coal drying", sector="Power", abatement_tco2=5_000_000, cost_per_tco2=100),
        Measure(id=5, name="Clinker substitution", sector="Cement", abatement_tco2=15_000_000, cost_per_tco2=-300),
        Measure(id=6, name="Pilot", sector="Cement", abatement_tco2=1_000_000, cost_per_tco2=50, selected=False),
    ]


# ---- Filtering and sorting ----

class TestFilterAndSort:
    def test_filter_drops_unselected(self):
        ids = [m.id for m in filter_measures(_measures(), ALL_SECTORS)]
        assert ids == [1, 2, 3, 4, 5]

    def test_filter_by_sector(self):
        ids = [m.id for m in filter_measures(_measures(), "Power")]
        assert ids == [1, 2, 3, 4]

    def test_unknown_sector_is_empty(self):
        assert filter_measures(_measures(), "Textiles") == []

    def test_sort_ascending(self):
        ids = [m.id for m in sort_by_effective_cost(filter_measures(_measures()))]
        assert ids == [5, 2, 4, 1, 3]

    def test_sort_is_stable_for_ties(self):
        measures = [
            Measure(id=1, name="a", abatement_tco2=1, cost_per_tco2=10),
            Measure(id=2, name="b", abatement_tco2=1, cost_per_tco2=5),
            Measure(id=3, name="c", abatement_tco2=1, cost_per_tco2=10),
            Measure(id=4, name="d", abatement_tco2=1, cost_per_tco2=10),
        ]
        ids = [m.id for m in sort_by_effective_cost(measures, carbon_price=100)]
        assert ids == [2, 1, 3, 4]

    def test_sort_does_not_mutate_input(self):
        measures = _measures()
        sort_by_effective_cost(measures)
        assert [m.id for m in measures] == [1, 2, 3, 4, 5, 6]


# ---- Segments ----

class TestSegments:
    def test_segments_are_contiguous(self):
        ordered = sort_by_effective_cost(filter_measures(_measures()))
        segs = build_segments(ordered, 0.0, "capacity", Baseline())
        assert segs[0].x_start == 0.0
        for left, right in zip(segs, segs[1:]):
            assert left.x_end == right.x_start

    def test_total_width_equals_positive_abatement(self):
        ordered = sort_by_effective_cost(filter_measures(_measures()))
        segs = build_segments(ordered, 0.0, "capacity", Baseline())
        assert sum(s.width for s in segs) == pytest.approx(41_000_000)

    def test_costs_non_decreasing(self):
        ordered = sort_by_effective_cost(filter_measures(_measures()), 200)
        segs = build_segments(ordered, 200, "capacity", Baseline())
        costs = [s.cost for s in segs]
        assert costs == sorted(costs)
        assert costs[0] == -500

    def test_non_positive_abatement_skipped(self):
        measures = [
            Measure(id=1, name="a", abatement_tco2=100, cost_per_tco2=1),
            Measure(id=2, name="zero", abatement_tco2=0, cost_per_tco2=2),
            Measure(id=3, name="neg", abatement_tco2=-50, cost_per_tco2=3),
            Measure(id=4, name="nan", abatement_tco2=float("nan"), cost_per_tco2=4),
            Measure(id=5, name="b", abatement_tco2=200, cost_per_tco2=5),
        ]
        segs = build_segments(measures, 0.0, "capacity", Baseline())
        assert [s.measure_id for s in segs] == [1, 5]
        assert segs[1].x_start == 100
        assert segs[1].x_end == 300

    def test_intensity_mode_uses_percent_of_baseline(self):
        baseline = Baseline(production_label="t", annual_production=10, annual_emissions=1000)
        measures = [
            Measure(id=1, name="a", abatement_tco2=100, cost_per_tco2=1),
            Measure(id=2, name="b", abatement_tco2=50, cost_per_tco2=2),
        ]
        segs = build_segments(measures, 0.0, "intensity", baseline)
        assert segs[0].x_end == pytest.approx(10.0)
        assert segs[1].x_end == pytest.approx(15.0)

    def test_intensity_mode_zero_baseline(self):
        baseline = Baseline(annual_production=0, annual_emissions=0)
        measures = [Measure(id=1, name="a", abatement_tco2=100, cost_per_tco2=1)]
        segs = build_segments(measures, 0.0, "intensity", baseline)
        assert segs[0].x_end == 0.0

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            build_segments([], 0.0, "tonnes", Baseline())


# ---- Curve points and summary ----

class TestCurvePointsAndSummary:
    def test_point_per_measure(self):
        measures = [
            Measure(id=1, name="a", abatement_tco2=100, cost_per_tco2=1),
            Measure(id=2, name="neg", abatement_tco2=-50, cost_per_tco2=2),
            Measure(id=3, name="b", abatement_tco2=200, cost_per_tco2=5),
        ]
        points = build_curve_points(measures, 0.0, "capacity", Baseline())
        assert [p.cum_abatement for p in points] == [100, 100, 300]
        assert points[1].abatement == -50

    def test_summary(self):
        filtered = filter_measures(_measures(), "Power")
        summary = compute_summary(filtered, 0.0, Baseline("MWh", 120, 340))
        assert summary.total_abatement == 26_000_000
        assert summary.avg_cost == pytest.approx((300 - 150 + 800 + 100) / 4)
        assert summary.neg_cost_abatement == 6_000_000
        assert summary.baseline_intensity == pytest.approx(340 / 120)

    def test_summary_carbon_price_moves_negative_share(self):
        filtered = filter_measures(_measures(), "Power")
        summary = compute_summary(filtered, 150.5, Baseline())
        assert summary.neg_cost_abatement == 6_000_000 + 5_000_000

    def test_summary_empty(self):
        summary = compute_summary([], 0.0, Baseline(annual_production=0))
        assert summary.avg_cost == 0.0
        assert summary.baseline_intensity == 0.0


# ---- Quadratic fit ----

class TestQuadraticFit:
    def test_recovers_exact_quadratic(self):
        xs = [0, 1, 2, 3, 4, 5]
        ys = [2 + 3 * x + 0.5 * x * x for x in xs]
        fit = quadratic_fit(xs, ys)
        assert fit.available
        assert fit.a == pytest.approx(2.0, abs=1e-6)
        assert fit.b == pytest.approx(3.0, abs=1e-6)
        assert fit.c == pytest.approx(0.5, abs=1e-6)

    def test_fewer_than_three_points(self):
        fit = quadratic_fit([1, 2], [3, 4])
        assert not fit.available
        assert (fit.a, fit.b, fit.c) == (0.0, 0.0, 0.0)

    def test_singular_system(self):
        """All points at one x give a zero determinant."""
        fit = quadratic_fit([5, 5, 5, 5], [1, 2, 3, 4])
        assert not fit.available

    def test_evaluate(self):
        fit = quadratic_fit([0, 1, 2], [2, 5.5, 10])
        assert fit.evaluate(4) == pytest.approx(2 + 12 + 8)

    def test_fit_curve_positive_only(self):
        points = [
            CurvePoint(1, "a", "S", 1, -100.0, 1, 1.0),
            CurvePoint(2, "b", "S", 1, 1.0, 2, 2.0),
            CurvePoint(3, "c", "S", 1, 4.0, 3, 3.0),
            CurvePoint(4, "d", "S", 1, 9.0, 4, 4.0),
        ]
        fit, fitted = fit_curve(points, positive_costs_only=True)
        assert fit.available
        assert fit.c == pytest.approx(1.0, abs=1e-6)
        assert len(fitted) == 4
        assert fitted[0] == (1.0, pytest.approx(fit.evaluate(1.0)))

    def test_fit_curve_unavailable_has_no_series(self):
        points = [CurvePoint(1, "a", "S", 1, 5.0, 1, 1.0)]
        fit, fitted = fit_curve(points)
        assert not fit.available
        assert fitted == []


# ---- Budget to target ----

class TestBudgetToTarget:
    def _points(self):
        return [
            CurvePoint(1, "a", "S", 100, -10.0, 100, 100),
            CurvePoint(2, "b", "S", 200, 20.0, 300, 300),
            CurvePoint(3, "c", "S", 300, 50.0, 600, 600),
        ]

    def test_partial_take(self):
        """Target 250 t: 100 x -10 + 150 x 20 = 2000."""
        result = budget_to_target(self._points(), 25, "capacity", Baseline(annual_emissions=1000))
        assert result.target == pytest.approx(250)
        assert result.reached == pytest.approx(250)
        assert result.budget == pytest.approx(2000)

    def test_target_beyond_curve(self):
        result = budget_to_target(self._points(), 100, "capacity", Baseline(annual_emissions=1000))
        assert result.reached == pytest.approx(600)
        assert result.budget == pytest.approx(-1000 + 4000 + 15000)

    def test_intensity_mode_reports_percent(self):
        result = budget_to_target(self._points(), 25, "intensity", Baseline(annual_emissions=1000))
        assert result.target == pytest.approx(25.0)
        assert result.reached == pytest.approx(25.0)
        assert result.budget == pytest.approx(2000)

    def test_negative_budget_possible(self):
        result = budget_to_target(self._points(), 5, "capacity", Baseline(annual_emissions=1000))
        assert result.budget == pytest.approx(-500)

    def test_empty_points(self):
        result = budget_to_target([], 20, "capacity", Baseline(annual_emissions=1000))
        assert result.reached == 0.0
        assert result.budget == 0.0

    def test_negative_abatement_not_taken(self):
        points = [
            CurvePoint(1, "neg", "S", -100, -50.0, 0, 0),
            CurvePoint(2, "b", "S", 100, 10.0, 100, 100),
        ]
        result = budget_to_target(points, 10, "capacity", Baseline(annual_emissions=1000))
        assert result.reached == pytest.approx(100)
        assert result.budget == pytest.approx(1000)

    def test_monotonic_in_target(self):
        """Reached never decreases; budget never decreases for positive costs."""
        points = [
            CurvePoint(1, "a", "S", 100, 5.0, 100, 100),
            CurvePoint(2, "b", "S", 200, 20.0, 300, 300),
            CurvePoint(3, "c", "S", 300, 50.0, 600, 600),
        ]
        baseline = Baseline(annual_emissions=1000)
        previous = budget_to_target(points, 0, "capacity", baseline)
        for pct in range(1, 101):
            current = budget_to_target(points, pct, "capacity", baseline)
            assert current.reached >= previous.reached
            assert current.budget >= previous.budget
            assert current.reached <= current.target + 1e-9
            previous = current


# ---- Full build ----

class TestBuildMACC:
    def test_build_capacity(self):
        settings = MACCSettings(sector="Power", carbon_price=0, target_pct=5)
        result = build_macc(_measures(), settings, Baseline("MWh", 120e6, 340e6))
        assert [s.measure_id for s in result.segments] == [2, 4, 1, 3]
        assert result.total_x == pytest.approx(26_000_000)
        assert result.fit.available
        assert len(result.fitted) == 4
        assert result.budget.target == pytest.approx(17_000_000)
        assert result.budget.reached == pytest.approx(17_000_000)
        assert result.budget.budget == pytest.approx(6e6 * -150 + 5e6 * 100 + 6e6 * 300)

    def test_build_intensity(self):
        settings = MACCSettings(sector="Power", mode="intensity")
        result = build_macc(_measures(), settings, Baseline("MWh", 120e6, 340e6))
        assert result.total_x == pytest.approx(26e6 / 340e6 * 100)

    def test_fit_falls_back_to_step(self):
        settings = MACCSettings(sector="Cement", cost_model="fit")
        result = build_macc(_measures(), settings, Baseline())
        assert not result.fit.available
        assert result.cost_model == "step"

    def test_fit_kept_when_available(self):
        settings = MACCSettings(cost_model="fit")
        result = build_macc(_measures(), settings, Baseline())
        assert result.cost_model == "fit"

    def test_empty_measure_set(self):
        result = build_macc([], MACCSettings(), Baseline())
        assert result.segments == []
        assert result.total_x == 0.0
        assert result.budget.budget == 0.0

    def test_to_dict(self):
        data = build_macc(_measures()).to_dict()
        assert data["settings"]["sector"] == ALL_SECTORS
        assert len(data["segments"]) == 5
