"""MACC builder: aggregates measures into a marginal abatement cost curve.

Filters the measure set by selection and sector, sorts by effective cost
(cost minus carbon price), and walks the sorted list to produce contiguous
step segments, per-measure curve points and summary statistics. The
quadratic fit and budget-to-target are attached from models.analytics.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from macc_analyzer.models.analytics import (
    BudgetResult,
    CurvePoint,
    QuadraticFit,
    budget_to_target,
    fit_curve,
)
from macc_analyzer.models.measure import (
    ALL_SECTORS,
    CAPACITY,
    VIEW_MODES,
    Baseline,
    MACCSettings,
    Measure,
)

logger = logging.getLogger(__name__)


@dataclass
class MACCSegment:
    """One plotted rectangle of the step curve.

    Attributes:
        measure_id: Source measure id.
        name: Measure name.
        sector: Measure sector.
        x_start: Cumulative position where the segment begins.
        x_end: Cumulative position where it ends.
        cost: Height, the effective cost per tonne.
        abatement: Abatement of the measure (tCO2/yr).
    """

    measure_id: int
    name: str
    sector: str
    x_start: float
    x_end: float
    cost: float
    abatement: float

    @property
    def width(self) -> float:
        return self.x_end - self.x_start

    def to_dict(self) -> dict:
        return {
            "measure_id": self.measure_id,
            "name": self.name,
            "sector": self.sector,
            "x_start": self.x_start,
            "x_end": self.x_end,
            "cost": self.cost,
            "abatement": self.abatement,
        }


@dataclass
class MACCSummary:
    """Headline statistics of the filtered measure set.

    Attributes:
        total_abatement: Sum of abatement over filtered measures (tCO2/yr).
        avg_cost: Simple mean of cost_per_tco2 over filtered measures.
        neg_cost_abatement: Abatement of measures with negative effective cost.
        baseline_intensity: Baseline emissions per unit of production.
    """

    total_abatement: float = 0.0
    avg_cost: float = 0.0
    neg_cost_abatement: float = 0.0
    baseline_intensity: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total_abatement": self.total_abatement,
            "avg_cost": self.avg_cost,
            "neg_cost_abatement": self.neg_cost_abatement,
            "baseline_intensity": self.baseline_intensity,
        }


@dataclass
class MACCResult:
    """Everything derived from one MACC build."""

    settings: MACCSettings
    baseline: Baseline
    sorted_measures: List[Measure] = field(default_factory=list)
    segments: List[MACCSegment] = field(default_factory=list)
    points: List[CurvePoint] = field(default_factory=list)
    total_x: float = 0.0
    fit: QuadraticFit = field(default_factory=QuadraticFit.unavailable)
    fitted: List[Tuple[float, float]] = field(default_factory=list)
    budget: BudgetResult = field(default_factory=BudgetResult)
    summary: MACCSummary = field(default_factory=MACCSummary)
    cost_model: str = "step"

    def to_dict(self) -> dict:
        return {
            "settings": self.settings.to_dict(),
            "baseline": self.baseline.to_dict(),
            "segments": [s.to_dict() for s in self.segments],
            "points": [p.to_dict() for p in self.points],
            "total_x": self.total_x,
            "fit": self.fit.to_dict(),
            "fitted": [list(xy) for xy in self.fitted],
            "budget": self.budget.to_dict(),
            "summary": self.summary.to_dict(),
            "cost_model": self.cost_model,
        }


def filter_measures(measures: Iterable[Measure], sector: str = ALL_SECTORS) -> List[Measure]:
    """Keep selected measures matching the sector filter."""
    return [
        m for m in measures
        if m.selected and (sector == ALL_SECTORS or m.sector == sector)
    ]


def sort_by_effective_cost(measures: Sequence[Measure], carbon_price: float = 0.0) -> List[Measure]:
    """Sort ascending by effective cost; ties keep their input order."""
    return sorted(measures, key=lambda m: m.effective_cost(carbon_price))


def _to_x(cum_tonnes: float, mode: str, baseline: Baseline) -> float:
    if mode == CAPACITY:
        return cum_tonnes
    if baseline.annual_emissions <= 0:
        return 0.0
    return cum_tonnes / baseline.annual_emissions * 100


def build_segments(
    sorted_measures: Sequence[Measure],
    carbon_price: float,
    mode: str,
    baseline: Baseline,
) -> List[MACCSegment]:
    """Build contiguous step segments from cost-sorted measures.

    Measures with non-finite or non-positive abatement produce no segment.
    In intensity mode positions are percent of baseline emissions.

    Args:
        sorted_measures: Measures in ascending effective-cost order.
        carbon_price: Carbon price subtracted from each cost.
        mode: "capacity" or "intensity".
        baseline: Baseline of the selected sector scope.

    Returns:
        Segments in cost order; segment[i].x_end == segment[i+1].x_start.

    Raises:
        ValueError: If mode is not a known view mode.
    """
    if mode not in VIEW_MODES:
        raise ValueError(f"mode must be one of {VIEW_MODES}, got {mode!r}")
    segments = []
    cum = 0.0
    for m in sorted_measures:
        a = m.abatement_tco2
        if not math.isfinite(a) or a <= 0:
            logger.debug("Measure %r has no positive abatement; not plotted", m.name)
            continue
        start = cum
        cum += a
        segments.append(MACCSegment(
            measure_id=m.id,
            name=m.name,
            sector=m.sector,
            x_start=_to_x(start, mode, baseline),
            x_end=_to_x(cum, mode, baseline),
            cost=m.effective_cost(carbon_price),
            abatement=a,
        ))
    return segments


def build_curve_points(
    sorted_measures: Sequence[Measure],
    carbon_price: float,
    mode: str,
    baseline: Baseline,
) -> List[CurvePoint]:
    """One point per sorted measure at its cumulative position.

    Cumulative abatement adds max(0, abatement), so measures without
    positive abatement repeat the previous position.
    """
    points = []
    cum = 0.0
    for m in sorted_measures:
        cum += max(0.0, m.abatement_tco2)
        points.append(CurvePoint(
            measure_id=m.id,
            name=m.name,
            sector=m.sector,
            abatement=m.abatement_tco2,
            cost=m.effective_cost(carbon_price),
            cum_abatement=cum,
            x=_to_x(cum, mode, baseline),
        ))
    return points


def compute_summary(
    filtered: Sequence[Measure],
    carbon_price: float,
    baseline: Baseline,
) -> MACCSummary:
    """Headline totals over the filtered (unsorted) measure set."""
    total = sum(m.abatement_tco2 for m in filtered)
    avg = sum(m.cost_per_tco2 for m in filtered) / len(filtered) if filtered else 0.0
    negative = sum(m.abatement_tco2 for m in filtered if m.effective_cost(carbon_price) < 0)
    return MACCSummary(
        total_abatement=total,
        avg_cost=avg,
        neg_cost_abatement=negative,
        baseline_intensity=baseline.intensity,
    )


def build_macc(
    measures: Iterable[Measure],
    settings: Optional[MACCSettings] = None,
    baseline: Optional[Baseline] = None,
) -> MACCResult:
    """Build the complete MACC for a measure set.

    Args:
        measures: Full measure set. Not modified.
        settings: Sector filter, view mode, carbon price, target and fit
            options. Defaults to MACCSettings().
        baseline: Baseline for the selected sector scope. Defaults to the
            neutral baseline.

    Returns:
        MACCResult with segments, points, fit, budget and summary.
        cost_model falls back to "step" when "fit" was requested but no
        fit is available.
    """
    settings = settings or MACCSettings()
    baseline = baseline or Baseline()
    cp = settings.carbon_price

    filtered = filter_measures(measures, settings.sector)
    ordered = sort_by_effective_cost(filtered, cp)
    segments = build_segments(ordered, cp, settings.mode, baseline)
    points = build_curve_points(ordered, cp, settings.mode, baseline)
    fit, fitted = fit_curve(points, settings.fit_positive_costs_only)
    budget = budget_to_target(points, settings.target_pct, settings.mode, baseline)

    cost_model = settings.cost_model
    if cost_model == "fit" and not fit.available:
        logger.info("Quadratic fit unavailable for %d points; using step curve", len(points))
        cost_model = "step"

    return MACCResult(
        settings=settings,
        baseline=baseline,
        sorted_measures=ordered,
        segments=segments,
        points=points,
        total_x=segments[-1].x_end if segments else 0.0,
        fit=fit,
        fitted=fitted,
        budget=budget,
        summary=compute_summary(filtered, cp, baseline),
        cost_model=cost_model,
    )
