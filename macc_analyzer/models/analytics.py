"""Curve analytics for the MACC.

Least-squares quadratic approximation of the cost curve and the greedy
budget needed to reach an emissions reduction target.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from macc_analyzer.models.measure import CAPACITY, VIEW_MODES, Baseline
from macc_analyzer.utils.numbers import to_float

_DET_EPS = 1e-12


@dataclass
class CurvePoint:
    """One measure on the cumulative cost curve.

    Attributes:
        measure_id: Source measure id.
        name: Measure name.
        sector: Measure sector.
        abatement: Measure abatement as stored (tCO2/yr).
        cost: Effective cost (cost - carbon price).
        cum_abatement: Cumulative positive abatement up to and including
            this measure (tCO2/yr).
        x: Cumulative position in the view's unit (tonnes or % of baseline).
    """

    measure_id: int
    name: str
    sector: str
    abatement: float
    cost: float
    cum_abatement: float
    x: float

    def to_dict(self) -> dict:
        return {f: getattr(self, f) for f in self.__dataclass_fields__}


@dataclass
class QuadraticFit:
    """Coefficients of cost(x) = a + b*x + c*x^2.

    A fit with available=False is the zero curve returned for degenerate
    inputs and must not be plotted as a flat line.
    """

    a: float = 0.0
    b: float = 0.0
    c: float = 0.0
    available: bool = True

    @classmethod
    def unavailable(cls) -> "QuadraticFit":
        return cls(a=0.0, b=0.0, c=0.0, available=False)

    def evaluate(self, x: float) -> float:
        return self.a + self.b * x + self.c * x * x

    def to_dict(self) -> dict:
        return {"a": self.a, "b": self.b, "c": self.c, "available": self.available}


@dataclass
class BudgetResult:
    """Outcome of the budget-to-target walk.

    Attributes:
        target: Target in the view's unit.
        reached: Quantity reached, in the view's unit, capped at target.
        budget: Sum of tonnes taken x effective cost (may be negative).
    """

    target: float = 0.0
    reached: float = 0.0
    budget: float = 0.0

    def to_dict(self) -> dict:
        return {"target": self.target, "reached": self.reached, "budget": self.budget}


def _det3(m: np.ndarray) -> float:
    # Cofactor expansion; exact zero for singular integer-valued sums
    return float(
        m[0, 0] * (m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1])
        - m[0, 1] * (m[1, 0] * m[2, 2] - m[1, 2] * m[2, 0])
        + m[0, 2] * (m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0])
    )


def quadratic_fit(xs: Sequence[float], ys: Sequence[float]) -> QuadraticFit:
    r"""Fit cost = a + b*x + c*x^2 by ordinary least squares.

    Solves the normal equations by Cramer's rule:

        \begin{bmatrix} n & S_x & S_{x^2} \\ S_x & S_{x^2} & S_{x^3} \\
        S_{x^2} & S_{x^3} & S_{x^4} \end{bmatrix}
        \begin{bmatrix} a \\ b \\ c \end{bmatrix} =
        \begin{bmatrix} S_y \\ S_{xy} \\ S_{x^2y} \end{bmatrix}

    Args:
        xs: Cumulative abatement positions.
        ys: Effective costs.

    Returns:
        QuadraticFit; unavailable when there are fewer than 3 points or
        |det| < 1e-12.

    Example:
        >>> fit = quadratic_fit([0, 1, 2], [2, 5.5, 10])
        >>> round(fit.a, 6), round(fit.b, 6), round(fit.c, 6)
        (2.0, 3.0, 0.5)
    """
    n = min(len(xs), len(ys))
    if n < 3:
        return QuadraticFit.unavailable()

    x = np.array([to_float(v) for v in xs[:n]], dtype=float)
    y = np.array([to_float(v) for v in ys[:n]], dtype=float)
    x2 = x * x
    sx, sx2, sx3, sx4 = x.sum(), x2.sum(), (x2 * x).sum(), (x2 * x2).sum()
    sy, sxy, sx2y = y.sum(), (x * y).sum(), (x2 * y).sum()

    m = np.array([[n, sx, sx2], [sx, sx2, sx3], [sx2, sx3, sx4]], dtype=float)
    rhs = np.array([sy, sxy, sx2y], dtype=float)
    det = _det3(m)
    if not np.isfinite(det) or abs(det) < _DET_EPS:
        return QuadraticFit.unavailable()

    coeffs = []
    for col in range(3):
        mc = m.copy()
        mc[:, col] = rhs
        coeffs.append(float(_det3(mc) / det))
    return QuadraticFit(a=coeffs[0], b=coeffs[1], c=coeffs[2], available=True)


def fit_curve(
    points: Sequence[CurvePoint],
    positive_costs_only: bool = False,
) -> Tuple[QuadraticFit, List[Tuple[float, float]]]:
    """Fit the quadratic to curve points and evaluate it at every point.

    Args:
        points: Curve points in sorted order.
        positive_costs_only: Fit only points with cost >= 0.

    Returns:
        Tuple of (fit, fitted) where fitted is a list of (x, cost(x)) for
        every point. fitted is empty when the fit is unavailable.
    """
    data = [p for p in points if p.cost >= 0] if positive_costs_only else list(points)
    fit = quadratic_fit([p.x for p in data], [p.cost for p in data])
    if not fit.available:
        return fit, []
    return fit, [(p.x, fit.evaluate(p.x)) for p in points]


def target_tonnes(target_pct: float, baseline: Baseline) -> float:
    """Reduction target in tonnes: baseline emissions x pct / 100."""
    return baseline.annual_emissions * to_float(target_pct) / 100


def budget_to_target(
    points: Sequence[CurvePoint],
    target_pct: float,
    mode: str,
    baseline: Baseline,
) -> BudgetResult:
    """Greedy budget to reach a reduction target along the sorted curve.

    Walks measures in cost order taking min(remaining, abatement) from each
    and summing taken x effective cost. The target is a percentage of
    baseline emissions in both view modes and is converted to tonnes for the
    walk.

    Args:
        points: Curve points in ascending effective-cost order.
        target_pct: Target reduction, % of baseline emissions.
        mode: "capacity" or "intensity"; selects the unit of the result.
        baseline: Baseline of the selected sector scope.

    Returns:
        BudgetResult. target and reached are tonnes in capacity mode and %
        of baseline emissions in intensity mode.

    Raises:
        ValueError: If mode is not a known view mode.
    """
    if mode not in VIEW_MODES:
        raise ValueError(f"mode must be one of {VIEW_MODES}, got {mode!r}")

    goal_t = target_tonnes(target_pct, baseline)
    emissions = baseline.annual_emissions

    def in_mode_unit(tonnes: float) -> float:
        if mode == CAPACITY:
            return tonnes
        return tonnes / emissions * 100 if emissions > 0 else 0.0

    if not points:
        return BudgetResult(target=in_mode_unit(goal_t), reached=0.0, budget=0.0)

    cum = 0.0
    budget = 0.0
    for p in points:
        remaining = max(0.0, goal_t - cum)
        take = min(remaining, max(0.0, p.abatement))
        if take > 0:
            budget += take * p.cost
            cum += take
        if cum >= goal_t:
            break

    return BudgetResult(target=in_mode_unit(goal_t), reached=in_mode_unit(cum), budget=budget)
