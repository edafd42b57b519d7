"""Financial calculation engine for MACC Analyzer.

Implements the finance metrics of a multi-year abatement project: annuity
factor for financed capital, NPV and IRR over calendar-year cash flows, and
average levelized cost per tonne abated.
"""

import math
from typing import List, Optional, Sequence

import numpy as np
import numpy_financial as npf

from macc_analyzer.models.measure import U_PER_BASE, FinanceSummary, YearRecord


def annuity_factor(rate: float, n_years: float) -> float:
    r"""Calculate the capital recovery (annuity) factor.

    Formula:
        A = \frac{r(1+r)^n}{(1+r)^n - 1}

    For r = 0 the factor is 1/n.

    Args:
        rate: Interest rate as decimal (e.g., 0.07 for 7%).
        n_years: Repayment tenure in years.

    Returns:
        Level annual payment per unit of principal. 0 if n_years <= 0 or
        either input is non-finite.

    Source:
        Brealey, R., Myers, S., & Allen, F. (2020). Principles of Corporate
        Finance (13th ed.). McGraw-Hill. Chapter 2.

    Example:
        >>> round(annuity_factor(0.10, 10), 6)
        0.162745
    """
    try:
        r = float(rate)
        n = float(n_years)
    except (TypeError, ValueError):
        return 0.0
    if not (math.isfinite(r) and math.isfinite(n)) or n <= 0:
        return 0.0
    if abs(r) < 1e-9:
        return 1.0 / n
    return float(-npf.pmt(r, n, 1.0))


def _exponent(year: float, base_year: float) -> float:
    return max(0.0, float(year) - float(base_year))


def calculate_npv(
    discount_rate: float,
    cash_flows: Sequence[float],
    years: Sequence[int],
    base_year: int,
) -> float:
    r"""Calculate net present value of calendar-year cash flows.

    Formula:
        NPV = \sum_{i} \frac{CF_i}{(1+r)^{\max(0,\ y_i - y_0)}}

    Flows dated at or before the base year are not discounted.

    Args:
        discount_rate: Annual discount rate as decimal.
        cash_flows: Cash flow for each entry of `years`.
        years: Calendar year of each flow.
        base_year: Year of valuation.

    Returns:
        Net present value in the currency of cash_flows.

    Example:
        >>> round(calculate_npv(0.10, [-1000, 1100], [2020, 2021], 2020), 6)
        0.0
    """
    pv = 0.0
    for cf, year in zip(cash_flows, years):
        pv += float(cf) / (1 + discount_rate) ** _exponent(year, base_year)
    return pv


def calculate_irr(
    cash_flows: Sequence[float],
    years: Sequence[int],
    base_year: int,
    low: float = -0.9,
    high: float = 3.0,
    tol: float = 1e-6,
    max_iter: int = 100,
) -> Optional[float]:
    r"""Calculate internal rate of return by bisection.

    The IRR is the discount rate r that makes NPV = 0:
        0 = \sum_{i} \frac{CF_i}{(1+IRR)^{y_i - y_0}}

    Flows are dated by calendar year, so the uneven spacing of anchor
    years is respected. Bisection needs the NPV to change sign across
    [low, high]; otherwise no rate is reported.

    Args:
        cash_flows: Cash flow for each entry of `years`.
        years: Calendar year of each flow.
        base_year: Year of valuation.
        low: Lower bound of the rate bracket.
        high: Upper bound of the rate bracket.
        tol: Absolute NPV tolerance for convergence.
        max_iter: Maximum number of bisection steps.

    Returns:
        IRR as a decimal, or None if the bracket holds no sign change or
        an endpoint NPV is non-finite.
    """
    def npv_at(rate):
        return calculate_npv(rate, cash_flows, years, base_year)

    lo, hi = low, high
    f_lo, f_hi = npv_at(lo), npv_at(hi)
    if not (np.isfinite(f_lo) and np.isfinite(f_hi)):
        return None
    if f_lo * f_hi > 0:
        return None
    for _ in range(max_iter):
        mid = (lo + hi) / 2
        f_mid = npv_at(mid)
        if abs(f_mid) < tol:
            return mid
        if f_lo * f_mid < 0:
            hi = mid
        else:
            lo, f_lo = mid, f_mid
    return (lo + hi) / 2


def levelized_costs(per_year: List[YearRecord], carbon_price: float = 0.0):
    r"""Calculate average levelized cost per tonne over all years.

    Formula:
        \bar{C} = \frac{\sum_t NetCost_t \cdot U}{\sum_t \max(0, A_t)}

    The with-carbon-price variant subtracts carbon_price x A_t from each
    year's cost.

    Args:
        per_year: Projection records.
        carbon_price: Carbon price per tonne.

    Returns:
        Tuple of (avg_cost_without_cp, avg_cost_with_cp, sum_direct_t).
        Costs are 0 when no year has positive abatement.
    """
    sum_direct = sum(max(0.0, rec.direct_t) for rec in per_year)
    cost_without = sum(rec.net_cost_u * U_PER_BASE for rec in per_year)
    cost_with = sum(rec.net_cost_u * U_PER_BASE - carbon_price * rec.direct_t for rec in per_year)
    if sum_direct <= 0:
        return 0.0, 0.0, sum_direct
    return cost_without / sum_direct, cost_with / sum_direct, sum_direct


def summarize_finance(
    per_year: List[YearRecord],
    discount_rate: float,
    base_year: int,
    carbon_price: float = 0.0,
) -> FinanceSummary:
    """Calculate the full finance summary of a projection.

    Args:
        per_year: Projection records, one per anchor year.
        discount_rate: Discount rate for NPV (decimal).
        base_year: Valuation year.
        carbon_price: Carbon price per tonne for the with-CP variants.

    Returns:
        FinanceSummary with NPV, IRR and levelized cost, with and without
        the carbon price.
    """
    years = [rec.year for rec in per_year]
    flows_without = [rec.cashflow_without_cp for rec in per_year]
    flows_with = [rec.cashflow_with_cp for rec in per_year]
    avg_without, avg_with, sum_direct = levelized_costs(per_year, carbon_price)

    return FinanceSummary(
        npv_without_cp=calculate_npv(discount_rate, flows_without, years, base_year),
        npv_with_cp=calculate_npv(discount_rate, flows_with, years, base_year),
        irr_without_cp=calculate_irr(flows_without, years, base_year),
        irr_with_cp=calculate_irr(flows_with, years, base_year),
        avg_cost_without_cp=avg_without,
        avg_cost_with_cp=avg_with,
        sum_direct_t=sum_direct,
    )
