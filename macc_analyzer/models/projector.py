"""Multi-year projector for abatement measure templates.

Turns a MeasureTemplate (driver lines, adoption ramp, other direct
reductions and a cost stack) into one YearRecord per anchor year, picks the
representative year that summarizes the measure on the MACC, and attaches
the finance summary.

All driver categories go through the same per-line calculation; the
electricity per-year EF override is the only category-specific rule and it
lives on the DriverLine itself.
"""

import logging
from typing import List, Optional, Sequence

from macc_analyzer.models.finance import annuity_factor, summarize_finance
from macc_analyzer.models.measure import (
    DRIVER_CATEGORIES,
    FALLBACK_REPRESENTATIVE_YEAR,
    U_PER_BASE,
    DriverLine,
    DriverReferenceRow,
    MeasureTemplate,
    Projection,
    YearRecord,
)
from macc_analyzer.utils.numbers import clamp, series_value, to_float

logger = logging.getLogger(__name__)


def _escalate(value: float, pct_per_year: float, year: int, base_year: int) -> float:
    years_since_base = max(0, year - base_year)
    return value * (1 + to_float(pct_per_year) / 100) ** years_since_base


def effective_price(
    line: DriverLine,
    row: Optional[DriverReferenceRow],
    year: int,
    base_year: int,
) -> float:
    r"""Calculate the escalated unit price of a driver line.

    Formula:
        P_t = (P_{override} \lor P_{ref}) \cdot (1 + e_p/100)^{\max(0,\ t - t_0)}

    Args:
        line: Driver line; price_override of None means "use the reference".
        row: Reference row, or None if the name was not found (price 0).
        year: Calendar year.
        base_year: First anchor year.

    Returns:
        Unit price in base currency.
    """
    if line.price_override is not None:
        base = line.price_override
    else:
        base = row.price if row is not None else 0.0
    return _escalate(base, line.price_esc_pct_yr, year, base_year)


def effective_ef(
    line: DriverLine,
    row: Optional[DriverReferenceRow],
    year_index: int,
    year: int,
    base_year: int,
) -> float:
    r"""Calculate the emission factor of a driver line for one year.

    Formula:
        EF_t = (EF_{override} \lor EF_{ref}) \cdot (1 + e_{ef}/100)^{\max(0,\ t - t_0)}

    A non-blank per-year override (electricity lines) replaces the escalated
    value and is not compounded.

    Args:
        line: Driver line.
        row: Reference row, or None if the name was not found (EF 0).
        year_index: Position of `year` in the anchor-year list.
        year: Calendar year.
        base_year: First anchor year.

    Returns:
        Emission factor in tCO2 per unit.
    """
    per_year = line.year_ef_override(year_index)
    if per_year is not None:
        return per_year
    if line.ef_override is not None:
        base = line.ef_override
    else:
        base = row.ef if row is not None else 0.0
    return _escalate(base, line.ef_esc_pct_yr, year, base_year)


def select_representative_index(per_year: Sequence[YearRecord], years: Sequence[int]) -> int:
    """Pick the year that summarizes a measure on the MACC.

    The first year with positive direct abatement; otherwise the
    FALLBACK_REPRESENTATIVE_YEAR if it is an anchor year; otherwise the
    middle index.
    """
    for i, rec in enumerate(per_year):
        if rec.direct_t > 0:
            return i
    if FALLBACK_REPRESENTATIVE_YEAR in years:
        return list(years).index(FALLBACK_REPRESENTATIVE_YEAR)
    return len(years) // 2


def _project_year(
    template: MeasureTemplate,
    rows: dict,
    i: int,
    carbon_price: float,
) -> YearRecord:
    year = template.years[i]
    base_year = template.base_year
    a = clamp(series_value(template.adoption, i), 0.0, 1.0)

    tonnes = {}
    driver_cost_u = 0.0
    for category in DRIVER_CATEGORIES:
        category_t = 0.0
        for line, row in zip(template.lines_for(category), rows[category]):
            qty = a * series_value(line.delta, i)
            category_t += qty * effective_ef(line, row, i, year, base_year)
            driver_cost_u += qty * effective_price(line, row, year, base_year) / U_PER_BASE
        tonnes[category] = category_t

    other_t = a * series_value(template.other_direct_t, i)
    direct_t = sum(tonnes.values()) + other_t

    stack = template.cost_stack
    opex_u = series_value(stack.opex, i)
    savings_u = series_value(stack.savings, i)
    other_cost_u = series_value(stack.other, i)
    capex_upfront_u = series_value(stack.capex_upfront, i)
    capex_financed_u = series_value(stack.capex_financed, i)
    rate = series_value(stack.interest_rate_pct, i) / 100
    tenure = series_value(stack.financing_tenure_years, i)
    if capex_financed_u > 0 and rate > 0 and tenure > 0:
        financed_annuity_u = capex_financed_u * annuity_factor(rate, tenure)
    else:
        financed_annuity_u = 0.0

    net_cost_u = driver_cost_u + opex_u + other_cost_u - savings_u + financed_annuity_u

    cashflow_without_cp = (
        savings_u - opex_u - driver_cost_u - other_cost_u - financed_annuity_u - capex_upfront_u
    ) * U_PER_BASE
    cashflow_with_cp = cashflow_without_cp + carbon_price * direct_t

    if direct_t > 0:
        implied = net_cost_u * U_PER_BASE / direct_t
        implied_with_cp = (net_cost_u * U_PER_BASE - carbon_price * direct_t) / direct_t
    else:
        implied = 0.0
        implied_with_cp = 0.0

    return YearRecord(
        year=year,
        direct_t=direct_t,
        net_cost_u=net_cost_u,
        implied_cost_per_t=implied,
        implied_cost_per_t_with_cp=implied_with_cp,
        cashflow_without_cp=cashflow_without_cp,
        cashflow_with_cp=cashflow_with_cp,
        fuel_t=tonnes["fuel"],
        raw_t=tonnes["raw"],
        transport_t=tonnes["transport"],
        waste_t=tonnes["waste"],
        electricity_t=tonnes["electricity"],
        other_t=other_t,
        driver_cost_u=driver_cost_u,
        opex_u=opex_u,
        other_cost_u=other_cost_u,
        savings_u=savings_u,
        financed_annuity_u=financed_annuity_u,
        capex_upfront_u=capex_upfront_u,
    )


def project_measure(
    template: MeasureTemplate,
    library,
    carbon_price: float = 0.0,
) -> Projection:
    """Project a measure template over its anchor years.

    For each year the adoption fraction scales every driver delta and the
    other direct reduction; driver tonnes and costs use the escalated
    reference price and EF. The cost stack adds opex, other costs and the
    annuity on financed capex, less savings. Upfront capex enters cash
    flows only.

    Args:
        template: Measure inputs. Not modified.
        library: Reference tables (a ReferenceLibrary or anything with a
            lookup(category, name) method) used to resolve line names.
        carbon_price: Carbon price per tonne for the with-CP figures.

    Returns:
        Projection with per-year records, representative index and finance
        summary.
    """
    carbon_price = to_float(carbon_price)
    # Resolve reference rows once per line; missing rows resolve to None
    rows = {
        category: [library.lookup(category, line.name) for line in template.lines_for(category)]
        for category in DRIVER_CATEGORIES
    }

    per_year: List[YearRecord] = [
        _project_year(template, rows, i, carbon_price) for i in range(len(template.years))
    ]
    rep_idx = select_representative_index(per_year, template.years)
    finance = summarize_finance(per_year, template.discount_rate, template.base_year, carbon_price)

    logger.debug(
        "Projected %r over %d years, representative year %s",
        template.name, len(per_year), template.years[rep_idx],
    )
    return Projection(
        years=list(template.years),
        base_year=template.base_year,
        per_year=per_year,
        representative_index=rep_idx,
        finance=finance,
    )
