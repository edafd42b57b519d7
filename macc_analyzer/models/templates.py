"""Measure creation: quick entry, electricity-intensity template and
multi-year template.

Each builder returns a Measure whose representative abatement and cost are
derived from its inputs, with the inputs kept in Measure.details so the
measure can be inspected or recomputed later.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from macc_analyzer.models.finance import annuity_factor
from macc_analyzer.models.measure import (
    Measure,
    MeasureDetail,
    MeasureTemplate,
)
from macc_analyzer.models.projector import project_measure
from macc_analyzer.utils.numbers import to_float

logger = logging.getLogger(__name__)

KWH_PER_MWH = 1000.0


def create_quick_measure(
    name: str,
    sector: str = "Power",
    abatement_tco2: float = 0.0,
    cost_per_tco2: float = 0.0,
    selected: bool = True,
) -> Measure:
    """Create a measure from a directly entered abatement and unit cost.

    Non-numeric or non-finite inputs are stored as 0.
    """
    return Measure(
        name=name,
        sector=sector,
        abatement_tco2=to_float(abatement_tco2),
        cost_per_tco2=to_float(cost_per_tco2),
        selected=bool(selected),
        details=MeasureDetail(mode="quick"),
    )


@dataclass
class IntensityInputs:
    """Inputs of the single-year electricity-intensity template.

    Attributes:
        project_name: Measure name.
        sector: Sector tag.
        adoption_share: Share of baseline activity adopting the measure.
        baseline_activity: Annual activity (units of production).
        intensity_before_kwh_per_unit: Electricity use before (kWh/unit).
        intensity_after_kwh_per_unit: Electricity use after (kWh/unit).
        elec_state: Grid region the EF refers to (informational).
        grid_ef_t_per_mwh: Grid emission factor (tCO2/MWh).
        energy_price_per_kwh: Electricity price (currency/kWh).
        capex_total: Total capital cost (currency).
        opex_delta_per_year: Change in annual opex (currency/yr).
        lifetime_years: Economic lifetime for annualizing capex.
        discount_rate: Discount rate for annualizing capex (decimal).
        selected: Whether the resulting measure is used in the MACC.
    """

    project_name: str = "Intensive Measure"
    sector: str = "Power"
    adoption_share: float = 1.0
    baseline_activity: float = 1_000_000
    intensity_before_kwh_per_unit: float = 100
    intensity_after_kwh_per_unit: float = 80
    elec_state: str = "India"
    grid_ef_t_per_mwh: float = 0.710
    energy_price_per_kwh: float = 0.5
    capex_total: float = 50_000_000
    opex_delta_per_year: float = 0
    lifetime_years: float = 10
    discount_rate: float = 0.10
    selected: bool = True

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "IntensityInputs":
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)


@dataclass
class IntensityResult:
    """Derived values of the electricity-intensity template."""

    abatement_t: float = 0.0
    cost_per_t: float = 0.0
    annualized_capex: float = 0.0
    energy_savings_value: float = 0.0
    net_annual_cost: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_intensity_template(inputs: IntensityInputs) -> IntensityResult:
    r"""Calculate abatement and unit cost of an electricity-intensity measure.

    Formula:
        Act = Activity \cdot \max(0, share)

        \Delta I = \max(0, I_{before} - I_{after})

        A = Act \cdot \Delta I \cdot 10^{-3} \cdot EF_{grid}

        NetCost = CapEx \cdot AF(r, n) + \Delta OpEx - Act \cdot \Delta I \cdot p_{kWh}

        C = NetCost / A

    Args:
        inputs: Template inputs.

    Returns:
        IntensityResult; cost_per_t is 0 when abatement is not positive.

    Example:
        >>> res = calculate_intensity_template(IntensityInputs())
        >>> round(res.abatement_t, 1)
        14200.0
    """
    activity = to_float(inputs.baseline_activity) * max(0.0, to_float(inputs.adoption_share))
    delta_kwh = max(
        0.0,
        to_float(inputs.intensity_before_kwh_per_unit) - to_float(inputs.intensity_after_kwh_per_unit),
    )
    abatement = activity * delta_kwh / KWH_PER_MWH * to_float(inputs.grid_ef_t_per_mwh)

    af = annuity_factor(to_float(inputs.discount_rate), to_float(inputs.lifetime_years))
    annualized_capex = to_float(inputs.capex_total) * af
    savings_value = activity * delta_kwh * to_float(inputs.energy_price_per_kwh)
    net = annualized_capex + to_float(inputs.opex_delta_per_year) - savings_value

    return IntensityResult(
        abatement_t=abatement,
        cost_per_t=net / abatement if abatement > 0 else 0.0,
        annualized_capex=annualized_capex,
        energy_savings_value=savings_value,
        net_annual_cost=net,
    )


def create_intensity_measure(inputs: IntensityInputs) -> Measure:
    """Create a measure from the electricity-intensity template."""
    result = calculate_intensity_template(inputs)
    return Measure(
        name=inputs.project_name,
        sector=inputs.sector,
        abatement_tco2=max(0.0, result.abatement_t),
        cost_per_tco2=result.cost_per_t,
        selected=bool(inputs.selected),
        details=MeasureDetail(
            mode="intensity",
            intensity_inputs={"inputs": inputs.to_dict(), "derived": result.to_dict()},
        ),
    )


def create_template_measure(
    template: MeasureTemplate,
    library,
    carbon_price: float = 0.0,
    apply_carbon_price: bool = False,
    selected: bool = True,
) -> Measure:
    """Create a measure from a multi-year template.

    The representative year of the projection supplies the MACC fields:
    abatement is max(0, direct_t) and the unit cost is the implied cost,
    with the carbon price credited when apply_carbon_price is set.

    Args:
        template: Multi-year template inputs.
        library: Reference tables for resolving driver lines.
        carbon_price: Carbon price per tonne.
        apply_carbon_price: Store the with-carbon-price unit cost.
        selected: Whether the measure is used in the MACC.

    Returns:
        Measure with the projection stored in details.
    """
    projection = project_measure(template, library, carbon_price)
    rep = projection.representative
    if rep.direct_t <= 0:
        logger.warning(
            "Template %r has no positive abatement in any year; it won't appear on the MACC",
            template.name,
        )
    cost = rep.implied_cost_per_t_with_cp if apply_carbon_price else rep.implied_cost_per_t

    return Measure(
        name=template.name,
        sector=template.sector,
        abatement_tco2=max(0.0, rep.direct_t),
        cost_per_tco2=cost,
        selected=selected,
        details=MeasureDetail(
            mode="template",
            template=template,
            per_year=projection.per_year,
            representative_index=projection.representative_index,
            finance=projection.finance,
            cost_includes_carbon_price=bool(apply_carbon_price),
            carbon_price_at_save=to_float(carbon_price),
        ),
    )


def recompute_template_measure(
    measure: Measure,
    library,
    carbon_price: Optional[float] = None,
) -> Measure:
    """Re-run the projection of a saved template measure.

    Uses the carbon price stored at save time unless one is given. Quick
    and intensity measures are returned unchanged.
    """
    details = measure.details
    if details is None or details.mode != "template" or details.template is None:
        return measure
    cp = details.carbon_price_at_save if carbon_price is None else carbon_price
    fresh = create_template_measure(
        details.template, library, cp,
        apply_carbon_price=details.cost_includes_carbon_price,
        selected=measure.selected,
    )
    fresh.id = measure.id
    fresh.extra = dict(measure.extra)
    return fresh
