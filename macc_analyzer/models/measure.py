"""Data models for MACC Analyzer measures.

Defines dataclasses for driver reference rows, driver lines, cost stacks,
multi-year projection records, abatement measures, sector baselines and
view settings. All models support JSON serialization via
to_dict()/from_dict() methods.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from macc_analyzer.utils.numbers import to_float, to_optional_float

# Monetary inputs of the cost stack are entered in crore; cash flows and
# per-tonne costs are reported in base currency.
U_PER_BASE = 10_000_000

DEFAULT_YEARS = [2020, 2025, 2030, 2035, 2040, 2045, 2050]
FALLBACK_REPRESENTATIVE_YEAR = 2035

ALL_SECTORS = "All sectors"

FUEL = "fuel"
RAW = "raw"
TRANSPORT = "transport"
WASTE = "waste"
ELECTRICITY = "electricity"
DRIVER_CATEGORIES = (FUEL, RAW, TRANSPORT, WASTE, ELECTRICITY)

CAPACITY = "capacity"
INTENSITY = "intensity"
VIEW_MODES = (CAPACITY, INTENSITY)

COST_MODELS = ("step", "fit")

MEASURE_MODES = ("quick", "intensity", "template")


def _check_category(category: str) -> None:
    if category not in DRIVER_CATEGORIES:
        raise ValueError(f"category must be one of {DRIVER_CATEGORIES}, got {category!r}")


@dataclass(frozen=True)
class DriverReferenceRow:
    """One entry of a driver reference table (fuel, raw material, etc.).

    Attributes:
        category: Driver category the row belongs to.
        name: Row key; the state name for electricity rows.
        unit: Physical unit the price and emission factor refer to.
        price: Unit price in base currency per unit.
        ef: Emission factor in tCO2 per unit.
    """

    category: str
    name: str
    unit: str = ""
    price: float = 0.0
    ef: float = 0.0

    def __post_init__(self):
        _check_category(self.category)
        if self.price < 0:
            raise ValueError(f"price must be >= 0, got {self.price} for {self.name!r}")
        if self.ef < 0:
            raise ValueError(f"ef must be >= 0, got {self.ef} for {self.name!r}")

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "name": self.name,
            "unit": self.unit,
            "price": self.price,
            "ef": self.ef,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DriverReferenceRow":
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)


# Keys written by the browser version of the tool
_LEGACY_LINE_KEYS = {
    "state": "name",
    "priceOv": "price_override",
    "efOv": "ef_override",
    "efOvPerYear": "ef_override_by_year",
    "priceEscPctYr": "price_esc_pct_yr",
    "efEscPctYr": "ef_esc_pct_yr",
    "deltaMWh": "delta",
}


@dataclass
class DriverLine:
    """One row of a measure's driver input sheet.

    Override fields use None for "no override"; an override of 0.0 is a
    real value and replaces the reference figure.

    Attributes:
        name: Reference row name (state for electricity lines).
        delta: Per-year quantity reduction in the reference unit
            (positive = reduction).
        price_override: Unit price replacing the reference price.
        ef_override: Emission factor replacing the reference EF.
        ef_override_by_year: Electricity only. Per-year EF that replaces
            the escalated EF outright where not None.
        price_esc_pct_yr: Annual price escalation (% per year).
        ef_esc_pct_yr: Annual emission-factor escalation (% per year).
    """

    name: str = ""
    delta: List[float] = field(default_factory=list)
    price_override: Optional[float] = None
    ef_override: Optional[float] = None
    ef_override_by_year: List[Optional[float]] = field(default_factory=list)
    price_esc_pct_yr: float = 0.0
    ef_esc_pct_yr: float = 0.0

    def year_ef_override(self, index: int) -> Optional[float]:
        """Return the per-year EF override at `index`, or None if blank."""
        if index < 0 or index >= len(self.ef_override_by_year):
            return None
        return to_optional_float(self.ef_override_by_year[index])

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "delta": list(self.delta),
            "price_override": self.price_override,
            "ef_override": self.ef_override,
            "ef_override_by_year": list(self.ef_override_by_year),
            "price_esc_pct_yr": self.price_esc_pct_yr,
            "ef_esc_pct_yr": self.ef_esc_pct_yr,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DriverLine":
        data = {_LEGACY_LINE_KEYS.get(k, k): v for k, v in data.items()}
        return cls(
            name=str(data.get("name", "") or ""),
            delta=list(data.get("delta", [])),
            price_override=to_optional_float(data.get("price_override")),
            ef_override=to_optional_float(data.get("ef_override")),
            ef_override_by_year=[to_optional_float(v) for v in data.get("ef_override_by_year", [])],
            price_esc_pct_yr=to_float(data.get("price_esc_pct_yr")),
            ef_esc_pct_yr=to_float(data.get("ef_esc_pct_yr")),
        )


@dataclass
class CostStack:
    """Per-year cost and financing series for a measure.

    Monetary series are in crore (see U_PER_BASE). Positions missing from
    a series are read as 0.

    Attributes:
        opex: Operating expenditure.
        savings: Operating savings (reduce net cost).
        other: Other costs.
        capex_upfront: Capital paid in the year it occurs (cash flow only).
        capex_financed: Capital repaid as a level annuity.
        financing_tenure_years: Loan tenure for the financed capital.
        interest_rate_pct: Loan interest rate (% per year).
    """

    opex: List[float] = field(default_factory=list)
    savings: List[float] = field(default_factory=list)
    other: List[float] = field(default_factory=list)
    capex_upfront: List[float] = field(default_factory=list)
    capex_financed: List[float] = field(default_factory=list)
    financing_tenure_years: List[float] = field(default_factory=list)
    interest_rate_pct: List[float] = field(default_factory=list)

    @classmethod
    def zeros(cls, n_years: int, tenure_years: float = 10, interest_rate_pct: float = 7) -> "CostStack":
        """Empty stack with the default 10-year, 7% financing terms."""
        return cls(
            opex=[0.0] * n_years,
            savings=[0.0] * n_years,
            other=[0.0] * n_years,
            capex_upfront=[0.0] * n_years,
            capex_financed=[0.0] * n_years,
            financing_tenure_years=[tenure_years] * n_years,
            interest_rate_pct=[interest_rate_pct] * n_years,
        )

    def to_dict(self) -> dict:
        return {
            "opex": list(self.opex),
            "savings": list(self.savings),
            "other": list(self.other),
            "capex_upfront": list(self.capex_upfront),
            "capex_financed": list(self.capex_financed),
            "financing_tenure_years": list(self.financing_tenure_years),
            "interest_rate_pct": list(self.interest_rate_pct),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CostStack":
        # Browser exports suffix every series with "_cr"
        data = {(k[:-3] if k.endswith("_cr") else k): v for k, v in data.items()}
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: list(v) for k, v in data.items() if k in valid_fields}
        return cls(**filtered)


def _default_adoption() -> List[float]:
    return [min(1.0, round(0.2 * i, 10)) for i in range(len(DEFAULT_YEARS))]


@dataclass
class MeasureTemplate:
    """Multi-year template inputs for one abatement measure.

    Attributes:
        name: Project / measure name.
        sector: Sector tag.
        years: Reporting anchor years; the first is the base year.
        discount_rate: Discount rate for NPV (decimal).
        project_life_years: Informational project life.
        adoption: Per-year uptake fraction, clamped to [0, 1] when used.
        fuel_lines, raw_lines, transport_lines, waste_lines,
        electricity_lines: Driver lines per category.
        other_direct_t: Per-year direct reduction (tCO2) not tied to a driver.
        cost_stack: Per-year cost and financing series.
    """

    name: str = "Industrial Efficiency Project"
    sector: str = "Power"
    years: List[int] = field(default_factory=lambda: list(DEFAULT_YEARS))
    discount_rate: float = 0.10
    project_life_years: int = 30
    adoption: List[float] = field(default_factory=_default_adoption)
    fuel_lines: List[DriverLine] = field(default_factory=list)
    raw_lines: List[DriverLine] = field(default_factory=list)
    transport_lines: List[DriverLine] = field(default_factory=list)
    waste_lines: List[DriverLine] = field(default_factory=list)
    electricity_lines: List[DriverLine] = field(default_factory=list)
    other_direct_t: List[float] = field(default_factory=list)
    cost_stack: CostStack = field(default_factory=CostStack)

    def __post_init__(self):
        if not self.years:
            raise ValueError("years must contain at least one year")
        if any(b <= a for a, b in zip(self.years, self.years[1:])):
            raise ValueError(f"years must be strictly increasing, got {self.years}")

    @property
    def base_year(self) -> int:
        return self.years[0]

    def lines_for(self, category: str) -> List[DriverLine]:
        """Return the driver lines of one category."""
        _check_category(category)
        return getattr(self, f"{category}_lines")

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "sector": self.sector,
            "years": list(self.years),
            "discount_rate": self.discount_rate,
            "project_life_years": self.project_life_years,
            "adoption": list(self.adoption),
            "fuel_lines": [ln.to_dict() for ln in self.fuel_lines],
            "raw_lines": [ln.to_dict() for ln in self.raw_lines],
            "transport_lines": [ln.to_dict() for ln in self.transport_lines],
            "waste_lines": [ln.to_dict() for ln in self.waste_lines],
            "electricity_lines": [ln.to_dict() for ln in self.electricity_lines],
            "other_direct_t": list(self.other_direct_t),
            "cost_stack": self.cost_stack.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MeasureTemplate":
        data = dict(data)
        kwargs = {
            "name": data.get("name", "Industrial Efficiency Project"),
            "sector": data.get("sector", "Power"),
            "years": [int(y) for y in data.get("years", DEFAULT_YEARS)],
            "discount_rate": to_float(data.get("discount_rate"), 0.10),
            "project_life_years": int(to_float(data.get("project_life_years"), 30)),
            "other_direct_t": list(data.get("other_direct_t", [])),
            "cost_stack": CostStack.from_dict(data.get("cost_stack", {})),
        }
        if "adoption" in data:
            kwargs["adoption"] = list(data["adoption"])
        for category in DRIVER_CATEGORIES:
            key = f"{category}_lines"
            kwargs[key] = [DriverLine.from_dict(ln) for ln in data.get(key, [])]
        return cls(**kwargs)


@dataclass
class YearRecord:
    """Projector output for one reporting year.

    Attributes:
        year: Calendar year.
        direct_t: Direct abatement (tCO2), may be negative.
        net_cost_u: Net annual cost in crore, excluding carbon price.
        implied_cost_per_t: Net cost per tonne in base currency (0 if
            direct_t <= 0).
        implied_cost_per_t_with_cp: As above after crediting the carbon price.
        cashflow_without_cp: Cash flow in base currency.
        cashflow_with_cp: Cash flow including carbon price revenue.
        fuel_t, raw_t, transport_t, waste_t, electricity_t, other_t:
            Abatement by source.
        driver_cost_u, opex_u, other_cost_u, savings_u,
        financed_annuity_u, capex_upfront_u: Cost pieces in crore.
    """

    year: int
    direct_t: float = 0.0
    net_cost_u: float = 0.0
    implied_cost_per_t: float = 0.0
    implied_cost_per_t_with_cp: float = 0.0
    cashflow_without_cp: float = 0.0
    cashflow_with_cp: float = 0.0
    fuel_t: float = 0.0
    raw_t: float = 0.0
    transport_t: float = 0.0
    waste_t: float = 0.0
    electricity_t: float = 0.0
    other_t: float = 0.0
    driver_cost_u: float = 0.0
    opex_u: float = 0.0
    other_cost_u: float = 0.0
    savings_u: float = 0.0
    financed_annuity_u: float = 0.0
    capex_upfront_u: float = 0.0

    def to_dict(self) -> dict:
        return {f: getattr(self, f) for f in self.__dataclass_fields__}

    @classmethod
    def from_dict(cls, data: dict) -> "YearRecord":
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)


@dataclass
class FinanceSummary:
    """NPV, IRR and levelized cost of a multi-year projection.

    Attributes:
        npv_without_cp: NPV of cash flows without carbon price (base currency).
        npv_with_cp: NPV including carbon price revenue.
        irr_without_cp: IRR (decimal), or None if not found.
        irr_with_cp: IRR including carbon price, or None.
        avg_cost_without_cp: Total cost / total positive abatement.
        avg_cost_with_cp: As above after crediting the carbon price.
        sum_direct_t: Total positive direct abatement over all years.
    """

    npv_without_cp: float = 0.0
    npv_with_cp: float = 0.0
    irr_without_cp: Optional[float] = None
    irr_with_cp: Optional[float] = None
    avg_cost_without_cp: float = 0.0
    avg_cost_with_cp: float = 0.0
    sum_direct_t: float = 0.0

    def to_dict(self) -> dict:
        return {f: getattr(self, f) for f in self.__dataclass_fields__}

    @classmethod
    def from_dict(cls, data: dict) -> "FinanceSummary":
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)


@dataclass
class Projection:
    """Full multi-year projection of one measure template."""

    years: List[int]
    base_year: int
    per_year: List[YearRecord]
    representative_index: int
    finance: FinanceSummary

    @property
    def representative(self) -> YearRecord:
        if 0 <= self.representative_index < len(self.per_year):
            return self.per_year[self.representative_index]
        return YearRecord(year=self.base_year)


@dataclass
class MeasureDetail:
    """Optional multi-year detail attached to a measure.

    Attributes:
        mode: How the measure was created ("quick", "intensity", "template").
        template: Template inputs, for template measures.
        per_year: Projection records, for template measures.
        representative_index: Index of the year summarised on the MACC.
        finance: Finance summary of the projection.
        intensity_inputs: Inputs and derived values of an intensity measure.
        cost_includes_carbon_price: Whether the stored unit cost already
            credits the carbon price.
        carbon_price_at_save: Carbon price in effect when the measure was saved.
        extra: Unrecognized keys, preserved on round-trip.
    """

    mode: str = "quick"
    template: Optional[MeasureTemplate] = None
    per_year: List[YearRecord] = field(default_factory=list)
    representative_index: Optional[int] = None
    finance: Optional[FinanceSummary] = None
    intensity_inputs: Optional[Dict[str, Any]] = None
    cost_includes_carbon_price: bool = False
    carbon_price_at_save: float = 0.0
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def years(self) -> List[int]:
        return [rec.year for rec in self.per_year]

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data.update({
            "mode": self.mode,
            "template": self.template.to_dict() if self.template else None,
            "per_year": [rec.to_dict() for rec in self.per_year],
            "representative_index": self.representative_index,
            "finance": self.finance.to_dict() if self.finance else None,
            "intensity_inputs": dict(self.intensity_inputs) if self.intensity_inputs else None,
            "cost_includes_carbon_price": self.cost_includes_carbon_price,
            "carbon_price_at_save": self.carbon_price_at_save,
        })
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "MeasureDetail":
        data = dict(data)
        template_data = data.pop("template", None)
        per_year_data = data.pop("per_year", None) or []
        finance_data = data.pop("finance", None)
        intensity_data = data.pop("intensity_inputs", None)
        rep = data.pop("representative_index", None)
        return cls(
            mode=data.pop("mode", "quick"),
            template=MeasureTemplate.from_dict(template_data) if template_data else None,
            per_year=[YearRecord.from_dict(r) for r in per_year_data if isinstance(r, dict) and "year" in r],
            representative_index=int(rep) if rep is not None else None,
            finance=FinanceSummary.from_dict(finance_data) if finance_data else None,
            intensity_inputs=dict(intensity_data) if intensity_data else None,
            cost_includes_carbon_price=bool(data.pop("cost_includes_carbon_price", False)),
            carbon_price_at_save=to_float(data.pop("carbon_price_at_save", 0.0)),
            extra=data,
        )


@dataclass
class Measure:
    """A named abatement intervention as plotted on the MACC.

    Attributes:
        id: Unique identifier within a measure set.
        name: Display name.
        sector: Sector tag.
        abatement_tco2: Representative annual abatement (tCO2/yr).
        cost_per_tco2: Representative unit cost (currency/tCO2).
        selected: Whether the measure is included in the MACC.
        details: Optional creation detail and multi-year projection.
        extra: Unrecognized fields from imports, preserved untouched.
    """

    id: int = 0
    name: str = ""
    sector: str = "Power"
    abatement_tco2: float = 0.0
    cost_per_tco2: float = 0.0
    selected: bool = True
    details: Optional[MeasureDetail] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Stored fields never carry NaN or infinity
        self.abatement_tco2 = to_float(self.abatement_tco2)
        self.cost_per_tco2 = to_float(self.cost_per_tco2)

    def effective_cost(self, carbon_price: float = 0.0) -> float:
        """Unit cost after crediting a carbon price."""
        return self.cost_per_tco2 - to_float(carbon_price)

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "name": self.name,
            "sector": self.sector,
            "abatement_tco2": self.abatement_tco2,
            "cost_per_tco2": self.cost_per_tco2,
            "selected": self.selected,
            # Unparseable imported details stay in extra as raw text
            "details": self.details.to_dict() if self.details else data.get("details"),
        })
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Measure":
        data = dict(data)
        details_data = data.pop("details", None)
        selected = data.pop("selected", True)
        if isinstance(selected, str):
            selected = selected.strip().lower() != "false"
        return cls(
            id=int(to_float(data.pop("id", 0))),
            name=str(data.pop("name", "")),
            sector=str(data.pop("sector", "Power")),
            abatement_tco2=data.pop("abatement_tco2", 0.0),
            cost_per_tco2=data.pop("cost_per_tco2", 0.0),
            selected=bool(selected),
            details=MeasureDetail.from_dict(details_data) if isinstance(details_data, dict) else None,
            extra=data,
        )


@dataclass
class Baseline:
    """Annual production and emissions of a sector (or all sectors).

    Attributes:
        production_label: Unit of production (e.g., "t steel").
        annual_production: Annual production in production_label units.
        annual_emissions: Annual emissions (tCO2/yr).
    """

    production_label: str = "units"
    annual_production: float = 1.0
    annual_emissions: float = 1.0

    def __post_init__(self):
        self.annual_production = to_float(self.annual_production)
        self.annual_emissions = to_float(self.annual_emissions)

    @property
    def intensity(self) -> float:
        """Emissions per unit of production (0 if production <= 0)."""
        if self.annual_production <= 0:
            return 0.0
        return self.annual_emissions / self.annual_production

    def to_dict(self) -> dict:
        return {
            "production_label": self.production_label,
            "annual_production": self.annual_production,
            "annual_emissions": self.annual_emissions,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Baseline":
        return cls(
            production_label=data.get("production_label", "units"),
            annual_production=data.get("annual_production", 0.0),
            annual_emissions=data.get("annual_emissions", 0.0),
        )


@dataclass
class MACCSettings:
    """View and analysis settings for building a MACC.

    Attributes:
        sector: Sector filter, or ALL_SECTORS.
        mode: "capacity" (cumulative tCO2) or "intensity" (% of baseline).
        carbon_price: Carbon price subtracted from unit costs (currency/tCO2).
        discount_rate: Discount rate for template finance metrics.
        target_pct: Reduction target as % of baseline emissions; the 0-100
            range is checked by validate_settings().
        fit_positive_costs_only: Fit the quadratic only to points with cost >= 0.
        currency: Currency symbol for display.
        cost_model: "step" (segments) or "fit" (quadratic approximation).
    """

    sector: str = ALL_SECTORS
    mode: str = CAPACITY
    carbon_price: float = 0.0
    discount_rate: float = 0.10
    target_pct: float = 20.0
    fit_positive_costs_only: bool = False
    currency: str = "₹"
    cost_model: str = "step"

    def __post_init__(self):
        if self.mode not in VIEW_MODES:
            raise ValueError(f"mode must be one of {VIEW_MODES}, got {self.mode!r}")
        if self.cost_model not in COST_MODELS:
            raise ValueError(f"cost_model must be one of {COST_MODELS}, got {self.cost_model!r}")

    def to_dict(self) -> dict:
        return {
            "sector": self.sector,
            "mode": self.mode,
            "carbon_price": self.carbon_price,
            "discount_rate": self.discount_rate,
            "target_pct": self.target_pct,
            "fit_positive_costs_only": self.fit_positive_costs_only,
            "currency": self.currency,
            "cost_model": self.cost_model,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MACCSettings":
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)
