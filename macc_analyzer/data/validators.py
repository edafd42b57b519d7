"""Input validation functions for MACC Analyzer.

Each validator returns a tuple of (is_valid: bool, message: str).
Messages describe errors or warnings for user display.
"""

from typing import List, Tuple

from macc_analyzer.models.measure import (
    DRIVER_CATEGORIES,
    MACCSettings,
    Measure,
    MeasureTemplate,
)


def validate_name(name: str) -> Tuple[bool, str]:
    """Validate a measure name."""
    if not str(name).strip():
        return True, "Warning: Measure name is empty."
    return True, ""


def validate_abatement(abatement_tco2: float) -> Tuple[bool, str]:
    """Validate representative abatement.

    Zero or negative abatement is accepted; the measure is kept but not
    plotted.

    Args:
        abatement_tco2: Abatement in tCO2/yr.

    Returns:
        (is_valid, message) tuple.
    """
    if abatement_tco2 <= 0:
        return True, (f"Warning: Abatement is {abatement_tco2:,.0f} tCO2/yr. "
                      "It won't appear on the MACC until abatement > 0.")
    return True, ""


def validate_discount_rate(rate: float) -> Tuple[bool, str]:
    """Validate discount rate.

    Args:
        rate: Discount rate as decimal (e.g., 0.10 for 10%).

    Returns:
        (is_valid, message) tuple.
    """
    if rate <= -1:
        return False, "Discount rate must be greater than -100%."
    if rate < 0 or rate > 0.30:
        return True, f"Warning: Discount rate of {rate:.0%} is unusual. Verify this is correct."
    return True, ""


def validate_carbon_price(price: float) -> Tuple[bool, str]:
    """Validate carbon price per tonne."""
    if price < 0:
        return False, "Carbon price cannot be negative."
    return True, ""


def validate_target_pct(pct: float) -> Tuple[bool, str]:
    """Validate reduction target as % of baseline emissions."""
    if pct < 0 or pct > 100:
        return False, "Target must be between 0% and 100% of baseline emissions."
    if pct > 50:
        return True, "Warning: Target above 50% of baseline is rarely reachable with listed measures."
    return True, ""


def validate_measure(measure: Measure) -> Tuple[bool, List[str]]:
    """Run all validations on a measure.

    Args:
        measure: Measure to validate.

    Returns:
        (is_valid, messages) where messages includes all errors and warnings.
    """
    messages = []
    is_valid = True
    for valid, msg in (validate_name(measure.name), validate_abatement(measure.abatement_tco2)):
        if not valid:
            is_valid = False
        if msg:
            messages.append(msg)
    return is_valid, messages


def validate_template(template: MeasureTemplate) -> Tuple[bool, List[str]]:
    """Check that a template's series cover its anchor years.

    Short series are legal (missing years read as 0) but usually mean an
    input sheet is out of step with the year list.

    Args:
        template: Multi-year template.

    Returns:
        (is_valid, messages) tuple.
    """
    messages = []
    is_valid = True
    n = len(template.years)

    valid, msg = validate_discount_rate(template.discount_rate)
    if not valid:
        is_valid = False
    if msg:
        messages.append(msg)

    if len(template.adoption) != n:
        messages.append(f"Warning: Adoption has {len(template.adoption)} values for {n} years.")
    for value in template.adoption:
        try:
            share = float(value)
        except (TypeError, ValueError):
            continue
        if share < 0 or share > 1:
            messages.append("Warning: Adoption values outside 0-1 are clamped.")
            break

    for category in DRIVER_CATEGORIES:
        for idx, line in enumerate(template.lines_for(category), start=1):
            if not line.name:
                messages.append(f"Warning: {category} line {idx} has no reference name.")
            if len(line.delta) != n:
                messages.append(
                    f"Warning: {category} line {idx} ({line.name}) has {len(line.delta)} "
                    f"quantities for {n} years."
                )
            if line.price_override is not None and line.price_override < 0:
                is_valid = False
                messages.append(f"{category} line {idx}: price override must be >= 0.")
            if line.ef_override is not None and line.ef_override < 0:
                is_valid = False
                messages.append(f"{category} line {idx}: EF override must be >= 0.")

    if not template.name.strip():
        messages.append("Warning: Project name is empty.")

    return is_valid, messages


def validate_settings(settings: MACCSettings) -> Tuple[bool, List[str]]:
    """Run all validations on MACC settings."""
    messages = []
    is_valid = True
    checks = [
        validate_carbon_price(settings.carbon_price),
        validate_discount_rate(settings.discount_rate),
        validate_target_pct(settings.target_pct),
    ]
    for valid, msg in checks:
        if not valid:
            is_valid = False
        if msg:
            messages.append(msg)
    return is_valid, messages
