"""
MACC Analyzer CLI - Marginal Abatement Cost Curve builder

Command-line interface for building a sectoral MACC from a measure set:
- Load measures from CSV or JSON (packaged sample by default)
- Filter by sector, view in capacity (tCO2) or intensity (% of baseline) mode
- Apply a carbon price, fit a quadratic cost curve, compute the budget to
  reach a reduction target
- Project multi-year measure templates (NPV, IRR, levelized cost)
- Export measures to CSV/JSON, save settings, render PNG charts

Usage:
    macc-analyzer                                   # Sample measures, all sectors
    macc-analyzer --sector Cement --carbon-price 500
    macc-analyzer --measures my_measures.csv --mode intensity --target 15
    macc-analyzer --template boiler.json --year-chart boiler.png
    macc-analyzer --help
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from macc_analyzer.data.reference import ReferenceLibrary
from macc_analyzer.data.storage import (
    export_measures_csv,
    import_measures_csv,
    load_measures,
    load_settings,
    save_measures,
    save_settings,
)
from macc_analyzer.data.validators import validate_measure, validate_settings, validate_template
from macc_analyzer.models.macc import MACCResult, build_macc
from macc_analyzer.models.measure import ALL_SECTORS, CAPACITY, COST_MODELS, VIEW_MODES, MACCSettings, MeasureTemplate
from macc_analyzer.models.measure_set import MeasureSet
from macc_analyzer.models.templates import create_template_measure
from macc_analyzer.utils.formatters import (
    format_currency,
    format_irr,
    format_number,
    format_percent,
    format_tonnes,
)

logger = logging.getLogger("macc_analyzer")

_SAMPLE_MEASURES = Path(__file__).resolve().parent / "resources" / "data" / "measures.csv"


# ============================================================================
# FORMATTING UTILITIES
# ============================================================================

def print_header(text: str, char: str = "=") -> None:
    """Print a formatted section header."""
    width = 70
    print(f"\n{char * width}")
    print(f" {text}")
    print(f"{char * width}")


def print_subheader(text: str) -> None:
    """Print a formatted subsection header."""
    print(f"\n--- {text} ---")


def print_table(headers: List[str], rows: List[List[str]],
                col_widths: Optional[List[int]] = None) -> None:
    """Print a formatted ASCII table."""
    if col_widths is None:
        col_widths = [max(len(str(row[i])) for row in [headers] + rows) + 2
                      for i in range(len(headers))]

    header_line = "|".join(h.center(w) for h, w in zip(headers, col_widths))
    separator = "+".join("-" * w for w in col_widths)
    print(f"+{separator}+")
    print(f"|{header_line}|")
    print(f"+{separator}+")

    for row in rows:
        row_line = "|".join(str(cell).center(w) for cell, w in zip(row, col_widths))
        print(f"|{row_line}|")
    print(f"+{separator}+")


# ============================================================================
# DISPLAY FUNCTIONS
# ============================================================================

def print_configuration(settings: MACCSettings, result: MACCResult, n_measures: int) -> None:
    """Display view settings and the active baseline."""

    print_header("MACC CONFIGURATION", "=")
    baseline = result.baseline
    cur = settings.currency

    print(f"  Sector:            {settings.sector}")
    print(f"  View Mode:         {settings.mode}")
    print(f"  Carbon Price:      {format_currency(settings.carbon_price, cur)}/tCO₂")
    print(f"  Target:            {settings.target_pct:.1f}% of baseline emissions")
    print(f"  Cost Model:        {result.cost_model}")
    print(f"  Measures:          {n_measures} loaded, {len(result.sorted_measures)} in view")

    print_subheader("Baseline")
    print(f"  Production:        {format_number(baseline.annual_production)} {baseline.production_label}")
    print(f"  Emissions:         {format_tonnes(baseline.annual_emissions)}/yr")
    print(f"  Intensity:         {baseline.intensity:.4f} tCO₂/{baseline.production_label}")


def print_macc(result: MACCResult) -> None:
    """Display the sorted MACC table, summary, fit and budget."""

    settings = result.settings
    cur = settings.currency
    capacity = settings.mode == CAPACITY

    print_header("MARGINAL ABATEMENT COST CURVE", "=")

    if not result.segments:
        print("\n  No selected measures with positive abatement in this view.")
    else:
        unit = "tCO₂" if capacity else "%"
        headers = ["Measure", "Sector", "Abatement", f"Cost ({cur}/t)", f"Start ({unit})", f"End ({unit})"]
        rows = []
        for seg in result.segments:
            start = format_number(seg.x_start) if capacity else f"{seg.x_start:.2f}"
            end = format_number(seg.x_end) if capacity else f"{seg.x_end:.2f}"
            rows.append([seg.name[:34], seg.sector[:14], format_number(seg.abatement),
                         format_number(seg.cost), start, end])
        print_table(headers, rows)

    summary = result.summary
    print_subheader("SUMMARY")
    print(f"  {'Total abatement:':<32} {format_tonnes(summary.total_abatement)}/yr")
    print(f"  {'Average cost (simple mean):':<32} {format_currency(summary.avg_cost, cur)}/tCO₂")
    print(f"  {'Negative-cost abatement:':<32} {format_tonnes(summary.neg_cost_abatement)}/yr")
    print(f"  {'Baseline intensity:':<32} {summary.baseline_intensity:.4f}")

    print_subheader("BUDGET TO TARGET")
    budget = result.budget
    if capacity:
        print(f"  {'Target:':<32} {format_tonnes(budget.target)}")
        print(f"  {'Target reached:':<32} {format_tonnes(budget.reached)}")
    else:
        print(f"  {'Target:':<32} {budget.target:.2f}%")
        print(f"  {'Target reached:':<32} {budget.reached:.2f}%")
    print(f"  {'Budget required (Σ cost×tCO₂):':<32} {format_currency(budget.budget, cur)}")

    print_subheader("QUADRATIC FIT")
    if result.fit.available:
        print("  cost(x) = a + b·x + c·x²")
        print(f"  a = {result.fit.a:.4f}, b = {result.fit.b:.4f}, c = {result.fit.c:.6f}")
    else:
        print("  Not available (fewer than 3 points or singular system).")


def print_projection(measure) -> None:
    """Display the per-year projection of a template measure."""

    details = measure.details
    if details is None or not details.per_year:
        return
    print_header(f"TEMPLATE: {measure.name}", "=")

    headers = ["Year", "Direct tCO₂", "Net cost (cr)", "₹/t w/o CP", "₹/t with CP", "Cash flow"]
    rows = []
    for idx, rec in enumerate(details.per_year):
        marker = " *" if idx == details.representative_index else ""
        rows.append([f"{rec.year}{marker}", format_number(rec.direct_t), f"{rec.net_cost_u:.4f}",
                     format_number(rec.implied_cost_per_t), format_number(rec.implied_cost_per_t_with_cp),
                     format_number(rec.cashflow_without_cp)])
    print_table(headers, rows)
    print("  * representative year")

    fin = details.finance
    if fin is not None:
        print_subheader("FINANCE")
        print(f"  {'NPV w/o CP:':<24} {format_currency(fin.npv_without_cp)}")
        print(f"  {'NPV with CP:':<24} {format_currency(fin.npv_with_cp)}")
        print(f"  {'IRR w/o CP:':<24} {format_irr(fin.irr_without_cp)}")
        print(f"  {'IRR with CP:':<24} {format_irr(fin.irr_with_cp)}")
        print(f"  {'Avg cost w/o CP:':<24} {format_currency(fin.avg_cost_without_cp)}/tCO₂")
        print(f"  {'Avg cost with CP:':<24} {format_currency(fin.avg_cost_with_cp)}/tCO₂")
        print(f"  {'Σ direct abatement:':<24} {format_tonnes(fin.sum_direct_t)}")


def print_methodology() -> None:
    """Print methodology documentation."""

    print_header("METHODOLOGY", "=")

    print("""
MACC CONSTRUCTION
-----------------
Selected measures in the chosen sector are sorted by effective cost
(cost per tCO2 minus carbon price). Each measure with positive abatement
is drawn as a bar: width = abatement, height = effective cost. In
intensity mode the x axis is cumulative abatement as a percent of the
baseline emissions of the selected scope.

QUADRATIC FIT
-------------
cost(x) = a + b·x + c·x² fitted by least squares to one point per measure
at its cumulative position. Needs at least 3 points.

BUDGET TO TARGET
----------------
Target tonnes = baseline emissions × target %. Measures are taken in cost
order until the target is met; budget = Σ tonnes taken × effective cost.

MULTI-YEAR TEMPLATES
--------------------
Per anchor year: quantities = adoption × driver delta; abatement uses the
(escalated) emission factor, driver cost the (escalated) unit price.
Net cost = driver cost + opex + other − savings + annuity on financed
capex (crore). The first year with positive abatement is representative.
NPV discounts cash flows by (year − base year); IRR is found by bisection
on [−90%, 300%].
""")


# ============================================================================
# MAIN
# ============================================================================

def _build_settings(args) -> MACCSettings:
    settings = load_settings(args.settings) if args.settings else MACCSettings()
    overrides = {
        "sector": args.sector,
        "mode": args.mode,
        "carbon_price": args.carbon_price,
        "discount_rate": args.discount_rate,
        "target_pct": args.target,
        "cost_model": args.cost_model,
        "currency": args.currency,
    }
    data = settings.to_dict()
    data.update({k: v for k, v in overrides.items() if v is not None})
    if args.fit_positive_only:
        data["fit_positive_costs_only"] = True
    return MACCSettings.from_dict(data)


def _load_measure_set(args) -> MeasureSet:
    if args.measures_json:
        logger.info("Loading measures from %s", args.measures_json)
        return MeasureSet(load_measures(args.measures_json))
    path = args.measures or str(_SAMPLE_MEASURES)
    logger.info("Loading measures from %s", path)
    return MeasureSet(import_measures_csv(path))


def _load_template(path: str) -> MeasureTemplate:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return MeasureTemplate.from_dict(data)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""

    parser = argparse.ArgumentParser(
        description="MACC Analyzer CLI - Marginal Abatement Cost Curve builder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  macc-analyzer                                  # Packaged sample measures
  macc-analyzer --sector "Iron & Steel"          # One sector
  macc-analyzer --mode intensity --target 10     # % of baseline view
  macc-analyzer --carbon-price 750 --chart macc.png
  macc-analyzer --template project.json          # Add a multi-year template
  macc-analyzer --export-csv out.csv --save-settings view.json
        """
    )

    # Inputs
    parser.add_argument("--measures", type=str,
                        help="Measures CSV (default: packaged sample)")
    parser.add_argument("--measures-json", type=str,
                        help="Measures JSON saved with --save")
    parser.add_argument("--data-dir", type=str, default="",
                        help="Reference data directory (default: packaged data)")
    parser.add_argument("--template", type=str, action="append", default=[],
                        help="Multi-year measure template JSON to project and add (repeatable)")
    parser.add_argument("--settings", type=str,
                        help="Load view settings from JSON")

    # View settings
    parser.add_argument("--sector", type=str,
                        help=f"Sector filter (default: {ALL_SECTORS})")
    parser.add_argument("--mode", choices=VIEW_MODES,
                        help="capacity (tCO2) or intensity (%% of baseline)")
    parser.add_argument("--carbon-price", type=float,
                        help="Carbon price per tCO2 (default: 0)")
    parser.add_argument("--discount-rate", type=float,
                        help="Discount rate as decimal (default: 0.10)")
    parser.add_argument("--target", type=float,
                        help="Reduction target, %% of baseline emissions (default: 20)")
    parser.add_argument("--cost-model", choices=COST_MODELS,
                        help="step or fit (default: step)")
    parser.add_argument("--fit-positive-only", action="store_true",
                        help="Fit the quadratic to non-negative costs only")
    parser.add_argument("--currency", type=str,
                        help="Currency symbol (default: ₹)")
    parser.add_argument("--apply-carbon-price", action="store_true",
                        help="Store template costs net of the carbon price")

    # Outputs
    parser.add_argument("--export-csv", type=str,
                        help="Export measures to CSV")
    parser.add_argument("--save", type=str,
                        help="Save measures to JSON")
    parser.add_argument("--save-settings", type=str,
                        help="Save view settings to JSON")
    parser.add_argument("--chart", type=str, nargs="?", const="macc.png",
                        help="Render the MACC as PNG (optional: filename)")
    parser.add_argument("--year-chart", type=str,
                        help="Render the per-year chart of the last template as PNG")

    # Display options
    parser.add_argument("--methodology", "-m", action="store_true",
                        help="Show calculation methodology")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Suppress detailed output")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.methodology:
        print_methodology()
        return 0

    try:
        settings = _build_settings(args)
    except (OSError, ValueError) as e:
        print(f"\nError in settings: {e}", file=sys.stderr)
        return 2

    valid, messages = validate_settings(settings)
    for msg in messages:
        print(f"  {msg}", file=sys.stderr)
    if not valid:
        return 2

    library = ReferenceLibrary(args.data_dir)
    measure_set = _load_measure_set(args)

    templated = []
    for path in args.template:
        try:
            template = _load_template(path)
        except (OSError, ValueError, TypeError) as e:
            print(f"\nError in template {path}: {e}", file=sys.stderr)
            return 2
        _, messages = validate_template(template)
        for msg in messages:
            print(f"  {path}: {msg}", file=sys.stderr)
        measure = create_template_measure(
            template, library, settings.carbon_price,
            apply_carbon_price=args.apply_carbon_price,
        )
        _, messages = validate_measure(measure)
        for msg in messages:
            print(f"  {template.name}: {msg}", file=sys.stderr)
        templated.append(measure_set.add(measure))

    result = build_macc(measure_set, settings, library.active_baseline(settings.sector))

    if not args.quiet:
        print_configuration(settings, result, len(measure_set))
        print_macc(result)
        for measure in templated:
            print_projection(measure)

    if args.export_csv:
        export_measures_csv(measure_set, args.export_csv)
        print(f"\nMeasures exported to {args.export_csv}")

    if args.save:
        save_measures(measure_set, args.save)
        print(f"\nMeasures saved to {args.save}")

    if args.save_settings:
        save_settings(settings, args.save_settings)
        print(f"\nSettings saved to {args.save_settings}")

    if args.chart or args.year_chart:
        from macc_analyzer.reports.charts import create_macc_chart, create_year_chart

        if args.chart:
            create_macc_chart(result, args.chart, settings.currency)
            print(f"\nMACC chart saved to {args.chart}")
        if args.year_chart:
            if templated:
                create_year_chart(templated[-1].details.per_year, args.year_chart, settings.currency)
                print(f"\nPer-year chart saved to {args.year_chart}")
            else:
                print("\n--year-chart needs at least one --template", file=sys.stderr)

    if not args.quiet:
        print_header("ANALYSIS COMPLETE", "=")
        print(f"\n  Abatement in view: {format_tonnes(result.summary.total_abatement)}/yr  |  "
              f"Budget to {format_percent(settings.target_pct / 100)} target: "
              f"{format_currency(result.budget.budget, settings.currency)}")
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
