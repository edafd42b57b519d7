"""Chart generation for MACC Analyzer reports.

Creates matplotlib charts for the marginal abatement cost curve and for
the per-year projection of a template measure. Charts are saved as PNG
files.
"""

from typing import List

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.ticker as mticker

from macc_analyzer.models.macc import MACCResult
from macc_analyzer.models.measure import CAPACITY, YearRecord
from macc_analyzer.utils.formatters import format_number

PALETTE = [
    "#4e79a7", "#f28e2b", "#e15759", "#76b7b2", "#59a14f",
    "#edc949", "#af7aa1", "#ff9da7", "#9c755f", "#bab0ab",
    "#2f4b7c", "#ffa600", "#a05195", "#003f5c", "#d45087",
]


def color_for_id(measure_id) -> str:
    """Stable palette colour for a measure id."""
    h = 0
    for ch in str(measure_id):
        h = (ord(ch) + ((h << 5) - h)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return PALETTE[abs(h) % len(PALETTE)]


def create_macc_chart(result: MACCResult, output_path: str, currency: str = "₹") -> None:
    """Create the MACC step chart.

    Each measure is a bar whose width is its abatement and whose height is
    its effective cost. The quadratic fit is overlaid when available and a
    dashed line marks the reduction target.

    Args:
        result: Output of build_macc().
        output_path: File path to save the PNG chart.
        currency: Currency symbol for the y axis.
    """
    fig, ax = plt.subplots(figsize=(10, 5.5), dpi=150)
    capacity = result.settings.mode == CAPACITY

    for seg in result.segments:
        ax.bar(
            seg.x_start,
            seg.cost,
            width=seg.width,
            align="edge",
            color=color_for_id(seg.measure_id),
            edgecolor="white",
            linewidth=0.5,
            label=seg.name,
        )

    if result.fit.available and result.fitted:
        xs = [0.0] + [x for x, _ in result.fitted]
        ys = [result.fit.evaluate(0.0)] + [y for _, y in result.fitted]
        style = "-" if result.cost_model == "fit" else ":"
        ax.plot(xs, ys, style, color="black", linewidth=1.5, label="Quadratic fit")

    if result.budget.target > 0:
        ax.axvline(x=result.budget.target, color="#c62828", linestyle="--", linewidth=1, label="Target")

    ax.axhline(y=0, color="black", linewidth=0.5)
    ax.set_xlim(0, max(result.total_x, result.budget.target, 1.0 if capacity else 100.0))
    if capacity:
        ax.set_xlabel("Cumulative abatement (tCO₂/yr)", fontsize=11)
        ax.xaxis.set_major_formatter(mticker.FuncFormatter(lambda x, _: format_number(x, 1)))
    else:
        ax.set_xlabel("Cumulative abatement (% of baseline emissions)", fontsize=11)
        ax.xaxis.set_major_formatter(mticker.FuncFormatter(lambda x, _: f"{x:.0f}%"))
    ax.set_ylabel(f"Cost ({currency}/tCO₂)", fontsize=11)
    ax.set_title(f"Marginal Abatement Cost Curve: {result.settings.sector}", fontsize=13, fontweight="bold")
    ax.grid(axis="y", alpha=0.3)
    if result.segments:
        ax.legend(fontsize=7, loc="upper left", ncol=2)

    fig.tight_layout()
    fig.savefig(output_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)


def create_year_chart(per_year: List[YearRecord], output_path: str, currency: str = "₹") -> None:
    """Create a per-year chart of abatement and implied unit cost.

    Args:
        per_year: Projection records of a template measure.
        output_path: File path to save the PNG chart.
        currency: Currency symbol for the cost axis.
    """
    if not per_year:
        return

    years = [rec.year for rec in per_year]
    fig, ax = plt.subplots(figsize=(8, 4.5), dpi=150)
    ax.bar(years, [rec.direct_t for rec in per_year], width=2.5, color="#2e7d32", alpha=0.8, label="Direct abatement")
    ax.set_xlabel("Year", fontsize=11)
    ax.set_ylabel("tCO₂/yr", fontsize=11)
    ax.yaxis.set_major_formatter(mticker.FuncFormatter(lambda x, _: format_number(x, 1)))
    ax.axhline(y=0, color="black", linewidth=0.5)

    ax2 = ax.twinx()
    ax2.plot(years, [rec.implied_cost_per_t for rec in per_year], "o-", color="#1565c0", label="Implied cost")
    ax2.set_ylabel(f"{currency}/tCO₂", fontsize=11)

    lines = ax.get_legend_handles_labels()
    lines2 = ax2.get_legend_handles_labels()
    ax.legend(lines[0] + lines2[0], lines[1] + lines2[1], fontsize=9, loc="upper left")
    ax.set_title("Abatement and Cost by Year", fontsize=13, fontweight="bold")
    ax.grid(axis="y", alpha=0.3)

    fig.tight_layout()
    fig.savefig(output_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
