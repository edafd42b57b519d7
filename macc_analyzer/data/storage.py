"""Measure and settings persistence: JSON files and CSV exchange."""

import io
import json
import logging
from pathlib import Path
from typing import Iterable, List

import pandas as pd

from macc_analyzer.models.measure import MACCSettings, Measure, MeasureDetail
from macc_analyzer.utils.numbers import is_blank, to_float

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["name", "sector", "abatement_tco2", "cost_per_tco2", "selected", "details"]

# Accepted header spellings, first match wins
_ALIASES = {
    "name": ("name", "Measure", "intervention"),
    "sector": ("sector", "Sector"),
    "abatement_tco2": ("abatement_tco2", "abatement", "Abatement"),
    "cost_per_tco2": ("cost_per_tco2", "cost", "Cost"),
}
_CONSUMED = {alias for names in _ALIASES.values() for alias in names} | {"id", "selected", "details"}


def save_measures(measures: Iterable[Measure], filepath: str) -> None:
    """Save measures to a JSON file.

    Args:
        measures: Measures to save.
        filepath: Output file path (should end in .json).

    Raises:
        OSError: If file cannot be written.
    """
    data = [m.to_dict() for m in measures]
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, default=str, ensure_ascii=False)


def load_measures(filepath: str) -> List[Measure]:
    """Load measures from a JSON file.

    Args:
        filepath: Path to the JSON measures file.

    Returns:
        List of Measure objects.

    Raises:
        FileNotFoundError: If file does not exist.
        json.JSONDecodeError: If file is not valid JSON.
    """
    with open(filepath, "r", encoding="utf-8") as f:
        data = json.load(f)
    return [Measure.from_dict(item) for item in data]


def save_settings(settings: MACCSettings, filepath: str) -> None:
    """Save MACC view settings to a JSON file."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2, ensure_ascii=False)


def load_settings(filepath: str) -> MACCSettings:
    """Load MACC view settings from a JSON file.

    Raises:
        FileNotFoundError: If file does not exist.
        json.JSONDecodeError: If file is not valid JSON.
        ValueError: If a setting has an invalid value.
    """
    with open(filepath, "r", encoding="utf-8") as f:
        data = json.load(f)
    return MACCSettings.from_dict(data)


def _csv_cell(value):
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


def measures_to_csv(measures: Iterable[Measure]) -> str:
    """Serialize measures to CSV text.

    The internal id is dropped, details are written as a JSON string and
    extra columns follow the standard ones in first-seen order.

    Args:
        measures: Measures to export.

    Returns:
        CSV text with a header row.
    """
    rows = []
    columns = list(CSV_COLUMNS)
    for m in measures:
        row = m.to_dict()
        row.pop("id", None)
        for key in row:
            if key not in columns:
                columns.append(key)
        rows.append({k: _csv_cell(v) for k, v in row.items()})

    df = pd.DataFrame(rows, columns=columns)
    return df.to_csv(index=False, na_rep="", lineterminator="\n")


def _first_present(row: dict, names) -> str:
    for name in names:
        value = row.get(name)
        if not is_blank(value):
            return value
    return ""


def _parse_details(raw: str, row_number: int):
    if is_blank(raw):
        return None, None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Row %d: details column is not valid JSON; kept as text", row_number)
        return None, raw
    if isinstance(parsed, dict):
        return MeasureDetail.from_dict(parsed), None
    return None, parsed


def csv_to_measures(text: str, start_id: int = 1) -> List[Measure]:
    """Parse CSV text into measures.

    A leading UTF-8 BOM and blank lines are ignored. Header aliases are
    accepted for name, sector, abatement and cost; missing numbers read as
    0, a missing sector as "Power" and a missing name as "Row <n>".
    `selected` is false only for the text "false" (any case). Columns not
    used by the measure model are kept in Measure.extra.

    Args:
        text: CSV content.
        start_id: Id given to the first parsed measure; later rows count up.

    Returns:
        List of Measure objects in file order.
    """
    clean = (text or "").lstrip("\ufeff")
    if not clean.strip():
        return []
    df = pd.read_csv(
        io.StringIO(clean),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        skipinitialspace=True,
    )
    df.columns = [str(c).strip() for c in df.columns]

    measures = []
    for i, row in enumerate(df.to_dict("records")):
        row = {k: v.strip() if isinstance(v, str) else v for k, v in row.items()}
        details, raw_details = _parse_details(row.get("details", ""), i + 1)
        extra = {k: v for k, v in row.items() if k not in _CONSUMED}
        if raw_details is not None:
            extra["details"] = raw_details

        measures.append(Measure(
            id=start_id + i,
            name=_first_present(row, _ALIASES["name"]) or f"Row {i + 1}",
            sector=_first_present(row, _ALIASES["sector"]) or "Power",
            abatement_tco2=to_float(_first_present(row, _ALIASES["abatement_tco2"])),
            cost_per_tco2=to_float(_first_present(row, _ALIASES["cost_per_tco2"])),
            selected=str(row.get("selected", "true")).lower() != "false",
            details=details,
            extra=extra,
        ))
    logger.info("Parsed %d measures from CSV", len(measures))
    return measures


def export_measures_csv(measures: Iterable[Measure], filepath: str) -> None:
    """Write measures to a CSV file (UTF-8)."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(measures_to_csv(measures))


def import_measures_csv(filepath: str, start_id: int = 1) -> List[Measure]:
    """Read measures from a CSV file.

    Raises:
        FileNotFoundError: If file does not exist.
    """
    with open(filepath, "r", encoding="utf-8-sig") as f:
        return csv_to_measures(f.read(), start_id)
