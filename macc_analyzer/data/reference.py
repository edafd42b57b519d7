"""Reference data loader for MACC Analyzer.

Loads driver reference tables (fuels, raw materials, transport, water &
waste, electricity), the sector list and sector baselines from JSON files.
Every row is normalized to a DriverReferenceRow here, so the calculation
engine only ever sees one canonical shape.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from macc_analyzer.models.measure import (
    ALL_SECTORS,
    DRIVER_CATEGORIES,
    ELECTRICITY,
    FUEL,
    RAW,
    TRANSPORT,
    WASTE,
    Baseline,
    DriverReferenceRow,
)
from macc_analyzer.utils.numbers import is_blank, to_float

logger = logging.getLogger(__name__)

_DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "resources" / "data"

# File stem for each driver category
TABLE_FILES = {
    FUEL: "fuels",
    RAW: "raw",
    TRANSPORT: "transport",
    WASTE: "waste",
    ELECTRICITY: "electricity",
}

DEFAULT_ELECTRICITY_PRICE = 500.0
DEFAULT_ELECTRICITY_EF = 0.710


def _first_present(raw: dict, *keys, default: float) -> float:
    for key in keys:
        value = raw.get(key)
        if not is_blank(value):
            return to_float(value, default)
    return default


def normalize_row(category: str, raw: dict) -> DriverReferenceRow:
    """Convert a raw table row into a DriverReferenceRow.

    Non-electricity rows take price from ``price`` or
    ``price_per_unit_inr`` (default 0) and EF from ``ef_tco2_per_unit`` or
    ``ef_t_per_unit`` (default 0). Electricity rows are keyed by ``state``,
    take price from ``price_per_mwh`` or ``price_per_mwh_inr`` (default 500)
    and EF from ``ef_tco2_per_mwh`` (default 0.710).

    Args:
        category: Driver category of the table the row came from.
        raw: Row as read from JSON.

    Returns:
        Normalized, immutable reference row.
    """
    if category == ELECTRICITY:
        return DriverReferenceRow(
            category=category,
            name=str(raw.get("state", raw.get("name", ""))),
            unit=str(raw.get("unit", "MWh")),
            price=_first_present(raw, "price_per_mwh", "price_per_mwh_inr", default=DEFAULT_ELECTRICITY_PRICE),
            ef=_first_present(raw, "ef_tco2_per_mwh", default=DEFAULT_ELECTRICITY_EF),
        )
    return DriverReferenceRow(
        category=category,
        name=str(raw.get("name", "")),
        unit=str(raw.get("unit", "")),
        price=_first_present(raw, "price", "price_per_unit_inr", default=0.0),
        ef=_first_present(raw, "ef_tco2_per_unit", "ef_t_per_unit", default=0.0),
    )


class ReferenceLibrary:
    """Manages driver reference tables, sectors and baselines.

    Scans a directory for the table JSON files and normalizes their rows.
    Missing or malformed files leave the corresponding table empty.

    Args:
        data_dir: Path to directory containing the JSON files.
            Defaults to the packaged resources/data/.
    """

    def __init__(self, data_dir: str = ""):
        self.data_dir = Path(data_dir) if data_dir else _DEFAULT_DATA_DIR
        self._tables: Dict[str, List[DriverReferenceRow]] = {c: [] for c in DRIVER_CATEGORIES}
        self._sectors: List[str] = []
        self._baselines: Dict[str, Baseline] = {}
        self._load_all()

    @classmethod
    def from_tables(
        cls,
        tables: Dict[str, List[dict]],
        sectors: Optional[List[str]] = None,
        baselines: Optional[Dict[str, dict]] = None,
    ) -> "ReferenceLibrary":
        """Build a library from in-memory raw tables instead of files."""
        lib = cls.__new__(cls)
        lib.data_dir = None
        lib._tables = {c: [] for c in DRIVER_CATEGORIES}
        for category, rows in tables.items():
            lib._set_table(category, rows)
        lib._sectors = list(sectors or [])
        lib._baselines = {k: Baseline.from_dict(v) for k, v in (baselines or {}).items()}
        return lib

    def _read_json(self, stem: str):
        path = self.data_dir / f"{stem}.json"
        if not path.exists():
            logger.warning("Reference file %s not found", path)
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Skipping malformed reference file %s: %s", path, exc)
            return None

    def _set_table(self, category: str, rows) -> None:
        if category not in DRIVER_CATEGORIES:
            raise KeyError(f"Unknown driver category '{category}'. Available: {list(DRIVER_CATEGORIES)}")
        # Tables are stored either as a bare list or under a "rows" key
        if isinstance(rows, dict):
            rows = rows.get("rows", [])
        normalized = []
        for raw in rows or []:
            try:
                normalized.append(normalize_row(category, raw))
            except ValueError as exc:
                logger.warning("Skipping %s row %r: %s", category, raw, exc)
        self._tables[category] = normalized

    def _load_all(self) -> None:
        """Load all tables, the sector list and baselines."""
        if not self.data_dir.exists():
            logger.warning("Reference data directory %s does not exist", self.data_dir)
            return
        for category, stem in TABLE_FILES.items():
            data = self._read_json(stem)
            if data is not None:
                self._set_table(category, data)

        sectors = self._read_json("sectors")
        if isinstance(sectors, list):
            self._sectors = [str(s) for s in sectors]

        baselines = self._read_json("baselines")
        if isinstance(baselines, dict):
            self._baselines = {k: Baseline.from_dict(v) for k, v in baselines.items()}

    def get_table(self, category: str) -> List[DriverReferenceRow]:
        """Return the normalized rows of one driver category.

        Raises:
            KeyError: If category is not a known driver category.
        """
        if category not in DRIVER_CATEGORIES:
            raise KeyError(f"Unknown driver category '{category}'. Available: {list(DRIVER_CATEGORIES)}")
        return list(self._tables[category])

    def names(self, category: str) -> List[str]:
        return [row.name for row in self.get_table(category)]

    def lookup(self, category: str, name: str) -> Optional[DriverReferenceRow]:
        """Find a reference row by name (state for electricity).

        An unknown name or state returns None, which the projector reads
        as zero price and zero emission factor.

        Args:
            category: Driver category.
            name: Row name.

        Returns:
            The matching row, or None.
        """
        table = self.get_table(category)
        for row in table:
            if row.name == name:
                return row
        logger.warning("No %s reference row named %r; using zero price and EF", category, name)
        return None

    @property
    def sectors(self) -> List[str]:
        """Sector names; falls back to the baseline keys if no list was loaded."""
        return list(self._sectors) if self._sectors else list(self._baselines.keys())

    @property
    def baselines(self) -> Dict[str, Baseline]:
        return dict(self._baselines)

    def active_baseline(self, sector: str = ALL_SECTORS) -> Baseline:
        """Return the baseline for a sector filter.

        "All sectors" sums production and emissions over every sector.
        An unknown sector returns the neutral baseline (units, 1, 1).

        Args:
            sector: Sector name or ALL_SECTORS.

        Returns:
            Baseline for the selected scope.
        """
        if sector == ALL_SECTORS:
            return Baseline(
                production_label="units",
                annual_production=sum(b.annual_production for b in self._baselines.values()),
                annual_emissions=sum(b.annual_emissions for b in self._baselines.values()),
            )
        baseline = self._baselines.get(sector)
        if baseline is None:
            return Baseline(production_label="units", annual_production=1.0, annual_emissions=1.0)
        return baseline
