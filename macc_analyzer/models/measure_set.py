"""Ordered, id-keyed collection of measures."""

import logging
from typing import Iterable, Iterator, List, Optional

from macc_analyzer.models.measure import Measure
from macc_analyzer.utils.numbers import to_float

logger = logging.getLogger(__name__)

_NUMERIC_FIELDS = ("abatement_tco2", "cost_per_tco2")
_EDITABLE_FIELDS = ("name", "sector", "abatement_tco2", "cost_per_tco2", "selected", "details")


class MeasureSet:
    """Holds the measures of a MACC in insertion order.

    New measures get id max(existing ids) + 1, so ids stay unique after
    removals and imports.

    Args:
        measures: Initial measures; their ids are kept.
    """

    def __init__(self, measures: Optional[Iterable[Measure]] = None):
        self._measures: List[Measure] = []
        for m in measures or []:
            if self.get(m.id) is not None:
                raise ValueError(f"Duplicate measure id {m.id}")
            self._measures.append(m)

    def __iter__(self) -> Iterator[Measure]:
        return iter(list(self._measures))

    def __len__(self) -> int:
        return len(self._measures)

    def next_id(self) -> int:
        return max([0] + [m.id for m in self._measures]) + 1

    def add(self, measure: Measure) -> Measure:
        """Append a measure, assigning it a fresh id."""
        measure.id = self.next_id()
        self._measures.append(measure)
        logger.info("Added measure %d %r", measure.id, measure.name)
        return measure

    def extend(self, measures: Iterable[Measure]) -> List[Measure]:
        return [self.add(m) for m in measures]

    def get(self, measure_id: int) -> Optional[Measure]:
        for m in self._measures:
            if m.id == measure_id:
                return m
        return None

    def remove(self, measure_id: int) -> Measure:
        """Remove and return a measure.

        Raises:
            KeyError: If no measure has this id.
        """
        m = self.get(measure_id)
        if m is None:
            raise KeyError(f"No measure with id {measure_id}")
        self._measures.remove(m)
        return m

    def update(self, measure_id: int, **fields) -> Measure:
        """Edit fields of a measure in place.

        Numeric fields are coerced (bad input becomes 0). Unknown field
        names are stored in Measure.extra.

        Raises:
            KeyError: If no measure has this id.
        """
        m = self.get(measure_id)
        if m is None:
            raise KeyError(f"No measure with id {measure_id}")
        for key, value in fields.items():
            if key in _NUMERIC_FIELDS:
                value = to_float(value)
            if key in _EDITABLE_FIELDS:
                setattr(m, key, value)
            else:
                m.extra[key] = value
        return m

    def clear(self) -> None:
        self._measures.clear()

    def to_list(self) -> List[Measure]:
        return list(self._measures)
