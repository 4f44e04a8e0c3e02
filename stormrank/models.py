"""
Data model
==========

Each row of the storm events file becomes one `EventRecord`. Records are
frozen so the pipeline can only *read* them: aggregation builds new
`CategoryTotal` / `DamageTotal` values and ranking builds a `RankedTable`
out of those.

Numeric fields are Optional because the raw data has blanks. A `None`
counts as zero when summed.
"""

from __future__ import annotations
from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, List, Optional, Tuple, Union

OTHERS = "OTHERS"


@dataclass(frozen=True)
class EventRecord:
    """Immutable record for one storm event row."""
    event_type: str
    fatalities: Optional[float] = None
    injuries: Optional[float] = None
    property_damage_coefficient: Optional[float] = None
    # single-character magnitude code, kept exactly as read (see magnitude.py)
    property_damage_unit: str = ""
    crop_damage_coefficient: Optional[float] = None
    crop_damage_unit: str = ""


@dataclass(frozen=True)
class CategoryTotal:
    """Sum of one measure (fatalities or injuries) for one event type."""
    event_type: str
    measure: float


@dataclass(frozen=True)
class DamageTotal:
    """Property, crop and combined damage (US$) for one event type."""
    event_type: str
    property_total: float
    crop_total: float
    combined_total: float


Total = Union[CategoryTotal, DamageTotal]


def measure_fields(row_type: type) -> Tuple[str, ...]:
    """Names of the numeric fields of a total type (everything but event_type)."""
    return tuple(f.name for f in fields(row_type) if f.name != "event_type")


@dataclass(frozen=True)
class RankedTable:
    """Top-N rows by `key` followed by one OTHERS row.

    `label` is the human name of the measure ("Fatalities", ...). It only
    affects `to_frame`, where the generic `measure` column is renamed.
    """
    key: str
    rows: Tuple[Total, ...]
    label: Optional[str] = None

    @property
    def row_type(self) -> type:
        return type(self.rows[-1])

    @property
    def columns(self) -> Tuple[str, ...]:
        return ("event_type",) + measure_fields(self.row_type)

    @property
    def head(self) -> Tuple[Total, ...]:
        return self.rows[:-1]

    @property
    def others(self) -> Total:
        return self.rows[-1]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    def total(self, field: Optional[str] = None) -> float:
        """Sum of `field` (default: the ranking key) over every row."""
        name = field or self.key
        return sum(getattr(r, name) for r in self.rows)

    def to_records(self) -> List[Dict[str, Any]]:
        return [asdict(r) for r in self.rows]

    def to_frame(self):
        """Return the table as a pandas DataFrame with a stable column order."""
        import pandas as pd
        df = pd.DataFrame(self.to_records(), columns=list(self.columns))
        if self.label and "measure" in df.columns:
            df = df.rename(columns={"measure": self.label})
        return df


@dataclass(frozen=True)
class ReportTables:
    """The three ranked tables one pipeline run produces."""
    fatalities: RankedTable
    injuries: RankedTable
    damage: RankedTable
    top_n: int

    def items(self) -> List[Tuple[str, RankedTable]]:
        return [("fatalities", self.fatalities), ("injuries", self.injuries), ("damage", self.damage)]
