"""
Core engine
===========

The whole pipeline is a straight line, run once per input file:

1) records -> group by event type, summing one or more measures
2) totals  -> stable sort, descending, by the ranking measure
3) sorted  -> keep the top N, fold the rest into a single OTHERS row

It runs three times on the same records: fatalities, injuries, and damage
(property + crop, each converted to US$ through `magnitude.normalize`).
Nothing here keeps state between calls, so the same records and config
always give the same tables.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence
import math
import operator

from .dsa import merge_sort
from .log import get_logger
from .magnitude import normalize
from .models import (
    OTHERS,
    CategoryTotal,
    DamageTotal,
    EventRecord,
    RankedTable,
    ReportTables,
    Total,
    measure_fields,
)

logger = get_logger(__name__)

DEFAULT_TOP_N = 9

# EventRecord fields that can be summed directly
RECORD_MEASURES = ("fatalities", "injuries", "property_damage_coefficient", "crop_damage_coefficient")

Extractor = Callable[[EventRecord], Any]


class StormRankError(Exception):
    pass


class InvalidInput(StormRankError, ValueError):
    """Bad pipeline argument (negative top N, unknown measure ...). Aborts the run."""


class MalformedRecord(StormRankError, ValueError):
    """A numeric value that cannot be read as a number. Counted as 0."""

    def __init__(self, value: Any, event_type: Optional[str] = None, field: Optional[str] = None):
        self.value = value
        self.event_type = event_type
        self.field = field
        super().__init__(f"non-numeric value {value!r} (event_type={event_type!r}, field={field!r})")


@dataclass
class PipelineConfig:
    """Knobs callers can set for one pipeline run."""
    # number of real categories kept before OTHERS
    top_n: int = DEFAULT_TOP_N
    # which DamageTotal field ranks the damage table
    damage_key: str = "combined_total"


# ---------------- Value helpers ----------------

def _as_number(value: Any) -> float:
    """Read a value as float. None / NaN count as 0; garbage raises MalformedRecord."""
    if value is None:
        return 0.0
    try:
        out = float(value)
    except (TypeError, ValueError):
        raise MalformedRecord(value) from None
    if math.isnan(out):
        return 0.0
    return out


def _check_top_n(top_n: Any) -> int:
    """Accept any integer type (int, numpy integers ...) except bool."""
    if isinstance(top_n, bool):
        raise InvalidInput(f"top_n must be an integer, got {top_n!r}")
    try:
        n = operator.index(top_n)
    except TypeError:
        raise InvalidInput(f"top_n must be an integer, got {top_n!r}") from None
    if n < 0:
        raise InvalidInput(f"top_n must be >= 0, got {n}")
    return n


# ---------------- Grouping aggregator ----------------

def group_sums(records: Iterable[EventRecord], extractors: Mapping[str, Extractor]) -> Dict[str, Dict[str, float]]:
    """Sum each extractor's value per event type.

    Returns {event_type: {extractor name: sum}} in first-seen order. Keys are
    compared as exact strings, so "FLOOD" and "flood " are separate groups.
    A value that cannot be read as a number is logged and counted as 0.
    """
    if not extractors:
        raise InvalidInput("at least one measure extractor is required")

    acc: Dict[str, Dict[str, float]] = {}
    for rec in records:
        sums = acc.get(rec.event_type)
        if sums is None:
            sums = acc[rec.event_type] = {name: 0.0 for name in extractors}
        for name, extract in extractors.items():
            try:
                sums[name] += _as_number(extract(rec))
            except MalformedRecord as e:
                # the extractor only knows the value; attach where it came from
                err = MalformedRecord(e.value, event_type=rec.event_type, field=name)
                logger.warning("Ignoring %s", err)
    return acc


def _record_field(field: str) -> Extractor:
    if field not in RECORD_MEASURES:
        raise InvalidInput(f"Unknown measure {field!r}. Available: {', '.join(RECORD_MEASURES)}")
    return lambda r: getattr(r, field)


def category_totals(records: Iterable[EventRecord], field: str) -> List[CategoryTotal]:
    """One CategoryTotal per event type for a single EventRecord measure."""
    sums = group_sums(records, {field: _record_field(field)})
    return [CategoryTotal(event_type=k, measure=v[field]) for k, v in sums.items()]


def property_damage_usd(rec: EventRecord) -> float:
    return normalize(_as_number(rec.property_damage_coefficient), rec.property_damage_unit)


def crop_damage_usd(rec: EventRecord) -> float:
    return normalize(_as_number(rec.crop_damage_coefficient), rec.crop_damage_unit)


def damage_totals(records: Iterable[EventRecord]) -> List[DamageTotal]:
    """One DamageTotal per event type; combined = property + crop after summing."""
    sums = group_sums(records, {"property_total": property_damage_usd, "crop_total": crop_damage_usd})
    out: List[DamageTotal] = []
    for k, v in sums.items():
        prop, crop = v["property_total"], v["crop_total"]
        out.append(DamageTotal(event_type=k, property_total=prop, crop_total=crop, combined_total=prop + crop))
    return out


# ---------------- Pareto ranker ----------------

def rank(
    categories: Sequence[Total],
    key: str,
    top_n: int,
    *,
    row_type: Optional[type] = None,
    label: Optional[str] = None,
) -> RankedTable:
    """Keep the `top_n` largest categories by `key` and bucket the rest as OTHERS.

    The sort is stable, so ties keep their input order. Every numeric field of
    the OTHERS row is summed on its own over the excluded rows. If there are
    fewer categories than `top_n`, all of them are kept and OTHERS is all zero.
    `row_type` is only needed to build OTHERS when `categories` is empty.
    """
    top_n = _check_top_n(top_n)
    rows = list(categories)
    if row_type is None:
        row_type = type(rows[0]) if rows else CategoryTotal

    names = measure_fields(row_type)
    if key not in names:
        raise InvalidInput(f"Unknown ranking measure {key!r} for {row_type.__name__}. Available: {', '.join(names)}")
    for r in rows:
        if not isinstance(r, row_type):
            raise InvalidInput(f"Mixed row types: expected {row_type.__name__}, got {type(r).__name__} ({r.event_type!r})")

    ordered = merge_sort(rows, key=lambda r: getattr(r, key), reverse=True)
    head, tail = ordered[:top_n], ordered[top_n:]
    others = row_type(event_type=OTHERS, **{n: sum((getattr(r, n) for r in tail), 0.0) for n in names})

    logger.debug("Ranked %d categories by %s: kept %d, folded %d into %s", len(rows), key, len(head), len(tail), OTHERS)
    return RankedTable(key=key, rows=tuple(head) + (others,), label=label)


# ---------------- Pipeline ----------------

def fatalities_table(records: Iterable[EventRecord], top_n: int = DEFAULT_TOP_N) -> RankedTable:
    return rank(category_totals(records, "fatalities"), "measure", top_n, row_type=CategoryTotal, label="Fatalities")


def injuries_table(records: Iterable[EventRecord], top_n: int = DEFAULT_TOP_N) -> RankedTable:
    return rank(category_totals(records, "injuries"), "measure", top_n, row_type=CategoryTotal, label="Injuries")


def damage_table(records: Iterable[EventRecord], top_n: int = DEFAULT_TOP_N, key: str = "combined_total") -> RankedTable:
    return rank(damage_totals(records), key, top_n, row_type=DamageTotal, label="Damage (US$)")


def build_report_tables(records: Iterable[EventRecord], config: Optional[PipelineConfig] = None) -> ReportTables:
    """Run the three pipelines (fatalities, injuries, damage) over the same records."""
    config = config or PipelineConfig()
    top_n = _check_top_n(config.top_n)
    if config.damage_key not in measure_fields(DamageTotal):
        raise InvalidInput(
            f"Unknown damage measure {config.damage_key!r}. Available: {', '.join(measure_fields(DamageTotal))}"
        )

    # materialize once: the input may be a one-shot iterator
    records = list(records)
    logger.info("Building report tables from %d records (top_n=%d)", len(records), top_n)

    tables = ReportTables(
        fatalities=fatalities_table(records, top_n),
        injuries=injuries_table(records, top_n),
        damage=damage_table(records, top_n, key=config.damage_key),
        top_n=top_n,
    )
    for name, table in tables.items():
        logger.debug("%s table: %d rows, total %s=%.6g", name, len(table), table.key, table.total())
    return tables
