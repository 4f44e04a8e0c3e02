"""
Dataset loader (CSV / Excel -> EventRecord list)
================================================

Reads a storm events table (the NOAA `StormData.csv.bz2` file, a plain CSV,
or an Excel export) and converts each row into an `EventRecord`.

Key ideas:
- Every cell is read as text, so event types and magnitude codes keep their
  exact spelling ("TSTM WIND" and "TSTM WIND " stay different).
- We try multiple possible column names because exports differ.
- Blank numeric cells become None. Cells that are not numbers also become
  None, and we log how many there were per column.
"""

from __future__ import annotations
from typing import Dict, List, Optional
import os
import re
import zipfile

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from .log import get_logger
from .models import EventRecord

logger = get_logger(__name__)

COLUMN_ALIASES: Dict[str, tuple] = {
    "event_type": ("EVTYPE", "Event Type", "EVENT_TYPE", "evType"),
    "fatalities": ("FATALITIES", "Fatalities", "Deaths"),
    "injuries": ("INJURIES", "Injuries"),
    "property_damage_coefficient": ("PROPDMG", "Property Damage", "PROP_DMG"),
    "property_damage_unit": ("PROPDMGEXP", "Property Damage Exp", "PROP_DMG_EXP"),
    "crop_damage_coefficient": ("CROPDMG", "Crop Damage", "CROP_DMG"),
    "crop_damage_unit": ("CROPDMGEXP", "Crop Damage Exp", "CROP_DMG_EXP"),
}

NUMERIC_FIELDS = ("fatalities", "injuries", "property_damage_coefficient", "crop_damage_coefficient")
EXCEL_SUFFIXES = (".xlsx", ".xlsm")
# openpyxl only reads the zip-based formats
LEGACY_EXCEL_SUFFIXES = (".xls",)


def _is_blank(x) -> bool:
    if x is None:
        return True
    if isinstance(x, str):
        return x.strip() == ""
    return bool(pd.isna(x))


def _to_float(x) -> Optional[float]:
    """Convert a cell to float, returning None if missing/invalid."""
    if _is_blank(x):
        return None
    try:
        return float(x)
    except (TypeError, ValueError):
        return None


def _to_str(x) -> str:
    """Convert a cell to str without trimming (blank -> "")."""
    if x is None:
        return ""
    if not isinstance(x, str) and pd.isna(x):
        return ""
    return str(x)


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def _col(df: pd.DataFrame, *names: str) -> str:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    raise KeyError(f"Missing required column. Tried={names}. Available={cols}")


def read_table(path: str) -> pd.DataFrame:
    """Read the raw file into a DataFrame of strings."""
    lower = path.lower()
    if lower.endswith(LEGACY_EXCEL_SUFFIXES):
        raise ValueError(f"Legacy Excel format is not supported: {path}. Save it as .xlsx or .csv")
    if lower.endswith(EXCEL_SUFFIXES):
        return pd.read_excel(path, engine="openpyxl", dtype=str, keep_default_na=False)
    # compression (.bz2, .gz, .zip) is inferred from the file name
    return pd.read_csv(path, dtype=str, keep_default_na=False, compression="infer")


def records_from_frame(df: pd.DataFrame) -> List[EventRecord]:
    """Convert an already loaded DataFrame into EventRecords."""
    cols = {field: _col(df, *aliases) for field, aliases in COLUMN_ALIASES.items()}

    bad: Dict[str, int] = {f: 0 for f in NUMERIC_FIELDS}
    events: List[EventRecord] = []
    for row in df[list(cols.values())].itertuples(index=False, name=None):
        raw = dict(zip(cols.keys(), row))
        values = {}
        for f in NUMERIC_FIELDS:
            v = _to_float(raw[f])
            if v is None and not _is_blank(raw[f]):
                bad[f] += 1
            values[f] = v
        events.append(EventRecord(
            event_type=_to_str(raw["event_type"]),
            property_damage_unit=_to_str(raw["property_damage_unit"]),
            crop_damage_unit=_to_str(raw["crop_damage_unit"]),
            **values,
        ))

    for f, n in bad.items():
        if n:
            logger.warning("Column %s (%s): %d non-numeric value(s) treated as missing", cols[f], f, n)
    return events


def load_events(path: str) -> List[EventRecord]:
    """Load a storm events file (CSV, compressed CSV or Excel)."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Data file not found: {path}")
    logger.info("Reading %s", path)
    try:
        df = read_table(path)
    except (zipfile.BadZipFile, InvalidFileException) as e:
        raise ValueError(f"Could not read {path}: not a valid zip-based file ({e})") from e
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    events = records_from_frame(df)
    logger.info("Loaded %d records", len(events))
    return events
