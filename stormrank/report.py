from __future__ import annotations

"""
Report generator
----------------
Turns the three ranked tables (fatalities, injuries, damage) into bar charts
and a DOCX report.

Design goals:
- Keep the core pipeline usable without report dependencies (lazy imports).
- One chart per table, in the table's own order, so the OTHERS bucket is
  always the last bar.
- The report only *renders* tables; it never re-aggregates records.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import os
import tempfile

from .log import get_logger
from .magnitude import MULTIPLIERS
from .models import OTHERS, RankedTable, ReportTables

logger = get_logger(__name__)

# (title, file_path, why_this_chart)
Chart = Tuple[str, str, str]


# -----------------------------
# Configuration / citation types
# -----------------------------

@dataclass
class DatasetCitation:
    """Minimal dataset citation metadata for the DOCX report."""
    database_name: str = "Storm Events Database"
    institutional_author: str = "NOAA National Centers for Environmental Information"
    location: str = "Asheville, NC, USA"
    access_date_iso: Optional[str] = None
    website: str = "https://www.ncdc.noaa.gov/stormevents/"
    file_name: Optional[str] = None
    file_note: Optional[str] = "Storm data export (StormData.csv.bz2 or equivalent)."


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Severe Weather Impact Report"
    subtitle: str = "Health and economic impact by event type"
    dataset_name: str = "NOAA Storm Events"
    citation: DatasetCitation = field(default_factory=DatasetCitation)
    dpi: int = 150


# -----------------------------
# Charts
# -----------------------------

def _import_pyplot():
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        import numpy as np
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib (and numpy).\n"
            "Install with: python -m pip install matplotlib numpy"
        ) from e
    return plt, np


def _bar_colors(labels: List[str], color: str) -> List[str]:
    # OTHERS is a bucket, not an event type: draw it muted
    return ["lightgray" if lbl == OTHERS else color for lbl in labels]


def render_charts(tables: ReportTables, out_dir: Optional[str] = None, *, dpi: int = 150) -> List[Chart]:
    """Draw one bar chart per table into `out_dir`.

    Without `out_dir` a new temp dir is created and left for the caller.
    """
    plt, np = _import_pyplot()

    out_dir = out_dir or tempfile.mkdtemp(prefix="stormrank_charts_")
    os.makedirs(out_dir, exist_ok=True)
    charts: List[Chart] = []

    def _save(filename: str) -> str:
        path = os.path.join(out_dir, filename)
        plt.tight_layout()
        plt.savefig(path, dpi=dpi)
        plt.close()
        return path

    def _bar(title: str, table: RankedTable, ylabel: str, color: str, why: str, filename: str) -> None:
        labels = [r.event_type for r in table.rows]
        values = [r.measure for r in table.rows]
        plt.figure(figsize=(8, 5))
        plt.bar(labels, values, color=_bar_colors(labels, color), edgecolor="black", linewidth=0.6)
        plt.xticks(rotation=45, ha="right")
        plt.title(title)
        plt.xlabel("Event type")
        plt.ylabel(ylabel)
        charts.append((title, _save(filename), why))

    n = tables.top_n
    _bar(
        f"Top {n} Event Types by Fatalities",
        tables.fatalities, "Fatalities", "C3",
        "Bar chart compares fatality totals across event types; OTHERS holds the remaining types.",
        "fatalities.png",
    )
    _bar(
        f"Top {n} Event Types by Injuries",
        tables.injuries, "Injuries", "C1",
        "Bar chart compares injury totals across event types; OTHERS holds the remaining types.",
        "injuries.png",
    )

    # Damage: stacked property + crop, in billions of US$
    dmg = tables.damage
    labels = [r.event_type for r in dmg.rows]
    prop = np.array([r.property_total for r in dmg.rows], dtype=float) / 1e9
    crop = np.array([r.crop_total for r in dmg.rows], dtype=float) / 1e9
    x = np.arange(len(labels))
    plt.figure(figsize=(8, 5))
    plt.bar(x, prop, label="Property", color="C0", edgecolor="black", linewidth=0.6)
    plt.bar(x, crop, bottom=prop, label="Crop", color="C2", edgecolor="black", linewidth=0.6)
    plt.xticks(x, labels, rotation=45, ha="right")
    title = f"Top {n} Event Types by Economic Damage"
    plt.title(title)
    plt.xlabel("Event type")
    plt.ylabel("Damage (billion US$)")
    plt.legend()
    charts.append((
        title,
        _save("damage.png"),
        "Stacked bars show total damage per event type and how much of it is property vs crop.",
    ))

    logger.info("Wrote %d charts to %s", len(charts), out_dir)
    return charts


# -----------------------------
# DOCX report
# -----------------------------

def _fmt_count(v: float) -> str:
    return f"{int(round(v)):,}"


def _fmt_usd(v: float) -> str:
    return f"{v:,.0f}"


def _import_docx():
    # Lazy imports: only required when a report is requested.
    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e
    return Document, Pt, Inches, WD_ALIGN_PARAGRAPH


def _build_document(tables: ReportTables, charts: List[Chart], config: ReportConfig, records_in_scope: Optional[int]):
    """Lay out the whole report. Chart images are embedded, so their files can go afterwards."""
    Document, Pt, Inches, WD_ALIGN_PARAGRAPH = _import_docx()

    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
        p = doc.add_paragraph()
        r = p.add_run(text)
        r.bold = bold
        r.italic = italic
        r.font.size = Pt(size)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _kv(key: str, value: str) -> None:
        p = doc.add_paragraph()
        r = p.add_run(f"{key}: ")
        r.bold = True
        p.add_run(value)

    def _table(header: List[str], rows: List[List[str]]) -> None:
        t = doc.add_table(rows=1, cols=len(header))
        for cell, text in zip(t.rows[0].cells, header):
            cell.text = text
        for values in rows:
            for cell, text in zip(t.add_row().cells, values):
                cell.text = text

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    doc.add_paragraph("")
    _kv("Dataset", config.dataset_name)
    if records_in_scope is not None:
        _kv("Records", f"{records_in_scope:,}")
    _kv("Event types shown per table", f"top {tables.top_n} + {OTHERS}")

    # Dataset citation
    doc.add_heading("Dataset citation", level=1)
    cit = config.citation
    if cit.file_name:
        doc.add_paragraph(f"Data file used: {cit.file_name}")
    if cit.file_note:
        doc.add_paragraph(f"File note: {cit.file_note}")
    accessed = f" (accessed {cit.access_date_iso})" if cit.access_date_iso else ""
    doc.add_paragraph(f"{cit.institutional_author}{accessed}. {cit.database_name}. {cit.location}. {cit.website}.")

    # Data dictionary
    doc.add_heading("Columns used (data dictionary)", level=1)
    _table(["Field", "Meaning"], [
        ["event_type", "Event type label, grouped by exact spelling"],
        ["fatalities", "Direct and indirect deaths"],
        ["injuries", "Direct and indirect injuries"],
        ["property_damage_coefficient / unit", "Property damage, coefficient x magnitude code"],
        ["crop_damage_coefficient / unit", "Crop damage, coefficient x magnitude code"],
    ])
    doc.add_paragraph("")
    doc.add_paragraph("Magnitude codes (any other code leaves the coefficient unchanged):")
    _table(["Code", "Multiplier"], [[code, f"{mult:,.0f}"] for code, mult in MULTIPLIERS.items()])

    # Visualizations
    doc.add_heading("Visualizations", level=1)
    for title, path, why in charts:
        doc.add_paragraph(title)
        doc.add_picture(path, width=Inches(6.0))
        doc.add_paragraph("Why this graph is suitable: " + why)

    # Tables
    doc.add_heading("Population health impact", level=1)
    for label, table in (("Fatalities", tables.fatalities), ("Injuries", tables.injuries)):
        doc.add_paragraph(f"{label} by event type")
        _table(["Event type", label], [[r.event_type, _fmt_count(r.measure)] for r in table.rows])
        doc.add_paragraph("")

    doc.add_heading("Economic impact", level=1)
    doc.add_paragraph(f"Damage by event type (US$), ranked by {tables.damage.key}")
    _table(
        ["Event type", "Property", "Crop", "Combined"],
        [[r.event_type, _fmt_usd(r.property_total), _fmt_usd(r.crop_total), _fmt_usd(r.combined_total)]
         for r in tables.damage.rows],
    )

    # Reproducibility footer
    doc.add_heading("Reproducibility footer", level=1)
    from . import __version__
    from datetime import datetime as _dt
    doc.add_paragraph(f"stormrank version: {__version__}")
    doc.add_paragraph(f"Report generated at: {_dt.now().isoformat(timespec='seconds')}")
    doc.add_paragraph(f"Top N: {tables.top_n}")

    return doc


def generate_docx_report(
    tables: ReportTables,
    out_path: str,
    *,
    config: Optional[ReportConfig] = None,
    records_in_scope: Optional[int] = None,
    charts: Optional[List[Chart]] = None,
) -> str:
    """
    Write a DOCX report with charts and the three ranked tables.

    `charts` can be passed in when they were already rendered; otherwise they
    are drawn into a temporary directory that is removed once the report is
    built.
    """
    config = config or ReportConfig()
    _import_docx()

    if charts is not None:
        doc = _build_document(tables, charts, config, records_in_scope)
    else:
        with tempfile.TemporaryDirectory(prefix="stormrank_report_") as tmpdir:
            drawn = render_charts(tables, tmpdir, dpi=config.dpi)
            doc = _build_document(tables, drawn, config, records_in_scope)

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    doc.save(out_path)
    logger.info("Report written to %s", out_path)
    return out_path
