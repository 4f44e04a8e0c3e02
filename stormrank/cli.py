"""
Command Line Interface
======================

Run the whole pipeline on one storm events file:

    python -m stormrank.cli --data StormData.csv.bz2
    python -m stormrank.cli --data StormData.csv.bz2 --top-n 5 --report out/report.docx

Prints the fatalities, injuries and damage tables. With --charts / --report
it also writes PNG charts and a DOCX report. The data file is only read.
"""

from __future__ import annotations
import argparse
import os
import sys
from typing import List, Optional

from .engine import DEFAULT_TOP_N, InvalidInput, PipelineConfig, build_report_tables
from .loader import load_events
from .log import setup_logging
from .models import DamageTotal, ReportTables, measure_fields

TITLES = {
    "fatalities": "Fatalities by event type",
    "injuries": "Injuries by event type",
    "damage": "Economic damage by event type (US$)",
}


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="stormrank", description="Rank severe weather event types by health and economic impact.")
    ap.add_argument("--data", required=True, help="Path to the storm events file (.csv, .csv.bz2 or .xlsx)")
    ap.add_argument("--top-n", type=int, default=DEFAULT_TOP_N, help=f"Event types kept before OTHERS (default {DEFAULT_TOP_N})")
    ap.add_argument("--damage-key", default="combined_total", choices=measure_fields(DamageTotal),
                    help="Damage measure that ranks the damage table")
    ap.add_argument("--charts", metavar="DIR", help="Write PNG charts into DIR")
    ap.add_argument("--report", metavar="OUT.docx", help="Write a DOCX report")
    ap.add_argument("--dpi", type=int, default=150, help="Chart resolution (default 150)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def print_tables(tables: ReportTables) -> None:
    import pandas as pd
    with pd.option_context("display.float_format", "{:,.0f}".format, "display.width", 120):
        for name, table in tables.items():
            print(f"\n{TITLES[name]}")
            print(table.to_frame().to_string(index=False))


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point.

    1) Load records
    2) Build the three ranked tables
    3) Print them, and write charts / report if asked
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        events = load_events(args.data)
    except (OSError, KeyError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        tables = build_report_tables(events, PipelineConfig(top_n=args.top_n, damage_key=args.damage_key))
    except InvalidInput as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"Loaded {len(events)} events.")
    print_tables(tables)

    from .report import DatasetCitation, ReportConfig
    cfg = ReportConfig(citation=DatasetCitation(file_name=os.path.basename(args.data)), dpi=args.dpi)

    charts = None
    if args.charts:
        from .report import render_charts
        charts = render_charts(tables, args.charts, dpi=cfg.dpi)
        print(f"\nCharts written to {args.charts}")

    if args.report:
        from .report import generate_docx_report
        generate_docx_report(tables, args.report, config=cfg, records_in_scope=len(events), charts=charts)
        print(f"Report written to {args.report}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
