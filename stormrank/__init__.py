"""
stormrank package
=================

Ranks severe weather event types by population health impact (fatalities,
injuries) and economic impact (property + crop damage).

- Records are loaded in `stormrank/loader.py`.
- Aggregation and top-N ranking live in `stormrank/engine.py`.
- Charts and the DOCX report are in `stormrank/report.py`.
- The CLI entry point is `stormrank/cli.py`.
"""

__version__ = '0.1.0'
