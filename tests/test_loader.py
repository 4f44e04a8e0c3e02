"""Tests for the storm events loader."""

import bz2
import logging

import pandas as pd
import pytest

from stormrank.engine import build_report_tables, PipelineConfig
from stormrank.loader import load_events, records_from_frame
from stormrank.models import EventRecord

# first bytes of a binary (pre-2007) Office file
OLE2_HEADER = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


@pytest.fixture
def storm_csv(tmp_path, storm_csv_text):
    path = tmp_path / "storm.csv"
    path.write_text(storm_csv_text, encoding="utf-8")
    return str(path)


class TestLoadEvents:
    """load_events on CSV / bz2 / Excel input."""

    def test_csv(self, storm_csv):
        events = load_events(storm_csv)
        assert len(events) == 6
        assert events[0] == EventRecord("TORNADO", 0.0, 15.0, 25.0, "K", 0.0, "")
        assert events[2].property_damage_unit == "B"
        assert events[2].crop_damage_unit == "M"

    def test_event_type_is_not_trimmed(self, storm_csv):
        types = [e.event_type for e in load_events(storm_csv)]
        assert "TSTM WIND " in types
        assert "flood" in types and "FLOOD" in types

    def test_blank_numbers_are_none(self, storm_csv):
        flood = load_events(storm_csv)[3]
        assert flood.fatalities is None
        assert flood.injuries is None
        assert flood.crop_damage_coefficient is None
        assert flood.crop_damage_unit == ""

    def test_non_numeric_cell_is_logged(self, storm_csv, caplog):
        with caplog.at_level(logging.WARNING, logger="stormrank"):
            events = load_events(storm_csv)
        assert events[4].property_damage_coefficient is None
        assert "PROPDMG" in caplog.text

    def test_bz2(self, tmp_path, storm_csv_text):
        path = tmp_path / "StormData.csv.bz2"
        path.write_bytes(bz2.compress(storm_csv_text.encode("utf-8")))
        events = load_events(str(path))
        assert len(events) == 6
        assert events[1].property_damage_coefficient == 2.5

    def test_xlsx(self, tmp_path):
        path = tmp_path / "storms.xlsx"
        pd.DataFrame({
            "EVTYPE": ["HAIL", "HAIL", "TORNADO"],
            "FATALITIES": [0, 1, 4],
            "INJURIES": [2, 0, 10],
            "PROPDMG": [1.5, 2, 3],
            "PROPDMGEXP": ["K", "K", "M"],
            "CROPDMG": [0, 1, 0],
            "CROPDMGEXP": ["K", "K", "K"],
        }).to_excel(path, index=False, engine="openpyxl")
        events = load_events(str(path))
        assert [e.event_type for e in events] == ["HAIL", "HAIL", "TORNADO"]
        assert events[2].fatalities == 4
        assert events[0].property_damage_coefficient == 1.5

    def test_legacy_xls_rejected(self, tmp_path):
        path = tmp_path / "storms.xls"
        path.write_bytes(OLE2_HEADER + b"\x00" * 64)
        with pytest.raises(ValueError, match="Legacy Excel"):
            load_events(str(path))

    def test_corrupt_xlsx(self, tmp_path):
        path = tmp_path / "storms.xlsx"
        path.write_bytes(OLE2_HEADER + b"\x00" * 64)
        with pytest.raises(ValueError, match="Could not read"):
            load_events(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_events(str(tmp_path / "nope.csv"))

    def test_missing_column(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("EVTYPE,FATALITIES\nHAIL,1\n", encoding="utf-8")
        with pytest.raises(KeyError, match="INJURIES"):
            load_events(str(path))

    def test_pipeline_on_loaded_file(self, storm_csv):
        tables = build_report_tables(load_events(storm_csv), PipelineConfig(top_n=1))
        assert tables.damage.rows[0].event_type == "FLOOD"
        assert tables.damage.rows[0].combined_total == pytest.approx(1.005e9)
        # TORNADO 25K + 2.5M, flood 3h, HAIL 10 (H) + 4k
        assert tables.damage.others.combined_total == pytest.approx(2525000 + 300 + 10 + 4000)
        assert [(r.event_type, r.measure) for r in tables.fatalities.rows] == [("FLOOD", 2.0), ("OTHERS", 1.0)]


class TestRecordsFromFrame:
    """Column alias resolution."""

    def test_alias_names(self):
        df = pd.DataFrame({
            "Event Type": ["FLOOD"],
            "fatalities": ["1"],
            "Injuries": ["2"],
            "prop_dmg": ["3"],
            "prop dmg exp": ["K"],
            "CropDmg": ["4"],
            "crop_dmg_exp": ["m"],
        })
        assert records_from_frame(df) == [EventRecord("FLOOD", 1.0, 2.0, 3.0, "K", 4.0, "m")]

    def test_nan_cells(self):
        df = pd.DataFrame({
            "EVTYPE": ["HAIL"],
            "FATALITIES": [float("nan")],
            "INJURIES": [None],
            "PROPDMG": [1.0],
            "PROPDMGEXP": [float("nan")],
            "CROPDMG": [0.0],
            "CROPDMGEXP": [None],
        })
        rec = records_from_frame(df)[0]
        assert rec.fatalities is None
        assert rec.injuries is None
        assert rec.property_damage_unit == ""
        assert rec.crop_damage_unit == ""
