"""
Pytest configuration and shared fixtures.
"""

import matplotlib
matplotlib.use("Agg")

import logging

import pytest

from stormrank.models import EventRecord


@pytest.fixture
def three_records():
    """Three event types with distinct fatality totals."""
    return [
        EventRecord(event_type="A", fatalities=3),
        EventRecord(event_type="B", fatalities=10),
        EventRecord(event_type="C", fatalities=1),
    ]


@pytest.fixture
def storm_records():
    """A small mixed sample shaped like the NOAA storm data."""
    return [
        EventRecord("TORNADO", 5, 40, 2.5, "M", 10, "K"),
        EventRecord("TORNADO", 1, 12, 250, "K", 0, ""),
        EventRecord("FLOOD", 2, 3, 1.2, "B", 5, "M"),
        EventRecord("flood", 0, 1, 3, "h", 0, ""),
        EventRecord("EXCESSIVE HEAT", 20, 60, 0, "", 0, ""),
        EventRecord("HAIL", 0, 2, 15, "K", 30, "k"),
        EventRecord("HAIL", None, None, None, "", 2, "H"),
        EventRecord("LIGHTNING", 3, 9, 50, "K", 0, "?"),
        EventRecord("TSTM WIND", 1, 4, 5, "K", 1, "K"),
        EventRecord("TSTM WIND ", 0, 1, 7, "2", 0, ""),
    ]


@pytest.fixture
def storm_csv_text():
    """CSV text with the NOAA column names (extra columns included)."""
    return (
        "STATE__,BGN_DATE,EVTYPE,FATALITIES,INJURIES,PROPDMG,PROPDMGEXP,CROPDMG,CROPDMGEXP\n"
        "1,4/18/1950 0:00:00,TORNADO,0,15,25,K,0,\n"
        "1,4/18/1950 0:00:00,TORNADO,1,2,2.5,M,0,\n"
        "1,1/1/1995 0:00:00,FLOOD,2,0,1,B,5,M\n"
        "1,1/1/1995 0:00:00,flood,,,3,h,,\n"
        "1,1/1/1995 0:00:00,TSTM WIND ,0,1,n/a,K,0,\n"
        "1,1/1/1995 0:00:00,HAIL,0,0,10,H,4,k\n"
    )


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers the CLI attaches so they don't outlive a captured stream."""
    yield
    logger = logging.getLogger("stormrank")
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
