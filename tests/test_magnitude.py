"""Tests for damage magnitude codes."""

import pytest

from stormrank.magnitude import MULTIPLIERS, multiplier, normalize


class TestNormalize:
    """normalize(coefficient, unit_code)."""

    @pytest.mark.parametrize("code, expected", [
        ("K", 5000),
        ("k", 5000),
        ("M", 5e6),
        ("m", 5e6),
        ("B", 5e9),
        ("h", 500),
    ])
    def test_known_codes(self, code, expected):
        assert normalize(5, code) == expected

    def test_uppercase_h_is_not_hundreds(self):
        """Only lowercase h means hundreds."""
        assert normalize(5, "H") == 5

    def test_lowercase_b_is_not_billions(self):
        assert normalize(5, "b") == 5

    @pytest.mark.parametrize("code", ["", " ", "x", "+", "-", "?", "0", "2", "8", "K ", " K", None])
    def test_unknown_codes_leave_coefficient(self, code):
        assert normalize(5, code) == 5

    def test_zero_and_fractional_coefficient(self):
        assert normalize(0, "B") == 0
        assert normalize(2.5, "M") == 2.5e6

    def test_multiplier_table(self):
        assert multiplier("B") == 1e9
        assert multiplier("nope") == 1.0
        assert set(MULTIPLIERS) == {"B", "m", "M", "k", "K", "h"}
