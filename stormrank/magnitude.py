"""
Damage magnitude codes
======================

Storm event damage is stored as a coefficient plus a one-character
magnitude code, e.g. (25.0, "K") means 25,000 US$.

Only the codes below carry a multiplier. Note the asymmetry: lowercase
"h" means hundreds but uppercase "H" does not, and "B" has no lowercase
form. Everything else (blank, whitespace, digits, "+", "?", ...) leaves
the coefficient unchanged.
"""

from __future__ import annotations
from typing import Dict, Optional

MULTIPLIERS: Dict[str, float] = {
    "B": 1e9,
    "m": 1e6,
    "M": 1e6,
    "k": 1e3,
    "K": 1e3,
    "h": 1e2,
}


def multiplier(unit_code: Optional[str]) -> float:
    """Return the multiplier for a magnitude code (1.0 if the code is unknown)."""
    return MULTIPLIERS.get(unit_code, 1.0)


def normalize(coefficient: float, unit_code: Optional[str]) -> float:
    """Convert a (coefficient, magnitude code) pair to US$."""
    return coefficient * multiplier(unit_code)
