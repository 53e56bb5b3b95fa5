"""
Parsing utilities for prescription fields that have more than one spelling
(editor text boxes and imported JSON).
"""

import math

_PLANAR_WORDS = ("inf", "infinity", "flat", "plane")


def parse_radius(v):
    """Parse radius (mm). 0, empty, None or 'inf'/'infinity'/'flat' -> inf (planar)."""
    if v is None:
        return math.inf
    if isinstance(v, str):
        s = v.strip().lower()
        if not s or s.lstrip("+-") in _PLANAR_WORDS:
            return math.inf
        v = s
    r = float(v)
    if r == 0 or math.isnan(r):
        return math.inf
    return r


def parse_bool(v):
    """Parse a variable flag: true/1/yes/v -> True."""
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    return str(v).strip().lower() in ("true", "1", "yes", "y", "v")
