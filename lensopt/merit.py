"""
Merit score: mean geometric MTF at one target frequency over the merit fields.
Higher is better; range [0, 1].
"""

from typing import Sequence

from lensopt.config import MERIT_FIELD_ANGLES
from lensopt.models import Surface
from lensopt.raytracer import calculate_mtf


def calculate_merit(
    surfaces: Sequence[Surface],
    target_frequency: float,
    field_angles: Sequence[float] = MERIT_FIELD_ANGLES,
) -> float:
    """
    Average of (tangential + sagittal) / 2 at target_frequency over field_angles
    (0, 7, 14 deg by default).

    calculate_mtf is asked for max_freq = target_frequency, so the last curve
    sample sits exactly on the target.
    """
    if not field_angles:
        raise ValueError("At least one field angle is required")
    total = 0.0
    for angle in field_angles:
        point = calculate_mtf(surfaces, angle, target_frequency)[-1]
        total += (point.tangential + point.sagittal) / 2.0
    return total / len(field_angles)
