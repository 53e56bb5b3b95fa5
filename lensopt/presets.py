"""
Built-in starting prescriptions.
"""

import math

from lensopt.models import LensSystem, Surface


def default_lens() -> LensSystem:
    """Crown/flint doublet focused onto an image plane 50 mm behind the last element."""
    rows = [
        ("s1", "Front Lens (L1)", 40.0, 8.0, "BK7", 1.5168, 25.0, "First crown element"),
        ("s2", "Rear L1", -100.0, 2.0, "AIR", 1.0, 25.0, ""),
        ("s3", "Flint Element (L2)", -40.0, 4.0, "SF2", 1.6477, 22.0, "Corrective flint"),
        ("s4", "Rear L2", 80.0, 50.0, "AIR", 1.0, 22.0, ""),
        ("s5", "Image Plane", math.inf, 0.0, "AIR", 1.0, 20.0, ""),
    ]
    return LensSystem(
        Surface.from_radius(
            radius,
            thickness=thickness,
            refractive_index=n,
            semi_diameter=sd,
            id=sid,
            name=name,
            material=material,
            comment=comment,
        )
        for sid, name, radius, thickness, material, n, sd, comment in rows
    )
