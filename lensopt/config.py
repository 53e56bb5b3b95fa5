"""
lensopt configuration.

Centralized constants for the tracing engine, the MTF sampler, the optimizer
and the HTTP service. Service settings can be overridden from the environment.
"""

import os

# =============================================================================
# Geometry / tracing
# =============================================================================

# |radius| below this is treated as a flat surface.
PLANAR_RADIUS_EPS = 1e-6

# Object-side index before the first surface.
OBJECT_SPACE_INDEX = 1.0

# Ray start z for MTF sampling: surface 0 vertex sits at the ray origin z.
RAY_START_Z = -10.0

# Ray start z for the layout ray fan.
FAN_START_Z = -20.0

# d-line (nm). MTF sampling ignores chromatic variation.
D_LINE_NM = 587.6

# =============================================================================
# Geometric MTF
# =============================================================================

# Pupil grid half-count per axis -> (2 * 12 + 1)^2 candidate rays.
PUPIL_GRID_HALF_COUNT = 12

# Frequency samples per curve: 0..max_freq in max_freq / 20 steps.
MTF_FREQUENCY_STEPS = 20
MTF_NUM_SAMPLES = MTF_FREQUENCY_STEPS + 1

DEFAULT_MAX_FREQ = 100.0

# Field angles (deg) shown on the MTF chart and averaged by the merit score.
MERIT_FIELD_ANGLES = (0.0, 7.0, 14.0)

# =============================================================================
# Ray fan (layout view)
# =============================================================================

FAN_FIELD_ANGLES = (0.0, 5.0, 10.0)
FAN_WAVELENGTHS_NM = (656.3, 587.6, 486.1)
FAN_RAYS_PER_FIELD = 5
# Fan heights span this fraction of the first surface semi-diameter.
FAN_APERTURE_FILL = 0.8
FAN_DEFAULT_SEMI_DIAMETER = 10.0

# (upper bound nm, colour); last entry catches everything above.
WAVELENGTH_COLORS = (
    (450.0, "#4B0082"),
    (495.0, "#0000FF"),
    (570.0, "#00FF00"),
    (590.0, "#FFFF00"),
    (620.0, "#FFA500"),
    (float("inf"), "#FF0000"),
)

# =============================================================================
# Optimizer
# =============================================================================

# Radius step (mm) for the coordinate search. Fixed, no decay.
OPTIMIZER_DELTA = 0.5

# Hand control back to the event loop every N passes (pass 0, 5, 10, ...).
OPTIMIZER_YIELD_EVERY = 5

DEFAULT_TARGET_FREQUENCY = 30.0
DEFAULT_MAX_ITERATIONS = 50

# =============================================================================
# Editor defaults (new surface row)
# =============================================================================

NEW_SURFACE_THICKNESS = 10.0
NEW_SURFACE_SEMI_DIAMETER = 20.0
NEW_SURFACE_MATERIAL = "AIR"

# =============================================================================
# Service
# =============================================================================

DEFAULT_HOST = os.getenv("LENSOPT_HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("LENSOPT_PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "LENSOPT_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    ).split(",")
    if o.strip()
]
