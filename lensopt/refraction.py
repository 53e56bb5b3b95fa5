"""
Snell's law in vector form, for single rays and ray bundles.
"""

import math
from typing import Optional, Tuple

import numpy as np


def refract(incident, normal, n1: float, n2: float) -> Optional[np.ndarray]:
    """
    Vector form of Snell's law: t = eta*i + (eta*cos(theta_i) - cos(theta_t))*N.

    Args:
        incident: Incident direction (3,)
        normal: Unit surface normal oriented against the incident ray (see geometry)
        n1: Index of the medium the ray is leaving
        n2: Index of the medium the ray is entering

    Returns:
        Refracted direction, or None on total internal reflection. The result
        is not renormalized; it is unit length for unit inputs.
    """
    i = np.asarray(incident, dtype=float)
    n = np.asarray(normal, dtype=float)
    ratio = n1 / n2
    cos_i = -float(np.dot(i, n))
    sin2_t = ratio * ratio * (1.0 - cos_i * cos_i)
    if sin2_t > 1.0:
        return None  # Total internal reflection
    cos_t = math.sqrt(1.0 - sin2_t)
    return ratio * i + (ratio * cos_i - cos_t) * n


def refract_bundle(
    incident: np.ndarray, normals: np.ndarray, n1: float, n2: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorized refract() for a batch of rays.

    Returns
    -------
    directions : ndarray, shape (n_rays, 3)  NaN where TIR (or NaN input)
    ok : ndarray, shape (n_rays,), bool     False where TIR
    """
    i = np.asarray(incident, dtype=float).reshape(-1, 3)
    n = np.asarray(normals, dtype=float).reshape(-1, 3)
    ratio = n1 / n2
    cos_i = -np.sum(i * n, axis=1)
    sin2_t = ratio * ratio * (1.0 - cos_i * cos_i)
    ok = sin2_t <= 1.0
    with np.errstate(invalid="ignore"):
        cos_t = np.sqrt(np.where(ok, 1.0 - sin2_t, np.nan))
    out = ratio * i + (ratio * cos_i - cos_t)[:, None] * n
    return out, ok
