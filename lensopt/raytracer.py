"""
Sequential ray trace and geometric MTF.

Surface[i] vertex: z_i = ray_origin_z + sum(thickness[0..i-1]).
Surface[i] refraction: n1 = index of surface i-1 (1.0 before surface 0),
n2 = index of surface i.
A miss or total internal reflection ends that ray's trace silently; the path
is returned truncated. Vignetted rays are a normal outcome, not an error.
"""

import logging
import math
from typing import List, Sequence, Tuple

import numpy as np

from lensopt.config import (
    D_LINE_NM,
    DEFAULT_MAX_FREQ,
    FAN_APERTURE_FILL,
    FAN_DEFAULT_SEMI_DIAMETER,
    FAN_FIELD_ANGLES,
    FAN_RAYS_PER_FIELD,
    FAN_START_Z,
    FAN_WAVELENGTHS_NM,
    MTF_NUM_SAMPLES,
    OBJECT_SPACE_INDEX,
    PUPIL_GRID_HALF_COUNT,
    RAY_START_Z,
    WAVELENGTH_COLORS,
)
from lensopt.geometry import intersect, intersect_bundle
from lensopt.models import LensSystem, MTFPoint, Ray, RayPath, Surface
from lensopt.refraction import refract, refract_bundle

logger = logging.getLogger(__name__)


def wavelength_color(wavelength_nm: float) -> str:
    """Display colour (hex) for a wavelength band."""
    for upper, color in WAVELENGTH_COLORS:
        if wavelength_nm < upper:
            return color
    return WAVELENGTH_COLORS[-1][1]


def trace_ray(ray: Ray, surfaces: Sequence[Surface]) -> RayPath:
    """
    Trace one ray through the surfaces in order.
    Returns the polyline [origin, hit_0, hit_1, ...]; complete when it has
    len(surfaces) + 1 points.
    """
    system = LensSystem.of(surfaces)
    points = [ray.origin]
    current = ray
    current_z = float(ray.origin[2])
    n_before = OBJECT_SPACE_INDEX

    for surface in system:
        hit = intersect(current, surface, current_z)
        if hit is None or not np.all(np.isfinite(hit.point)):
            break
        points.append(hit.point)

        refracted = refract(current.direction, hit.normal, n_before, surface.refractive_index)
        if refracted is None:
            break  # TIR

        current = Ray(origin=hit.point, direction=refracted,
                      intensity=current.intensity, wavelength=current.wavelength)
        current_z += surface.thickness
        n_before = surface.refractive_index

    return RayPath(points=np.array(points), color=wavelength_color(ray.wavelength),
                   surface_count=len(system))


def trace_bundle(
    origins: np.ndarray, directions: np.ndarray, surfaces: Sequence[Surface]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorized trace_ray() returning only terminal points.

    Parameters
    ----------
    origins : ndarray, shape (n_rays, 3)
    directions : ndarray, shape (n_rays, 3)
    surfaces : sequence of Surface

    Returns
    -------
    end_points : ndarray, shape (n_rays, 3)
        Last successful point of each ray (what trace_ray(...).end returns).
    complete : ndarray, shape (n_rays,), bool
        True where the ray reached the last surface.
    """
    system = LensSystem.of(surfaces)
    pos = np.array(origins, dtype=float).reshape(-1, 3)
    dirs = np.array(directions, dtype=float).reshape(-1, 3)
    n_rays = pos.shape[0]
    start_z = pos[:, 2].copy()

    end_points = pos.copy()
    alive = np.ones(n_rays, dtype=bool)
    reached = alive.copy()
    offset = 0.0
    n_before = OBJECT_SPACE_INDEX

    for surface in system:
        points, normals, _, hit = intersect_bundle(pos, dirs, surface, start_z + offset)
        reached = alive & hit
        end_points[reached] = points[reached]

        new_dirs, ok = refract_bundle(dirs, normals, n_before, surface.refractive_index)
        # A TIR on the last surface still leaves a complete path.
        alive = reached & ok
        pos = np.where(alive[:, None], points, np.nan)
        dirs = np.where(alive[:, None], new_dirs, np.nan)
        offset += surface.thickness
        n_before = surface.refractive_index

    return end_points, reached


def pupil_grid(semi_diameter: float, half_count: int = PUPIL_GRID_HALF_COUNT) -> np.ndarray:
    """
    Square (2n+1)^2 grid over [-sd, sd]^2 clipped to the circular pupil.
    Returns (M, 2) pupil offsets (x, y), x-major order.
    """
    steps = np.arange(-half_count, half_count + 1) / half_count * semi_diameter
    px, py = np.meshgrid(steps, steps, indexing="ij")
    px, py = px.ravel(), py.ravel()
    inside = px * px + py * py <= semi_diameter * semi_diameter
    return np.column_stack([px[inside], py[inside]])


def spot_diagram(
    surfaces: Sequence[Surface],
    field_angle_deg: float,
    wavelength: float = D_LINE_NM,
) -> np.ndarray:
    """
    Image-plane displacements (dx, dy) of the pupil grid relative to the chief ray.
    Rays that fail to reach the last surface, or whose displacement is not
    finite, are dropped. Returns shape (M, 2).
    """
    system = LensSystem.of(surfaces)
    if not system:
        raise ValueError("No surfaces provided")

    chief = trace_ray(Ray.at_field_angle(0.0, 0.0, RAY_START_Z, field_angle_deg, wavelength), system)
    ref_point = chief.end

    pupil = pupil_grid(system[0].semi_diameter)
    origins = np.column_stack([pupil, np.full(len(pupil), RAY_START_Z)])
    angle = math.radians(field_angle_deg)
    directions = np.tile([0.0, math.sin(angle), math.cos(angle)], (len(pupil), 1))

    end_points, complete = trace_bundle(origins, directions, system)
    dxdy = end_points[complete, :2] - ref_point[:2]
    return dxdy[np.all(np.isfinite(dxdy), axis=1)]


def mtf_frequencies(max_freq: float) -> np.ndarray:
    """0..max_freq in max_freq / 20 steps; the last sample is exactly max_freq."""
    return np.linspace(0.0, max_freq, MTF_NUM_SAMPLES)


def calculate_mtf(
    surfaces: Sequence[Surface],
    field_angle_deg: float,
    max_freq: float = DEFAULT_MAX_FREQ,
) -> List[MTFPoint]:
    """
    Geometric MTF for one field angle.

    tangential(f) = |sum(exp(i*2*pi*f*dy))| / N
    sagittal(f)   = |sum(exp(i*2*pi*f*dx))| / N
    over the spot diagram displacements, N = surviving rays (1 if none).
    Deterministic: the same system always yields the same curve.
    """
    max_freq = float(max_freq)
    if not math.isfinite(max_freq) or max_freq <= 0:
        raise ValueError(f"max_freq must be a positive number, got {max_freq}")

    dxdy = spot_diagram(surfaces, field_angle_deg)
    freqs = mtf_frequencies(max_freq)
    count = len(dxdy) or 1

    phase_s = 2.0 * np.pi * np.outer(freqs, dxdy[:, 0])
    phase_t = 2.0 * np.pi * np.outer(freqs, dxdy[:, 1])
    sagittal = np.abs(np.exp(1j * phase_s).sum(axis=1)) / count
    tangential = np.abs(np.exp(1j * phase_t).sum(axis=1)) / count
    sagittal = np.minimum(sagittal, 1.0)
    tangential = np.minimum(tangential, 1.0)

    logger.debug("MTF field=%.2f deg: %d rays, max_freq=%.2f", field_angle_deg, len(dxdy), max_freq)
    return [
        MTFPoint(float(f), float(t), float(s), float(field_angle_deg))
        for f, t, s in zip(freqs, tangential, sagittal)
    ]


def ray_fan(
    surfaces: Sequence[Surface],
    field_angles: Sequence[float] = FAN_FIELD_ANGLES,
    wavelengths: Sequence[float] = FAN_WAVELENGTHS_NM,
    rays_per_fan: int = FAN_RAYS_PER_FIELD,
    start_z: float = FAN_START_Z,
) -> List[RayPath]:
    """
    Meridional ray fans for the layout view: for every field angle and
    wavelength, rays_per_fan rays spread over +/-0.8 of the first semi-diameter.
    Order: field angle, then wavelength, then height (bottom to top).
    """
    system = LensSystem.of(surfaces)
    if rays_per_fan < 1:
        raise ValueError(f"rays_per_fan must be >= 1, got {rays_per_fan}")
    semi = system[0].semi_diameter if system else 0.0
    semi = semi or FAN_DEFAULT_SEMI_DIAMETER
    if rays_per_fan == 1:
        heights = np.zeros(1)
    else:
        heights = np.linspace(-1.0, 1.0, rays_per_fan) * semi * FAN_APERTURE_FILL

    paths = []
    for angle in field_angles:
        for wvl in wavelengths:
            for y0 in heights:
                ray = Ray.at_field_angle(0.0, float(y0), start_z, angle, wavelength=wvl)
                paths.append(trace_ray(ray, system))
    return paths

