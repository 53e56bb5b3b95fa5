"""
Ray-surface intersection for planar and spherical surfaces on the optical axis.

Coordinate convention
---------------------
* Optical axis is z; rays nominally propagate toward +z.
* Surface vertex at z = surface_start_z.
* Spherical center at (0, 0, surface_start_z + R): +R is convex toward the object.
* Returned normals always oppose the incoming ray direction, whatever the sign
  of R. refraction.refract relies on that orientation.
"""

import math
from typing import Optional, Tuple

import numpy as np

from lensopt.models import Intersection, Planar, Ray, Surface

# Fixed normal for planar surfaces.
AXIAL_NORMAL = np.array([0.0, 0.0, -1.0])
AXIAL_NORMAL.setflags(write=False)


def intersect(ray: Ray, surface: Surface, surface_start_z: float) -> Optional[Intersection]:
    """
    Intersect one ray with one surface whose vertex sits at surface_start_z.

    Returns:
        Intersection(point, normal, t) or None on a miss. A ray parallel to a
        plane, a surface behind the ray, or a sphere the ray never reaches is a
        miss, never a NaN.
    """
    ox, oy, oz = (float(v) for v in ray.origin)
    dx, dy, dz = (float(v) for v in ray.direction)
    z_s = float(surface_start_z)

    if isinstance(surface.curvature, Planar):
        if dz == 0.0:
            return None
        t = (z_s - oz) / dz
        if not math.isfinite(t) or t < 0:
            return None
        point = np.array([ox + dx * t, oy + dy * t, z_s])
        return Intersection(point, AXIAL_NORMAL.copy(), t)

    radius = surface.curvature.radius
    center_z = z_s + radius
    ocx, ocy, ocz = ox, oy, oz - center_z
    a = dx * dx + dy * dy + dz * dz
    if a == 0.0:
        return None
    b = 2.0 * (ocx * dx + ocy * dy + ocz * dz)
    c = ocx * ocx + ocy * ocy + ocz * ocz - radius * radius
    disc = b * b - 4.0 * a * c
    if not disc >= 0:
        return None
    sqrt_d = math.sqrt(disc)
    # Near root first; far root only when the near one is behind the origin.
    t = (-b - sqrt_d) / (2.0 * a)
    if t < 0:
        t = (-b + sqrt_d) / (2.0 * a)
    if not math.isfinite(t) or t < 0:
        return None

    point = np.array([ox + dx * t, oy + dy * t, oz + dz * t])
    normal = (point - np.array([0.0, 0.0, center_z])) / radius
    if normal[0] * dx + normal[1] * dy + normal[2] * dz > 0:
        normal = -normal
    return Intersection(point, normal, t)


def intersect_bundle(
    origins: np.ndarray,
    directions: np.ndarray,
    surface: Surface,
    surface_start_z: float,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorized intersect() for a batch of rays. Same root selection and normal
    orientation as the scalar version.

    Parameters
    ----------
    origins : ndarray, shape (n_rays, 3)
    directions : ndarray, shape (n_rays, 3)
    surface : Surface
    surface_start_z : float or ndarray, shape (n_rays,)
        Vertex z, per ray when each ray carries its own start offset.

    Returns
    -------
    points : ndarray, shape (n_rays, 3)   NaN where missed
    normals : ndarray, shape (n_rays, 3)  NaN where missed
    t : ndarray, shape (n_rays,)          NaN where missed
    hit : ndarray, shape (n_rays,), bool
    """
    origins = np.asarray(origins, dtype=float).reshape(-1, 3)
    directions = np.asarray(directions, dtype=float).reshape(-1, 3)
    n_rays = origins.shape[0]
    z_s = np.broadcast_to(np.asarray(surface_start_z, dtype=float), (n_rays,))

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        if isinstance(surface.curvature, Planar):
            dz = directions[:, 2]
            parallel = dz == 0.0
            t = np.where(parallel, np.nan, (z_s - origins[:, 2]) / np.where(parallel, 1.0, dz))
            hit = np.isfinite(t) & (t >= 0)
            points = origins + directions * t[:, None]
            points[:, 2] = z_s
            normals = np.broadcast_to(AXIAL_NORMAL, (n_rays, 3)).copy()
        else:
            radius = surface.curvature.radius
            center = np.zeros((n_rays, 3))
            center[:, 2] = z_s + radius
            oc = origins - center
            a = np.sum(directions * directions, axis=1)
            b = 2.0 * np.sum(oc * directions, axis=1)
            c = np.sum(oc * oc, axis=1) - radius * radius
            disc = b * b - 4.0 * a * c
            sqrt_d = np.sqrt(np.where(disc >= 0, disc, np.nan))
            t_near = (-b - sqrt_d) / (2.0 * a)
            t_far = (-b + sqrt_d) / (2.0 * a)
            t = np.where(t_near < 0, t_far, t_near)
            hit = (a > 0) & np.isfinite(t) & (t >= 0)
            points = origins + directions * t[:, None]
            normals = (points - center) / radius
            flip = np.sum(normals * directions, axis=1) > 0
            normals[flip] = -normals[flip]

    hit &= np.all(np.isfinite(points), axis=1)
    points[~hit] = np.nan
    normals[~hit] = np.nan
    t = np.where(hit, t, np.nan)
    return points, normals, t, hit
