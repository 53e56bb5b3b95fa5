"""
Value types shared by the tracing engine, the optimizer and the service layer.

DATA STRUCTURE (engine <-> frontend):
  Surface[i] vertex: z_i = ray_start_z + sum(thickness[0..i-1]).
  Surface[i].refractive_index is the medium FOLLOWING surface i; the medium
  before surface 0 is air (n = 1.0).
  A planar surface is the Planar curvature variant. At the JSON/editor boundary
  it shows up as radius = inf (Surface.radius).

Surfaces and lens systems are immutable: every edit returns a new object.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator, NamedTuple, Optional, Tuple, Union

import numpy as np

from lensopt.config import PLANAR_RADIUS_EPS


class SurfaceValidationError(ValueError):
    """Raised when a surface prescription violates a physical invariant."""


# =============================================================================
# Curvature: Planar | Spherical(radius)
# =============================================================================


@dataclass(frozen=True)
class Planar:
    """Flat surface, normal along the optical axis."""

    @property
    def radius(self) -> float:
        return math.inf


@dataclass(frozen=True)
class Spherical:
    """Spherical surface; +radius puts the center of curvature downstream (+z)."""

    radius: float

    def __post_init__(self):
        r = float(self.radius)
        if not math.isfinite(r) or abs(r) < PLANAR_RADIUS_EPS:
            raise SurfaceValidationError(
                f"Spherical radius must be finite and |R| >= {PLANAR_RADIUS_EPS}, got {self.radius!r}"
                " (use curvature_from_radius for planar surfaces)"
            )
        object.__setattr__(self, "radius", r)


Curvature = Union[Planar, Spherical]

PLANAR = Planar()


def curvature_from_radius(radius: Optional[float]) -> Curvature:
    """
    Normalize a raw radius to a curvature variant.
    None, +/-inf, NaN and |radius| < 1e-6 all mean planar.
    """
    if radius is None:
        return PLANAR
    r = float(radius)
    if not math.isfinite(r) or abs(r) < PLANAR_RADIUS_EPS:
        return PLANAR
    return Spherical(r)


# =============================================================================
# Surface / LensSystem
# =============================================================================


@dataclass(frozen=True)
class Surface:
    """
    One optical interface.

    curvature: Planar or Spherical(radius) (mm).
    thickness: axial distance to the next surface (mm), >= 0.
    refractive_index: index of the medium after this surface, > 0.
    semi_diameter: clear-aperture half height (mm), >= 0.
    is_variable: radius is a free variable for the optimizer.
    id, name, material, comment: editor metadata, ignored by the numerics.
    """

    curvature: Curvature = PLANAR
    thickness: float = 0.0
    refractive_index: float = 1.0
    semi_diameter: float = 0.0
    is_variable: bool = False
    id: str = ""
    name: str = ""
    material: str = ""
    comment: str = field(default="", compare=False)

    def __post_init__(self):
        if not isinstance(self.curvature, (Planar, Spherical)):
            raise SurfaceValidationError(
                f"curvature must be Planar or Spherical, got {type(self.curvature).__name__}"
            )
        for name in ("thickness", "refractive_index", "semi_diameter"):
            value = float(getattr(self, name))
            if not math.isfinite(value):
                raise SurfaceValidationError(f"{name} must be finite, got {value!r}")
            object.__setattr__(self, name, value)
        if self.thickness < 0:
            raise SurfaceValidationError(f"thickness must be >= 0, got {self.thickness}")
        if self.semi_diameter < 0:
            raise SurfaceValidationError(f"semi_diameter must be >= 0, got {self.semi_diameter}")
        if self.refractive_index <= 0:
            raise SurfaceValidationError(
                f"refractive_index must be > 0, got {self.refractive_index}"
            )
        object.__setattr__(self, "is_variable", bool(self.is_variable))

    @classmethod
    def from_radius(cls, radius: Optional[float], **kwargs) -> "Surface":
        """Build a surface from a raw radius (inf / ~0 -> planar)."""
        return cls(curvature=curvature_from_radius(radius), **kwargs)

    @property
    def radius(self) -> float:
        """Signed radius (mm); math.inf for a planar surface."""
        return self.curvature.radius

    @property
    def is_planar(self) -> bool:
        return isinstance(self.curvature, Planar)

    @property
    def is_optimizable(self) -> bool:
        """Variable and curved: the optimizer never bends a flat surface."""
        return self.is_variable and not self.is_planar

    def with_radius(self, radius: Optional[float]) -> "Surface":
        return replace(self, curvature=curvature_from_radius(radius))

    def with_changes(self, **changes) -> "Surface":
        return replace(self, **changes)


class LensSystem(Sequence):
    """
    Immutable ordered sequence of surfaces, object side first.
    The last surface is conventionally the image plane (thickness 0).
    """

    __slots__ = ("_surfaces",)

    def __init__(self, surfaces: Iterable[Surface] = ()):
        items = tuple(surfaces)
        for i, s in enumerate(items):
            if not isinstance(s, Surface):
                raise TypeError(f"Surface {i + 1}: expected Surface, got {type(s).__name__}")
        self._surfaces = items

    @classmethod
    def of(cls, surfaces: Iterable[Surface]) -> "LensSystem":
        """Snapshot any iterable of surfaces (no-op for a LensSystem)."""
        if isinstance(surfaces, cls):
            return surfaces
        return cls(surfaces)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return LensSystem(self._surfaces[index])
        return self._surfaces[index]

    def __len__(self) -> int:
        return len(self._surfaces)

    def __iter__(self) -> Iterator[Surface]:
        return iter(self._surfaces)

    def __eq__(self, other) -> bool:
        if isinstance(other, LensSystem):
            return self._surfaces == other._surfaces
        if isinstance(other, (list, tuple)):
            return self._surfaces == tuple(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._surfaces)

    def __repr__(self) -> str:
        return f"LensSystem({list(self._surfaces)!r})"

    @property
    def surfaces(self) -> Tuple[Surface, ...]:
        return self._surfaces

    @property
    def total_length(self) -> float:
        """Sum of thicknesses (mm)."""
        return float(sum(s.thickness for s in self._surfaces))

    @property
    def variable_indices(self) -> Tuple[int, ...]:
        """Indices the optimizer may perturb, in sequence order."""
        return tuple(i for i, s in enumerate(self._surfaces) if s.is_optimizable)

    def vertex_positions(self, start_z: float = 0.0) -> Tuple[float, ...]:
        """z of each surface vertex: start_z + sum(thickness[0..i-1])."""
        z = float(start_z)
        out = []
        for s in self._surfaces:
            out.append(z)
            z += s.thickness
        return tuple(out)

    def replace(self, index: int, surface: Surface) -> "LensSystem":
        items = list(self._surfaces)
        items[index] = surface
        return LensSystem(items)

    def insert(self, index: int, surface: Surface) -> "LensSystem":
        items = list(self._surfaces)
        items.insert(index, surface)
        return LensSystem(items)

    def remove(self, index: int) -> "LensSystem":
        items = list(self._surfaces)
        del items[index]
        return LensSystem(items)

    def append(self, surface: Surface) -> "LensSystem":
        return LensSystem(self._surfaces + (surface,))

    def index_of(self, surface_id: str) -> int:
        """Index of the surface with this id; KeyError if absent."""
        for i, s in enumerate(self._surfaces):
            if s.id == surface_id:
                return i
        raise KeyError(surface_id)


# =============================================================================
# Rays and trace results
# =============================================================================


def _vec3(value, name: str) -> np.ndarray:
    arr = np.array(value, dtype=float).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"{name} must have 3 components, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Ray:
    """
    Ray with origin and direction (x, y, z). Direction need not be normalized.
    intensity is carried but never attenuated; wavelength (nm) only picks the
    display colour.
    """

    origin: np.ndarray
    direction: np.ndarray
    intensity: float = 1.0
    wavelength: float = 587.6

    def __post_init__(self):
        object.__setattr__(self, "origin", _vec3(self.origin, "origin"))
        object.__setattr__(self, "direction", _vec3(self.direction, "direction"))
        object.__setattr__(self, "intensity", float(self.intensity))
        object.__setattr__(self, "wavelength", float(self.wavelength))

    @classmethod
    def at_field_angle(cls, x: float, y: float, z: float, field_angle_deg: float,
                       wavelength: float = 587.6) -> "Ray":
        """Ray from (x, y, z) tilted by field_angle_deg in the y-z meridian."""
        a = math.radians(field_angle_deg)
        return cls(origin=(x, y, z), direction=(0.0, math.sin(a), math.cos(a)),
                   wavelength=wavelength)


class Intersection(NamedTuple):
    """Hit point, normal oriented against the incoming ray, ray parameter t >= 0."""

    point: np.ndarray
    normal: np.ndarray
    t: float


@dataclass(frozen=True, eq=False)
class RayPath:
    """
    Polyline from the ray origin through every successful intersection.
    surface_count is the length of the traced system; the path is complete
    when it has surface_count + 1 points.
    """

    points: np.ndarray
    color: str
    surface_count: int

    def __post_init__(self):
        pts = np.array(self.points, dtype=float).reshape(-1, 3)
        pts.setflags(write=False)
        object.__setattr__(self, "points", pts)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def end(self) -> np.ndarray:
        """Terminal point (the origin when nothing was hit)."""
        return self.points[-1]

    @property
    def complete(self) -> bool:
        return len(self.points) == self.surface_count + 1


class MTFPoint(NamedTuple):
    """One sample of a geometric MTF curve."""

    frequency: float
    tangential: float
    sagittal: float
    field_angle: float
