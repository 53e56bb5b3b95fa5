"""
Request/response models for the HTTP API (camelCase keys, as the front end sends them).
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from lensopt.config import (
    DEFAULT_MAX_FREQ,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TARGET_FREQUENCY,
    D_LINE_NM,
    FAN_FIELD_ANGLES,
    FAN_RAYS_PER_FIELD,
    FAN_WAVELENGTHS_NM,
    MERIT_FIELD_ANGLES,
    OPTIMIZER_DELTA,
)
from lensopt.models import LensSystem, MTFPoint, Ray, RayPath
from lensopt.prescription import surface_from_dict, surface_to_dict


class SurfaceSchema(BaseModel):
    """
    Surface row matching the prescription editor (id, name, radius, thickness,
    material, refractiveIndex, semiDiameter, comment, isVariable).
    radius: number, or 0 / null / "inf" / "infinity" / "flat" for a plane.
    refractiveIndex omitted: looked up from the glass catalog by material.
    """
    id: str = ""
    name: str = ""
    radius: Optional[Union[float, str]] = None
    thickness: float = 0.0
    material: str = "AIR"
    refractiveIndex: Optional[float] = None
    semiDiameter: Optional[float] = None
    comment: str = ""
    isVariable: bool = False


class Vec3Schema(BaseModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class RaySchema(BaseModel):
    origin: Vec3Schema
    direction: Vec3Schema
    intensity: float = 1.0
    wavelength: float = D_LINE_NM


class TraceRequest(BaseModel):
    ray: RaySchema
    surfaces: List[SurfaceSchema]


class RayFanRequest(BaseModel):
    surfaces: List[SurfaceSchema]
    fieldAngles: List[float] = list(FAN_FIELD_ANGLES)
    wavelengths: List[float] = list(FAN_WAVELENGTHS_NM)
    raysPerFan: int = FAN_RAYS_PER_FIELD


class MTFRequest(BaseModel):
    surfaces: List[SurfaceSchema]
    fieldAngles: List[float] = list(MERIT_FIELD_ANGLES)
    maxFreq: float = DEFAULT_MAX_FREQ


class MeritRequest(BaseModel):
    surfaces: List[SurfaceSchema]
    targetFrequency: float = DEFAULT_TARGET_FREQUENCY


class OptimizeRequest(BaseModel):
    surfaces: List[SurfaceSchema]
    targetFrequency: float = DEFAULT_TARGET_FREQUENCY
    maxIterations: int = DEFAULT_MAX_ITERATIONS
    delta: float = OPTIMIZER_DELTA


class PrescriptionExportRequest(BaseModel):
    surfaces: List[SurfaceSchema]
    projectName: Optional[str] = "Untitled"
    date: Optional[str] = None


# =============================================================================
# Conversions
# =============================================================================


def lens_system_from_schemas(surfaces: List[SurfaceSchema]) -> LensSystem:
    """Raises SurfaceValidationError (ValueError) on physically invalid rows."""
    return LensSystem(surface_from_dict(s.model_dump(), i) for i, s in enumerate(surfaces))


def ray_from_schema(ray: RaySchema) -> Ray:
    o, d = ray.origin, ray.direction
    return Ray(origin=(o.x, o.y, o.z), direction=(d.x, d.y, d.z),
               intensity=ray.intensity, wavelength=ray.wavelength)


def path_to_dict(path: RayPath) -> Dict[str, Any]:
    return {
        "points": [{"x": float(x), "y": float(y), "z": float(z)} for x, y, z in path.points],
        "color": path.color,
        "complete": path.complete,
    }


def mtf_point_to_dict(point: MTFPoint) -> Dict[str, float]:
    return {
        "frequency": point.frequency,
        "tangential": point.tangential,
        "sagittal": point.sagittal,
        "fieldAngle": point.field_angle,
    }


def surfaces_to_dicts(system: LensSystem) -> List[Dict[str, Any]]:
    return [surface_to_dict(s) for s in system]
