"""
lensopt: sequential lens ray tracer with geometric MTF and a local radius optimizer.
"""

from lensopt.merit import calculate_merit
from lensopt.editor import (
    add_surface,
    insert_surface,
    remove_surface,
    set_comment,
    set_material,
    set_name,
    set_radius,
    set_refractive_index,
    set_semi_diameter,
    set_thickness,
    set_variable,
)
from lensopt.models import (
    PLANAR,
    Intersection,
    LensSystem,
    MTFPoint,
    Planar,
    Ray,
    RayPath,
    Spherical,
    Surface,
    SurfaceValidationError,
    curvature_from_radius,
)
from lensopt.geometry import intersect
from lensopt.optimizer import (
    CancelToken,
    OptimizationPass,
    aiter_optimize,
    iter_optimize,
    optimize,
    optimize_async,
)
from lensopt.refraction import refract
from lensopt.raytracer import calculate_mtf, ray_fan, spot_diagram, trace_ray

__version__ = "0.1.0"

__all__ = [
    "PLANAR",
    "CancelToken",
    "Intersection",
    "LensSystem",
    "MTFPoint",
    "OptimizationPass",
    "Planar",
    "Ray",
    "RayPath",
    "Spherical",
    "Surface",
    "SurfaceValidationError",
    "add_surface",
    "aiter_optimize",
    "calculate_merit",
    "calculate_mtf",
    "curvature_from_radius",
    "insert_surface",
    "intersect",
    "iter_optimize",
    "optimize",
    "optimize_async",
    "ray_fan",
    "refract",
    "remove_surface",
    "set_comment",
    "set_material",
    "set_name",
    "set_radius",
    "set_refractive_index",
    "set_semi_diameter",
    "set_thickness",
    "set_variable",
    "spot_diagram",
    "trace_ray",
]
