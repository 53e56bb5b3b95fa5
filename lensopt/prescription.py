"""
Prescription import/export: JSON surface tables <-> LensSystem.

Import accepts the shapes the front end and the AI design assistant produce:
a bare list of surface objects, {"surfaces": [...]}, or an exported
prescription document ({"optics": {"surfaces": [...]}}), as a parsed object or
as JSON text. Keys are matched flexibly (radius/Radius/R, semiDiameter/
semi_diameter/aperture, ...). A radius of 0, null, "inf", "infinity" or "flat"
is a planar surface.

Export writes camelCase surfaces with planar radius as 0 (the editor's
"R=0: Infinity" convention), so an exported table imports back unchanged.
"""

import json
import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Union

from lensopt.config import NEW_SURFACE_MATERIAL, NEW_SURFACE_SEMI_DIAMETER
from lensopt.materials import refractive_index_for
from lensopt.models import LensSystem, Surface
from lensopt.parsing import parse_bool, parse_radius

PRESCRIPTION_VERSION = "1.0"

logger = logging.getLogger(__name__)


def _get_float(d: Dict[str, Any], *keys: str, default: Optional[float] = None) -> Optional[float]:
    for k in keys:
        v = d.get(k)
        if v is not None and v != "":
            try:
                return float(v)
            except (TypeError, ValueError):
                logger.warning("Ignoring non-numeric %s=%r", k, v)
    return default


def _get_str(d: Dict[str, Any], *keys: str, default: str = "") -> str:
    for k in keys:
        v = d.get(k)
        if v is not None and v != "":
            return str(v).strip()
    return default


def _first_present(d: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in d:
            return d[k]
    return None


def surface_from_dict(raw: Dict[str, Any], idx: int = 0) -> Surface:
    """
    Map one raw surface object to a Surface.

    Missing refractive index: looked up from the glass catalog by material,
    else 1.0. Missing semi-diameter: half the diameter, else the editor default.
    Raises SurfaceValidationError (ValueError) for physically invalid rows.
    """
    radius_key = next((k for k in ("radius", "Radius", "R") if k in raw), None)
    if radius_key is not None:
        radius = parse_radius(raw[radius_key])
    else:
        curv = _get_float(raw, "curvature", "Curvature", "CURV", default=0.0)
        radius = 1.0 / curv if curv else parse_radius(None)

    thickness = _get_float(raw, "thickness", "Thickness", "T", "spacing", default=0.0)

    semi_diameter = _get_float(raw, "semiDiameter", "semi_diameter", "SemiDiameter", "sd", "aperture")
    if semi_diameter is None:
        diameter = _get_float(raw, "diameter", "Diameter", "DIAM")
        semi_diameter = diameter / 2.0 if diameter is not None else NEW_SURFACE_SEMI_DIAMETER

    material = _get_str(raw, "material", "Material", "glass", "Glass", default=NEW_SURFACE_MATERIAL)
    n = _get_float(raw, "refractiveIndex", "refractive_index", "index", "n")
    if n is None:
        n = refractive_index_for(material, fallback=1.0)

    return Surface.from_radius(
        radius,
        thickness=thickness,
        refractive_index=n,
        semi_diameter=semi_diameter,
        is_variable=parse_bool(_first_present(raw, "isVariable", "is_variable", "variable")),
        id=_get_str(raw, "id") or str(uuid.uuid4()),
        name=_get_str(raw, "name", "Name") or f"Surface {idx + 1}",
        material=material,
        comment=_get_str(raw, "comment", "Comment", "description"),
    )


def _extract_rows(data: Any) -> List[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        optics = data.get("optics")
        if isinstance(optics, dict) and isinstance(optics.get("surfaces"), list):
            return optics["surfaces"]
        for key in ("surfaces", "Surfaces", "sequence", "elements"):
            arr = data.get(key)
            if isinstance(arr, list):
                return arr
    return []


def surfaces_from_payload(data: Union[str, bytes, List[Any], Dict[str, Any]]) -> LensSystem:
    """
    Parse a prescription payload into a LensSystem.
    Raises ValueError on invalid JSON, invalid rows, or when no surfaces are found.
    """
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            logger.exception("JSON parse error: %s", e)
            raise ValueError(f"Invalid JSON: {e}") from e

    rows = _extract_rows(data)
    surfaces: List[Surface] = []
    for i, raw in enumerate(rows):
        if not isinstance(raw, dict):
            logger.warning("Surface %d: expected object, got %s", i + 1, type(raw).__name__)
            continue
        try:
            surfaces.append(surface_from_dict(raw, i))
        except (KeyError, TypeError, ValueError) as e:
            logger.exception("Surface %d parse error: %s (raw keys: %s)", i + 1, e, list(raw.keys()))
            raise ValueError(f"Surface {i + 1}: {e}") from e

    if not surfaces:
        raise ValueError("No surfaces found. Expected a list of surfaces or {\"surfaces\": [...]}.")
    logger.info("Imported %d surface(s)", len(surfaces))
    return LensSystem(surfaces)


def surface_to_dict(surface: Surface) -> Dict[str, Any]:
    """camelCase surface row; planar radius is written as 0."""
    return {
        "id": surface.id,
        "name": surface.name,
        "radius": 0.0 if surface.is_planar else surface.radius,
        "thickness": surface.thickness,
        "material": surface.material,
        "refractiveIndex": surface.refractive_index,
        "semiDiameter": surface.semi_diameter,
        "comment": surface.comment,
        "isVariable": surface.is_variable,
    }


def to_prescription_json(
    surfaces: Sequence[Surface],
    *,
    project_name: str = "Untitled",
    date_str: Optional[str] = None,
) -> Dict[str, Any]:
    """Prescription document: metadata plus the surface table."""
    system = LensSystem.of(surfaces)
    return {
        "prescription_version": PRESCRIPTION_VERSION,
        "metadata": {
            "project_name": project_name,
            "date": date_str or str(date.today()),
        },
        "optics": {
            "surfaces": [surface_to_dict(s) for s in system],
            "total_length": system.total_length,
        },
    }
