"""
Glass catalog: d-line refractive index lookup by material name.
Used to fill in the index when a prescription names a glass but omits it.
Surfaces always carry a single fixed index; there is no wavelength dependence.
"""

from typing import Any, Dict, List, Optional

# name -> nd (587.6 nm)
_LIBRARY: List[Dict[str, Any]] = [
    {"name": "N-BK7", "nd": 1.5168},
    {"name": "N-K5", "nd": 1.5224},
    {"name": "N-SK16", "nd": 1.6204},
    {"name": "N-BAF10", "nd": 1.6700},
    {"name": "F2", "nd": 1.6200},
    {"name": "N-SF2", "nd": 1.6477},
    {"name": "N-SF5", "nd": 1.6727},
    {"name": "N-SF11", "nd": 1.7847},
    {"name": "Fused Silica", "nd": 1.4585},
    {"name": "Calcium Fluoride", "nd": 1.4338},
    {"name": "AIR", "nd": 1.0},
]

# lowercase alias -> canonical name
_ALIASES: Dict[str, str] = {
    "bk7": "N-BK7", "nbk7": "N-BK7", "k5": "N-K5",
    "sk16": "N-SK16", "baf10": "N-BAF10",
    "sf2": "N-SF2", "sf5": "N-SF5", "sf11": "N-SF11",
    "silica": "Fused Silica", "fused-silica": "Fused Silica", "fused_silica": "Fused Silica",
    "caf2": "Calcium Fluoride",
    "vacuum": "AIR",
}

_name_to_material: Optional[Dict[str, Dict[str, Any]]] = None


def _build_name_index() -> Dict[str, Dict[str, Any]]:
    """Build lowercase name -> material index for lookup."""
    global _name_to_material
    if _name_to_material is not None:
        return _name_to_material
    index = {m["name"].lower(): m for m in _LIBRARY}
    for alias, canonical in _ALIASES.items():
        index.setdefault(alias, index[canonical.lower()])
    _name_to_material = index
    return _name_to_material


def get_material_by_name(name: Optional[str]) -> Optional[Dict[str, Any]]:
    """Look up material by name (case-insensitive); None when unknown."""
    if not name or not name.strip():
        return None
    return _build_name_index().get(name.lower().strip())


def refractive_index_for(material_name: Optional[str], fallback: Optional[float] = None) -> Optional[float]:
    """nd of a catalog glass, or fallback when the name is unknown."""
    mat = get_material_by_name(material_name)
    if mat is None:
        return fallback
    return float(mat["nd"])


def get_all_materials() -> List[Dict[str, Any]]:
    """Return the catalog for the API."""
    return [dict(m) for m in _LIBRARY]
