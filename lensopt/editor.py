"""
Prescription editor operations.

Every function takes a lens system (any sequence of surfaces), addresses a
surface by id and returns a new LensSystem; the input is never modified.
Unknown ids raise KeyError.
"""

import uuid
from typing import Optional, Sequence

from lensopt.config import NEW_SURFACE_MATERIAL, NEW_SURFACE_SEMI_DIAMETER, NEW_SURFACE_THICKNESS
from lensopt.materials import refractive_index_for
from lensopt.models import PLANAR, LensSystem, Surface


def new_surface_id() -> str:
    return str(uuid.uuid4())


def blank_surface(position: int) -> Surface:
    """Default row: flat air gap, 10 mm thick, 20 mm semi-diameter."""
    return Surface(
        curvature=PLANAR,
        thickness=NEW_SURFACE_THICKNESS,
        refractive_index=1.0,
        semi_diameter=NEW_SURFACE_SEMI_DIAMETER,
        is_variable=False,
        id=new_surface_id(),
        name=f"Surface {position}",
        material=NEW_SURFACE_MATERIAL,
    )


def add_surface(surfaces: Sequence[Surface], surface: Optional[Surface] = None) -> LensSystem:
    """Append a surface (a blank one named "Surface N" when none is given)."""
    system = LensSystem.of(surfaces)
    if surface is None:
        surface = blank_surface(len(system) + 1)
    return system.append(surface)


def insert_surface(surfaces: Sequence[Surface], index: int,
                   surface: Optional[Surface] = None) -> LensSystem:
    """Insert before position index (clamped to the sequence bounds)."""
    system = LensSystem.of(surfaces)
    index = max(0, min(int(index), len(system)))
    if surface is None:
        surface = blank_surface(index + 1)
    return system.insert(index, surface)


def remove_surface(surfaces: Sequence[Surface], surface_id: str) -> LensSystem:
    system = LensSystem.of(surfaces)
    return system.remove(system.index_of(surface_id))


def _update(surfaces: Sequence[Surface], surface_id: str, **changes) -> LensSystem:
    system = LensSystem.of(surfaces)
    i = system.index_of(surface_id)
    return system.replace(i, system[i].with_changes(**changes))


def set_radius(surfaces: Sequence[Surface], surface_id: str, radius: Optional[float]) -> LensSystem:
    """Set the radius; inf, None or ~0 makes the surface planar."""
    system = LensSystem.of(surfaces)
    i = system.index_of(surface_id)
    return system.replace(i, system[i].with_radius(radius))


def set_thickness(surfaces: Sequence[Surface], surface_id: str, thickness: float) -> LensSystem:
    return _update(surfaces, surface_id, thickness=thickness)


def set_refractive_index(surfaces: Sequence[Surface], surface_id: str, index: float) -> LensSystem:
    return _update(surfaces, surface_id, refractive_index=index)


def set_semi_diameter(surfaces: Sequence[Surface], surface_id: str, semi_diameter: float) -> LensSystem:
    return _update(surfaces, surface_id, semi_diameter=semi_diameter)


def set_material(surfaces: Sequence[Surface], surface_id: str, material: str,
                 refractive_index: Optional[float] = None) -> LensSystem:
    """
    Change the glass. Without an explicit index, a catalog glass brings its
    d-line index; an unknown name leaves the index as it was.
    """
    changes = {"material": material}
    if refractive_index is None:
        refractive_index = refractive_index_for(material)
    if refractive_index is not None:
        changes["refractive_index"] = refractive_index
    return _update(surfaces, surface_id, **changes)


def set_name(surfaces: Sequence[Surface], surface_id: str, name: str) -> LensSystem:
    return _update(surfaces, surface_id, name=name)


def set_comment(surfaces: Sequence[Surface], surface_id: str, comment: str) -> LensSystem:
    return _update(surfaces, surface_id, comment=comment)


def set_variable(surfaces: Sequence[Surface], surface_id: str, is_variable: bool) -> LensSystem:
    """Mark the radius as an optimizer variable (ignored for planar surfaces)."""
    return _update(surfaces, surface_id, is_variable=is_variable)
