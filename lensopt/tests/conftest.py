"""Shared fixtures for lensopt tests."""

import pytest

from lensopt.editor import set_variable
from lensopt.models import LensSystem, Surface
from lensopt.presets import default_lens


@pytest.fixture
def default_system():
    """Five-surface crown/flint doublet with image plane."""
    return default_lens()


@pytest.fixture
def singlet_system():
    """R=40 mm convex front, 8 mm of n=1.5168 glass, then a flat image plane."""
    return LensSystem([
        Surface.from_radius(40.0, thickness=8.0, refractive_index=1.5168,
                            semi_diameter=25.0, id="front", name="Front", material="BK7"),
        Surface.from_radius(None, thickness=0.0, refractive_index=1.0,
                            semi_diameter=20.0, id="image", name="Image Plane", material="AIR"),
    ])


@pytest.fixture
def long_singlet_system():
    """Same R=40 mm front, image plane 50 mm past the 8 mm element (vertex at z=58)."""
    return LensSystem([
        Surface.from_radius(40.0, thickness=8.0 + 50.0, refractive_index=1.5168,
                            semi_diameter=25.0, id="front", name="Front", material="BK7"),
        Surface.from_radius(None, thickness=0.0, refractive_index=1.0,
                            semi_diameter=20.0, id="image", name="Image Plane", material="AIR"),
    ])


@pytest.fixture
def variable_system(default_system):
    """Default doublet with the two front radii free."""
    system = set_variable(default_system, "s1", True)
    return set_variable(system, "s3", True)
