"""Tests for the merit score."""

import logging

import pytest

from lensopt.merit import calculate_merit
from lensopt.raytracer import calculate_mtf

logger = logging.getLogger(__name__)


class TestCalculateMerit:
    """Tests for calculate_merit."""

    def test_idempotent(self, default_system):
        first = calculate_merit(default_system, 30.0)
        second = calculate_merit(default_system, 30.0)
        assert first == second
        logger.info("Default doublet merit@30: %.6f", first)

    def test_in_unit_interval(self, default_system):
        score = calculate_merit(default_system, 30.0)
        assert 0.0 <= score <= 1.0

    def test_mean_over_merit_fields(self, default_system):
        expected = 0.0
        for angle in (0.0, 7.0, 14.0):
            p = calculate_mtf(default_system, angle, 25.0)[-1]
            expected += (p.tangential + p.sagittal) / 2.0
        expected /= 3.0
        assert calculate_merit(default_system, 25.0) == pytest.approx(expected)

    def test_custom_fields(self, default_system):
        p = calculate_mtf(default_system, 0.0, 20.0)[-1]
        score = calculate_merit(default_system, 20.0, field_angles=[0.0])
        assert score == pytest.approx((p.tangential + p.sagittal) / 2.0)

    def test_accepts_plain_list(self, default_system):
        assert calculate_merit(list(default_system), 30.0) == calculate_merit(default_system, 30.0)

    def test_no_fields_rejected(self, default_system):
        with pytest.raises(ValueError):
            calculate_merit(default_system, 30.0, field_angles=[])

    def test_invalid_frequency_rejected(self, default_system):
        with pytest.raises(ValueError):
            calculate_merit(default_system, 0.0)
