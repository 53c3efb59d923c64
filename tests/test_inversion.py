"""Tests for the inversion gate."""

import numpy as np
import pytest

from py_microclimate.core.inversion import NO_INVERSION, calculate_inversion_layer


class TestInversionLayer:
    """Test inversion height and strength."""

    @pytest.fixture
    def valley(self):
        elevation = np.full((10, 10), 100.0)
        elevation[0, 0] = 300.0
        return elevation

    def test_none_by_day(self, valley):
        """Test that no inversion forms by day."""
        assert calculate_inversion_layer(valley, 12, 0.0) == NO_INVERSION

    def test_none_in_strong_wind(self, valley):
        """Test that strong wind mixes the inversion away."""
        assert calculate_inversion_layer(valley, 2, 20.0) == NO_INVERSION

    def test_none_under_cloud(self, valley):
        """Test that cloud cover prevents the inversion."""
        assert calculate_inversion_layer(valley, 2, 0.0, cloud_cover=0.8) == NO_INVERSION

    def test_calm_early_morning(self, valley):
        """Test a strong inversion in calm early-morning air."""
        layer = calculate_inversion_layer(valley, 2, 0.0)
        assert layer.height == pytest.approx(100 + 60 + 180 * 4 / 6)
        assert layer.strength == pytest.approx(4 / 6)

    def test_evening_ramp(self, valley):
        """Test the inversion building through the evening."""
        layer = calculate_inversion_layer(valley, 22, 0.0)
        assert layer.strength == pytest.approx(0.6)

    def test_low_relief_halves_strength(self):
        """Test the relief threshold and the weaker inversion over low relief."""
        flat = np.full((5, 5), 100.0)
        layer = calculate_inversion_layer(flat, 2, 0.0)
        assert layer.strength == 0.0

        gentle = flat.copy()
        gentle[0, 0] = 120.0
        layer = calculate_inversion_layer(gentle, 0, 0.0)
        assert layer.strength == pytest.approx(20 / 120 * 0.5)
