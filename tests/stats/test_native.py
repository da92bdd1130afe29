"""
Tests for the native statistics backend.
"""

import math

import numpy as np
import pytest

from src.core.errors import BackendComputationError
from src.stats import get_backend, list_backends
from src.stats.native import NativeStatistics


@pytest.fixture
def native():
    return NativeStatistics()


class TestCorrelation:
    """Tests for Pearson correlation."""

    def test_perfect_correlation(self, native):
        assert native.correlation([1, 2, 3, 4], [2, 4, 6, 8]) == pytest.approx(1.0)

    def test_inverse_correlation(self, native):
        assert native.correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)

    def test_constant_series_is_undefined(self, native):
        """Test a series without variance gives NaN like R's cor."""
        assert math.isnan(native.correlation([5, 5, 5], [1, 2, 3]))

    def test_length_mismatch(self, native):
        with pytest.raises(BackendComputationError, match="equal length"):
            native.correlation([1, 2, 3], [1, 2])

    def test_too_short(self, native):
        with pytest.raises(BackendComputationError):
            native.correlation([1], [2])


class TestWarpingDistance:
    """Tests for dynamic time warping distance."""

    def test_identical_series(self, native):
        assert native.warping_distance([1, 2, 3], [1, 2, 3]) == 0.0

    def test_diagonal_steps_weighted_twice(self, native):
        """Test the symmetric2 step pattern: 1 + 2 * 1 for the diagonal."""
        assert native.warping_distance([0, 0], [1, 1]) == pytest.approx(3.0)

    def test_unequal_lengths(self, native):
        assert native.warping_distance([0], [1, 2]) == pytest.approx(3.0)

    def test_warping_absorbs_time_shift(self, native):
        """Test a shifted copy is closer than its point-wise distance."""
        x = [0, 0, 1, 2, 1, 0, 0]
        y = [0, 1, 2, 1, 0, 0, 0]

        pointwise = 2 * float(np.abs(np.subtract(x, y)).sum())
        assert native.warping_distance(x, y) < pointwise

    def test_empty_series(self, native):
        with pytest.raises(BackendComputationError):
            native.warping_distance([], [1, 2])


class TestLevelShifts:
    """Tests for level shift detection."""

    def test_detects_step(self, native):
        """Test a clear step is reported at its 1-based start position."""
        rng = np.random.default_rng(0)
        series = np.r_[np.full(20, 5.0), np.full(20, 25.0)] + rng.normal(0, 0.5, 40)

        shifts = native.detect_level_shifts(series)

        assert 21 in shifts
        assert all(1 <= p <= 40 for p in shifts)
        assert shifts == sorted(shifts)

    def test_constant_series_has_no_shift(self, native):
        assert native.detect_level_shifts([3.0] * 12) == []

    def test_series_too_short(self, native):
        with pytest.raises(BackendComputationError, match="Insufficient data points"):
            native.detect_level_shifts([1, 2, 3])

    def test_non_finite_values(self, native):
        with pytest.raises(BackendComputationError, match="non-finite"):
            native.detect_level_shifts([1.0] * 9 + [float("nan")])

    def test_critical_value_grows_with_length(self, native):
        assert native._critical_value(30) == 3.0
        assert native._critical_value(250) == pytest.approx(3.5)
        assert native._critical_value(500) == 4.0


class TestBackendRegistry:
    """Tests for the backend factory."""

    def test_native_backend(self):
        backend = get_backend("native", {"min_points": 10})

        assert isinstance(backend, NativeStatistics)
        assert backend.name == "native"
        assert backend.config.min_points == 10

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown backend 'matlab'"):
            get_backend("matlab")

    def test_list_backends(self):
        assert list_backends() == ["native", "rserve"]
