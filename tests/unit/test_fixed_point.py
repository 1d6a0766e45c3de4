"""Unit tests for the driver fixed-point arithmetic."""

import math

import pytest

from ebeam_calibrator.calibration.fixed_point import (
    INT32_MIN,
    INT64_MAX,
    INT64_MIN,
    dot_int64,
    driver_round_div,
    fits_int64,
    quantize,
    scale_factor,
    trunc_div,
    wrap_int32,
    wrap_int64,
)


@pytest.mark.unit()
class TestQuantize:
    """Test coefficient scaling and rounding."""

    def test_scale_factor(self):
        assert scale_factor(0) == 1
        assert scale_factor(12) == 1_000_000_000_000

        with pytest.raises(ValueError):
            scale_factor(-1)

    def test_rounds_half_away_from_zero(self):
        assert quantize(0.5, 0) == 1
        assert quantize(-0.5, 0) == -1
        assert quantize(1.25, 1) == 13
        assert quantize(-1.25, 1) == -13
        assert quantize(0.4, 0) == 0
        assert quantize(-0.4, 0) == 0

    def test_scales_by_precision(self):
        assert quantize(0.8, 12) == 800_000_000_000
        assert quantize(-25.0, 12) == -25_000_000_000_000
        assert quantize(0.0, 12) == 0

    def test_result_is_python_int(self):
        assert type(quantize(1.5, 3)) is int

    def test_rejects_non_finite(self):
        with pytest.raises(ValueError):
            quantize(math.nan, 12)
        with pytest.raises(ValueError):
            quantize(math.inf, 12)

    def test_rejects_negative_precision(self):
        with pytest.raises(ValueError):
            quantize(1.0, -1)


@pytest.mark.unit()
class TestIntegerEmulation:
    """Test 64/32-bit wrapping and C division."""

    def test_fits_int64(self):
        assert fits_int64(INT64_MAX)
        assert fits_int64(INT64_MIN)
        assert not fits_int64(INT64_MAX + 1)
        assert not fits_int64(INT64_MIN - 1)

    def test_wrap_int64(self):
        assert wrap_int64(5) == 5
        assert wrap_int64(-5) == -5
        assert wrap_int64(INT64_MAX + 1) == INT64_MIN
        assert wrap_int64(INT64_MIN - 1) == INT64_MAX
        assert wrap_int64(2**64 + 7) == 7

    def test_wrap_int32(self):
        assert wrap_int32(-1) == -1
        assert wrap_int32(2**31) == INT32_MIN
        assert wrap_int32(2**32 + 3) == 3

    def test_trunc_div_truncates_toward_zero(self):
        assert trunc_div(7, 2) == 3
        assert trunc_div(-7, 2) == -3
        assert trunc_div(7, -2) == -3
        assert trunc_div(-7, -2) == 3

        with pytest.raises(ZeroDivisionError):
            trunc_div(1, 0)

    def test_dot_int64_wraps_each_step(self):
        assert dot_int64((2, 3, 4), 10, 100) == 324
        assert dot_int64((INT64_MAX, 0, 1), 1, 0) == INT64_MIN


@pytest.mark.unit()
class TestDriverRoundDiv:
    """Test the driver's rounded division."""

    def test_positive_rounds_half_up(self):
        assert driver_round_div(3, 2) == 2
        assert driver_round_div(7, 4) == 2
        assert driver_round_div(5, 4) == 1
        assert driver_round_div(128_000_000_000_000, 1_000_000_000_000) == 128

    def test_negative_quotients_are_asymmetric(self):
        # -1.75 truncates to -1 instead of rounding to -2
        assert driver_round_div(-7, 4) == -1
        assert driver_round_div(-1, 2) == 0
        assert driver_round_div(-5, 2) == -2

    def test_negative_denominator(self):
        # Both operands negative behaves like the positive case
        assert driver_round_div(-7, -4) == 2

    def test_zero_denominator(self):
        with pytest.raises(ZeroDivisionError):
            driver_round_div(1, 0)
