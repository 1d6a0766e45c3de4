"""Fixed-point arithmetic shared by the solver and the replay validator.

The eBeam kernel driver only does integer math: homography coefficients are
stored as ``long long`` values scaled by ``10**precision`` and every screen
coordinate is derived with signed 64-bit products and C division, which
truncates toward zero. Python integers are unbounded and ``//`` floors, so the
helpers below pin down the driver semantics explicitly instead of relying on
the language operators.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)

# Default number of decimal digits kept in the scaled coefficients.
# Below 10^9 replayed screen values may be inaccurate; above 10^14 the
# driver's coefficient * raw_sample products may overflow 64 bits.
DEFAULT_PRECISION = 12
MIN_SAFE_PRECISION = 9
MAX_SAFE_PRECISION = 14

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def scale_factor(precision: int) -> int:
    """Return ``10**precision`` as an exact integer."""
    if precision < 0:
        raise ValueError(f"precision must be non-negative, got {precision}")
    return 10**precision


def quantize(value: float, precision: int) -> int:
    """Scale a real coefficient by ``10**precision`` and round it to an integer.

    Rounds half away from zero: ``floor(v * 10^P + 0.5)`` for ``v >= 0`` and
    ``ceil(v * 10^P - 0.5)`` otherwise. The product is formed in extended
    precision, as the driver tooling always did.

    Args:
        value: Real-valued coefficient
        precision: Power of ten applied before rounding

    Returns:
        Rounded scaled coefficient

    Raises:
        ValueError: If the value is not finite or the precision is negative
    """
    if precision < 0:
        raise ValueError(f"precision must be non-negative, got {precision}")
    if not np.isfinite(value):
        raise ValueError(f"cannot quantize non-finite value {value!r}")

    scaled = np.longdouble(value) * np.longdouble(10) ** precision
    half = np.longdouble(0.5)
    if value >= 0:
        return int(np.floor(scaled + half))
    return int(np.ceil(scaled - half))


def fits_int64(n: int) -> bool:
    return INT64_MIN <= n <= INT64_MAX


def wrap_int64(n: int) -> int:
    """Wrap an unbounded integer to signed 64 bits (two's complement)."""
    return ((n - INT64_MIN) % 2**64) + INT64_MIN


def wrap_int32(n: int) -> int:
    """Wrap an unbounded integer to signed 32 bits, like a C ``(int)`` cast."""
    return ((n - INT32_MIN) % 2**32) + INT32_MIN


def trunc_div(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero (C semantics).

    Raises:
        ZeroDivisionError: If ``denominator`` is zero
    """
    if denominator == 0:
        raise ZeroDivisionError("integer division by zero")
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def dot_int64(coefficients: tuple[int, int, int], x: int, y: int) -> int:
    """Evaluate ``a*x + b*y + c`` with every step wrapped to 64 bits."""
    a, b, c = coefficients
    total = wrap_int64(a * x)
    total = wrap_int64(total + wrap_int64(b * y))
    return wrap_int64(total + c)


def driver_round_div(numerator: int, denominator: int) -> int:
    """Round ``numerator / denominator`` the way the driver does.

    The driver cannot write ``(int)(v1 / v2 + 0.5)`` in integer math, so it
    evaluates ``((v1 << 1) + v2) / (v2 << 1)`` with s64 operands and
    truncating division. Positive quotients round half up; negative ones do
    not round symmetrically, and that asymmetry is part of the contract.

    Raises:
        ZeroDivisionError: If the doubled denominator is zero
    """
    doubled_num = wrap_int64(numerator << 1)
    doubled_den = wrap_int64(denominator << 1)
    return trunc_div(wrap_int64(doubled_num + denominator), doubled_den)
