"""Homography solver for device-to-screen calibration.

Four device/screen correspondences determine the projective transform

    x = (h1*X + h2*Y + h3) / (h7*X + h8*Y + h9)
    y = (h4*X + h5*Y + h6) / (h7*X + h8*Y + h9)

up to scale. The driver fixes ``h9`` to the fixed-point scale factor, which
leaves eight unknowns and an 8x8 linear system ``A.h = b``. The system is
solved directly by LU decomposition rather than by inverting ``A``.

See: http://www.csc.kth.se/~perrose/files/pose-init-model/node17_ct.html
"""

import logging
import warnings
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from scipy.linalg import LinAlgWarning, lu_factor, lu_solve

from .errors import DegenerateMatrix, SingularSystem
from .fixed_point import fits_int64, quantize, scale_factor

logger = logging.getLogger(__name__)

NUM_COEFFICIENTS = 9
NUM_UNKNOWNS = 8


@dataclass(frozen=True)
class Correspondence:
    """A device sample paired with the screen point the user aimed at."""

    dev_x: int
    dev_y: int
    scr_x: int
    scr_y: int

    @property
    def device(self) -> tuple[int, int]:
        return (self.dev_x, self.dev_y)

    @property
    def screen(self) -> tuple[int, int]:
        return (self.scr_x, self.scr_y)


@dataclass(frozen=True)
class HomographyMatrix:
    """Fixed-point homography coefficients ``h1..h9`` in row-major order."""

    coefficients: tuple[int, ...]

    def __post_init__(self):
        if len(self.coefficients) != NUM_COEFFICIENTS:
            raise ValueError(
                f"Homography needs {NUM_COEFFICIENTS} coefficients, "
                f"got {len(self.coefficients)}"
            )
        for i, value in enumerate(self.coefficients, start=1):
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"h{i} must be an integer, got {value!r}")
            if not fits_int64(value):
                raise ValueError(f"h{i}={value} does not fit in 64 bits")

    @classmethod
    def identity(cls, precision: int) -> "HomographyMatrix":
        scale = scale_factor(precision)
        return cls((scale, 0, 0, 0, scale, 0, 0, 0, scale))

    def __getitem__(self, index: int) -> int:
        return self.coefficients[index]

    def __iter__(self):
        return iter(self.coefficients)

    @property
    def scale(self) -> int:
        """The ``h9`` coefficient, i.e. the fixed-point scale factor."""
        return self.coefficients[8]

    def rows(self) -> list[tuple[int, int, int]]:
        c = self.coefficients
        return [(c[0], c[1], c[2]), (c[3], c[4], c[5]), (c[6], c[7], c[8])]

    def as_dict(self) -> dict[str, int]:
        """Coefficients keyed by their driver attribute names."""
        return {f"h{i}": value for i, value in enumerate(self.coefficients, start=1)}

    def format(self) -> str:
        return "\n".join(
            f"[{a:19d} ; {b:19d} ; {c:19d}]" for a, b, c in self.rows()
        )


def build_linear_system(
    correspondences: Sequence[Correspondence],
) -> tuple[np.ndarray, np.ndarray]:
    """Build ``A`` and ``b`` for the eight unknown coefficients.

    Each correspondence ``(X, Y) -> (x, y)`` contributes two rows:

        [X, Y, 1, 0, 0, 0, -X*x, -Y*x] = x
        [0, 0, 0, X, Y, 1, -X*y, -Y*y] = y
    """
    n = len(correspondences)
    A = np.zeros((2 * n, NUM_UNKNOWNS), dtype=np.float64)
    b = np.zeros(2 * n, dtype=np.float64)

    for k, c in enumerate(correspondences):
        X, Y = float(c.dev_x), float(c.dev_y)
        x, y = float(c.scr_x), float(c.scr_y)

        A[2 * k] = [X, Y, 1.0, 0.0, 0.0, 0.0, -X * x, -Y * x]
        A[2 * k + 1] = [0.0, 0.0, 0.0, X, Y, 1.0, -X * y, -Y * y]
        b[2 * k] = x
        b[2 * k + 1] = y

    return A, b


def solve_coefficients(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Solve ``A.h = b`` by LU decomposition with partial pivoting.

    Raises:
        SingularSystem: If a pivot is zero or negligible relative to ``A``
    """
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("error", LinAlgWarning)
            lu, piv = lu_factor(A)
    except (LinAlgWarning, ValueError, np.linalg.LinAlgError) as e:
        raise SingularSystem(f"LU decomposition failed: {e}") from e

    pivots = np.abs(np.diag(lu))
    tolerance = A.shape[0] * np.finfo(np.float64).eps * np.abs(A).max()
    if pivots.min() <= tolerance:
        index = int(np.argmin(pivots))
        raise SingularSystem(
            f"negligible pivot {pivots[index]:.3e} at column {index} "
            f"(tolerance {tolerance:.3e}); points are degenerate"
        )

    h = lu_solve((lu, piv), b)
    if not np.all(np.isfinite(h)):
        raise SingularSystem("solution contains non-finite coefficients")
    return h


def solve_homography(
    correspondences: Sequence[Correspondence], precision: int
) -> HomographyMatrix:
    """Compute the fixed-point homography mapping device to screen points.

    Args:
        correspondences: Exactly four device/screen correspondences
        precision: Coefficients are scaled by ``10**precision``

    Returns:
        Quantized matrix with ``h9 == 10**precision``

    Raises:
        SingularSystem: If the points do not determine a homography
        DegenerateMatrix: If a scaled coefficient overflows 64 bits
    """
    if len(correspondences) != 4:
        raise ValueError(
            f"Exactly 4 correspondences required, got {len(correspondences)}"
        )

    A, b = build_linear_system(correspondences)
    h = solve_coefficients(A, b)

    coefficients = []
    for i, value in enumerate(h, start=1):
        scaled = quantize(float(value), precision)
        if not fits_int64(scaled):
            raise DegenerateMatrix(
                f"h{i}={value!r} overflows 64 bits at precision {precision}"
            )
        coefficients.append(scaled)
    coefficients.append(scale_factor(precision))

    matrix = HomographyMatrix(tuple(coefficients))
    logger.debug(f"Computed H matrix:\n{matrix.format()}")
    return matrix
