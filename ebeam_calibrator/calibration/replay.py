"""Replay validation of a quantized homography.

Keep in sync with the ebeam.c kernel driver, which computes::

    s64 scale;
    scale = h7 * X + h8 * Y + h9;
    x = (int) ((((h1 * X + h2 * Y + h3) << 1) + scale) / (scale << 1));
    y = (int) ((((h4 * X + h5 * Y + h6) << 1) + scale) / (scale << 1));

A matrix is only accepted when this exact integer arithmetic maps every
collected device sample back onto its target pixel.
"""

import logging
from collections.abc import Sequence

from .errors import DegenerateMatrix, ValidationMismatch
from .fixed_point import dot_int64, driver_round_div, wrap_int32
from .geometry import Point
from .homography import Correspondence, HomographyMatrix

logger = logging.getLogger(__name__)


def project_point(matrix: HomographyMatrix, dev_x: int, dev_y: int) -> Point:
    """Map a raw device sample to screen coordinates like the driver does.

    Raises:
        DegenerateMatrix: If the homogeneous denominator is zero
    """
    rows = matrix.rows()
    scale = dot_int64(rows[2], dev_x, dev_y)
    if scale == 0:
        raise DegenerateMatrix(
            f"division by zero for device point ({dev_x}, {dev_y})"
        )

    try:
        x = driver_round_div(dot_int64(rows[0], dev_x, dev_y), scale)
        y = driver_round_div(dot_int64(rows[1], dev_x, dev_y), scale)
    except ZeroDivisionError as e:
        # scale << 1 wrapped to zero in 64 bits
        raise DegenerateMatrix(
            f"doubled denominator overflows for device point ({dev_x}, {dev_y})"
        ) from e

    return Point(wrap_int32(x), wrap_int32(y))


def validate_homography(
    matrix: HomographyMatrix, correspondences: Sequence[Correspondence]
) -> list[Point]:
    """Check that the matrix reproduces every correspondence exactly.

    Args:
        matrix: Quantized homography
        correspondences: Collected device/screen pairs

    Returns:
        Replayed screen points, one per correspondence

    Raises:
        DegenerateMatrix: If a denominator is zero
        ValidationMismatch: If any point is not reproduced exactly
    """
    replayed = []
    for index, c in enumerate(correspondences):
        point = project_point(matrix, c.dev_x, c.dev_y)
        if point != c.screen:
            logger.error(
                f"Bad H matrix: point {index + 1}: dev({c.dev_x} ; {c.dev_y}) => "
                f"scr({point.x} ; {point.y}), real({c.scr_x} ; {c.scr_y})"
            )
            raise ValidationMismatch(
                index, c.device, (point.x, point.y), c.screen
            )
        replayed.append(point)

    logger.debug(f"H matrix reproduces all {len(replayed)} points")
    return replayed
