"""Screen, active zone and target layout geometry.

This module handles the screen-side bookkeeping of a calibration run: the
screen extents reported by the window system, the active zone the device is
mapped onto, the four target points the user is asked to click and the
floating point transform the window system applies on top of the driver.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import NamedTuple

import numpy as np

logger = logging.getLogger(__name__)

# The zone is divided into a NUM_BLOCKS x NUM_BLOCKS grid; targets sit on the
# inner corners of the outermost cells.
DEFAULT_GRID_BLOCKS = 8


class Corner(IntEnum):
    """Target positions, in the order the user is asked to click them."""

    UPPER_LEFT = 0
    LOWER_LEFT = 1
    UPPER_RIGHT = 2
    LOWER_RIGHT = 3


NUM_POINTS = len(Corner)


class Point(NamedTuple):
    x: int
    y: int


@dataclass(frozen=True)
class ScreenGeometry:
    """Screen extents in pixels."""

    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Screen dimensions must be positive, got {self.width}x{self.height}"
            )

    def oriented(self, rotated: bool) -> "ScreenGeometry":
        """Return the geometry as seen by the pointer.

        A screen rotated by 90 or 270 degrees reports its mode size unrotated,
        so width and height have to be swapped.
        """
        if rotated:
            return ScreenGeometry(width=self.height, height=self.width)
        return self

    @classmethod
    def from_rotation(cls, width: int, height: int, degrees: int) -> "ScreenGeometry":
        """Build the geometry of a screen rotated by ``degrees``."""
        if degrees % 90 != 0:
            raise ValueError(f"Rotation must be a multiple of 90, got {degrees}")
        return cls(width, height).oriented(degrees % 180 == 90)


@dataclass(frozen=True)
class Zone:
    """Rectangular screen area the device is calibrated against.

    Bounds are inclusive pixel coordinates. ``zoned`` is False when the zone
    covers the whole screen.
    """

    min_x: int
    min_y: int
    max_x: int
    max_y: int
    zoned: bool = True

    def __post_init__(self):
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise ValueError(
                f"Invalid zone bounds ({self.min_x}, {self.min_y}) - "
                f"({self.max_x}, {self.max_y})"
            )

    @classmethod
    def full_screen(cls, screen: ScreenGeometry) -> "Zone":
        return cls(0, 0, screen.width - 1, screen.height - 1, zoned=False)

    @classmethod
    def from_bounds(
        cls,
        min_x: int,
        min_y: int,
        max_x: int,
        max_y: int,
        screen: ScreenGeometry,
    ) -> "Zone":
        """Build a zone from user supplied bounds.

        All-zero bounds are shorthand for the full screen.
        """
        if not (min_x or min_y or max_x or max_y):
            return cls.full_screen(screen)
        return cls(min_x, min_y, max_x, max_y, zoned=True).with_screen(screen)

    def with_screen(self, screen: ScreenGeometry) -> "Zone":
        """Return the same bounds with ``zoned`` re-derived for ``screen``."""
        covers = (
            self.min_x == 0
            and self.min_y == 0
            and self.max_x == screen.width - 1
            and self.max_y == screen.height - 1
        )
        return Zone(self.min_x, self.min_y, self.max_x, self.max_y, zoned=not covers)

    @property
    def width(self) -> int:
        """Horizontal extent in pixels."""
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        """Vertical extent in pixels."""
        return self.max_y - self.min_y + 1

    def axis_calibration(self) -> tuple[int, int, int, int]:
        """Bounds in evdev axis calibration order: min-x, max-x, min-y, max-y."""
        return (self.min_x, self.max_x, self.min_y, self.max_y)

    def describe(self) -> str:
        if not self.zoned:
            return "full screen"
        return f"{self.min_x} {self.min_y} {self.max_x} {self.max_y}"


def compute_targets(zone: Zone, blocks: int = DEFAULT_GRID_BLOCKS) -> list[Point]:
    """Compute the four calibration targets for a zone.

    Args:
        zone: Active zone
        blocks: Grid resolution; targets sit one cell in from each edge

    Returns:
        Target points ordered upper-left, lower-left, upper-right, lower-right
    """
    if blocks < 2:
        raise ValueError(f"Grid needs at least 2 blocks, got {blocks}")

    delta_x = zone.width // blocks
    delta_y = zone.height // blocks

    left = zone.min_x + delta_x
    right = zone.max_x - delta_x
    top = zone.min_y + delta_y
    bottom = zone.max_y - delta_y

    targets = [Point(0, 0)] * NUM_POINTS
    targets[Corner.UPPER_LEFT] = Point(left, top)
    targets[Corner.LOWER_LEFT] = Point(left, bottom)
    targets[Corner.UPPER_RIGHT] = Point(right, top)
    targets[Corner.LOWER_RIGHT] = Point(right, bottom)

    logger.debug(f"Targets for zone ({zone.describe()}): {targets}")
    return targets


def identity_transform() -> np.ndarray:
    """3x3 identity coordinate transformation matrix."""
    return np.eye(3, dtype=np.float32)


def coordinate_transform_matrix(zone: Zone, screen: ScreenGeometry) -> np.ndarray:
    """Compute the window-system coordinate transformation matrix.

    The driver reports positions inside the zone; the window system scales
    its input to the whole screen, so a restricted zone needs this matrix to
    shrink and offset the pointer back onto it.

    Args:
        zone: Active zone
        screen: Screen geometry

    Returns:
        3x3 float32 matrix, identity for a full screen zone
    """
    if not zone.zoned:
        return identity_transform()

    matrix = np.array(
        [
            [zone.width / screen.width, 0.0, zone.min_x / screen.width],
            [0.0, zone.height / screen.height, zone.min_y / screen.height],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float32,
    )

    logger.debug(f"Computed coordinate transformation matrix:\n{matrix}")
    return matrix
