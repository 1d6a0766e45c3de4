"""Calibration error taxonomy.

Every failure the calibration core can report derives from CalibrationError so
callers can catch the whole family at a single seam. The session turns these
into result values; the persistence helpers let them propagate to the caller.
"""

from typing import Optional


class CalibrationError(Exception):
    """Base class for calibration failures."""

    pass


class DuplicateClick(CalibrationError):
    """A click landed within the double-click threshold of an accepted one.

    Recoverable: the capture surface should prompt for the same target again.
    """

    def __init__(
        self,
        dev_x: int,
        dev_y: int,
        threshold: int,
        previous: Optional[tuple[int, int]] = None,
    ):
        self.dev_x = dev_x
        self.dev_y = dev_y
        self.threshold = threshold
        self.previous = previous
        super().__init__(
            f"click raw({dev_x}, {dev_y}) within {threshold} units of "
            f"previous click {previous}"
        )


class NotEnoughPoints(CalibrationError):
    """Solving was requested before all four correspondences were collected."""

    pass


class SingularSystem(CalibrationError):
    """The correspondences do not determine a homography (e.g. collinear points)."""

    pass


class DegenerateMatrix(CalibrationError):
    """The quantized matrix yields a zero homogeneous denominator."""

    pass


class ValidationMismatch(CalibrationError):
    """Replaying the quantized matrix does not reproduce a target point."""

    def __init__(
        self,
        index: int,
        device: tuple[int, int],
        replayed: tuple[int, int],
        expected: tuple[int, int],
    ):
        self.index = index
        self.device = device
        self.replayed = replayed
        self.expected = expected
        super().__init__(
            f"point {index + 1}: dev{device} => scr{replayed}, real{expected}"
        )


class NoData(CalibrationError):
    """There is no established calibration to save or export."""

    pass


class MalformedState(CalibrationError):
    """A persisted calibration state could not be parsed."""

    pass
