"""Calibration session coordinating point collection, solving and validation.

A session is owned by exactly one calibration run. The capture surface feeds
it one click at a time; once four clicks are collected the session solves the
homography, quantizes it and replays it through the driver arithmetic. Only
a matrix that reproduces every target pixel becomes the session's calibration.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from .. import __version__
from .errors import CalibrationError, DuplicateClick, NoData, NotEnoughPoints
from .fixed_point import DEFAULT_PRECISION
from .geometry import (
    DEFAULT_GRID_BLOCKS,
    NUM_POINTS,
    Point,
    ScreenGeometry,
    Zone,
    compute_targets,
)
from .homography import Correspondence, HomographyMatrix, solve_homography
from .persistence import CalibrationSnapshot
from .replay import validate_homography

logger = logging.getLogger(__name__)

# eBeam devices return unstable values, so nearby samples are treated as
# the same click.
DEFAULT_THRESHOLD = 16


class SessionState(Enum):
    """Calibration session states."""

    COLLECTING = "collecting"
    SOLVING = "solving"
    VALIDATED = "validated"
    REJECTED = "rejected"


class ClickOutcome(Enum):
    """What happened to a click handed to the session."""

    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    COMPLETE = "complete"


@dataclass
class DeviceInfo:
    """Identity of the device being calibrated, for reporting only."""

    device_id: Optional[int] = None
    name: str = "eBeam device"

    def __str__(self) -> str:
        if self.device_id is None:
            return f"'{self.name}'"
        return f"'{self.name}' id={self.device_id}"


@dataclass
class CalibrationResult:
    """Outcome of solving and validating a set of correspondences."""

    success: bool
    matrix: Optional[HomographyMatrix] = None
    error: Optional[CalibrationError] = None
    replayed: list[Point] = field(default_factory=list)

    @property
    def reason(self) -> str:
        if self.error is None:
            return ""
        return f"{type(self.error).__name__}: {self.error}"


@dataclass
class SessionStatus:
    """Snapshot of the session for status listeners."""

    state: SessionState
    count: int
    message: str


class CalibrationSession:
    """Collects four clicks and turns them into a validated calibration.

    State machine::

        COLLECTING(0..3) --add_click--> COLLECTING(4) --finish--> SOLVING
        SOLVING --> VALIDATED | REJECTED
        any state --reset / set_zone / update_screen--> COLLECTING(0)
    """

    def __init__(
        self,
        screen: ScreenGeometry,
        zone: Optional[Zone] = None,
        precision: int = DEFAULT_PRECISION,
        threshold: int = DEFAULT_THRESHOLD,
        grid_blocks: int = DEFAULT_GRID_BLOCKS,
        device: Optional[DeviceInfo] = None,
    ):
        """Initialize a calibration session.

        Args:
            screen: Screen geometry in pixels
            zone: Active zone; full screen if omitted
            precision: Coefficients are scaled by 10**precision
            threshold: Double-click threshold in device units, 0 disables it
            grid_blocks: Grid resolution used to place the targets
            device: Identity of the calibrated device
        """
        if precision < 0:
            raise ValueError(f"precision must be non-negative, got {precision}")
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")

        self.precision = precision
        self.threshold = threshold
        self.grid_blocks = grid_blocks
        self.device = device or DeviceInfo()

        self._screen = screen
        self._zone = zone.with_screen(screen) if zone else Zone.full_screen(screen)
        self._targets = compute_targets(self._zone, grid_blocks)
        self._correspondences: list[Correspondence] = []
        self._state = SessionState.COLLECTING
        self._result: Optional[CalibrationResult] = None
        self.last_duplicate: Optional[DuplicateClick] = None

        self.status_callbacks: list[Callable[[SessionStatus], None]] = []

        logger.info(
            f"Calibrating {self.device} on {screen.width}x{screen.height} screen, "
            f"active zone: {self._zone.describe()}"
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def count(self) -> int:
        """Number of accepted clicks."""
        return len(self._correspondences)

    @property
    def correspondences(self) -> tuple[Correspondence, ...]:
        return tuple(self._correspondences)

    @property
    def screen(self) -> ScreenGeometry:
        return self._screen

    @property
    def zone(self) -> Zone:
        return self._zone

    @property
    def targets(self) -> list[Point]:
        return list(self._targets)

    @property
    def next_target(self) -> Optional[Point]:
        """Screen point the next click is expected on, if still collecting."""
        if self._state != SessionState.COLLECTING or self.count >= NUM_POINTS:
            return None
        return self._targets[self.count]

    @property
    def result(self) -> Optional[CalibrationResult]:
        return self._result

    @property
    def matrix(self) -> Optional[HomographyMatrix]:
        """The validated matrix, or None until the session succeeds."""
        if self._state == SessionState.VALIDATED and self._result is not None:
            return self._result.matrix
        return None

    # ------------------------------------------------------------------
    # Status listeners
    # ------------------------------------------------------------------

    def add_status_callback(self, callback: Callable[[SessionStatus], None]) -> None:
        self.status_callbacks.append(callback)

    def remove_status_callback(
        self, callback: Callable[[SessionStatus], None]
    ) -> None:
        if callback in self.status_callbacks:
            self.status_callbacks.remove(callback)

    def _set_state(self, state: SessionState, message: str) -> None:
        self._state = state
        status = SessionStatus(state=state, count=self.count, message=message)
        for callback in self.status_callbacks:
            callback(status)
        logger.debug(f"Session status: {state.value} ({self.count}) - {message}")

    # ------------------------------------------------------------------
    # Point collection
    # ------------------------------------------------------------------

    def add_click(
        self,
        dev_x: int,
        dev_y: int,
        scr_x: Optional[int] = None,
        scr_y: Optional[int] = None,
    ) -> ClickOutcome:
        """Register a click.

        Args:
            dev_x: Raw device X
            dev_y: Raw device Y
            scr_x: Screen X; defaults to the next target
            scr_y: Screen Y; defaults to the next target

        Returns:
            DUPLICATE if the click was rejected by the double-click filter,
            COMPLETE if it was the last click (see ``result``), else ACCEPTED

        Raises:
            RuntimeError: If the session is not collecting clicks
        """
        if self._state != SessionState.COLLECTING:
            raise RuntimeError(
                f"Cannot add clicks while session is {self._state.value}"
            )

        if (scr_x is None) != (scr_y is None):
            raise ValueError("scr_x and scr_y must be given together")
        if scr_x is None:
            scr_x, scr_y = self._targets[self.count]

        duplicate = self._find_duplicate(dev_x, dev_y)
        if duplicate is not None:
            self.last_duplicate = DuplicateClick(
                dev_x, dev_y, self.threshold, duplicate.device
            )
            logger.warning(
                f"Not adding click {self.count + 1} raw({dev_x}, {dev_y}): "
                f"within {self.threshold} units of previous click"
            )
            return ClickOutcome.DUPLICATE

        self._correspondences.append(Correspondence(dev_x, dev_y, scr_x, scr_y))
        logger.debug(
            f"Adding click {self.count}: raw({dev_x}, {dev_y}) <=> "
            f"screen({scr_x}, {scr_y})"
        )

        if self.count < NUM_POINTS:
            self._set_state(
                SessionState.COLLECTING, f"Click {self.count}/{NUM_POINTS} accepted"
            )
            return ClickOutcome.ACCEPTED

        self.finish()
        return ClickOutcome.COMPLETE

    def _find_duplicate(self, dev_x: int, dev_y: int) -> Optional[Correspondence]:
        if self.threshold <= 0:
            return None
        for previous in reversed(self._correspondences):
            if (
                abs(dev_x - previous.dev_x) <= self.threshold
                and abs(dev_y - previous.dev_y) <= self.threshold
            ):
                return previous
        return None

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    def finish(self) -> CalibrationResult:
        """Solve, quantize and validate the collected correspondences.

        Returns:
            The calibration result; failures are reported, never raised
        """
        if self.count != NUM_POINTS:
            logger.error(f"Not enough points: {self.count}/{NUM_POINTS}")
            return CalibrationResult(
                success=False,
                error=NotEnoughPoints(
                    f"{NUM_POINTS} clicks required, {self.count} collected"
                ),
            )

        if self._state != SessionState.COLLECTING:
            raise RuntimeError(f"Session already {self._state.value}")

        self._set_state(SessionState.SOLVING, "Computing H matrix")

        try:
            matrix = solve_homography(self._correspondences, self.precision)
            replayed = validate_homography(matrix, self._correspondences)
        except CalibrationError as e:
            logger.error(f"Calibration failed: {type(e).__name__}: {e}")
            self._result = CalibrationResult(success=False, error=e)
            self._set_state(SessionState.REJECTED, "Calibration failed.")
            return self._result

        self._result = CalibrationResult(success=True, matrix=matrix, replayed=replayed)
        logger.info(f"Calibration of {self.device} complete")
        self._set_state(SessionState.VALIDATED, "Calibration complete.")
        return self._result

    # ------------------------------------------------------------------
    # Reset and geometry changes
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Discard collected clicks and any result and start collecting again."""
        self._correspondences.clear()
        self._result = None
        self.last_duplicate = None
        self._set_state(SessionState.COLLECTING, "Ready for calibration")

    def set_zone(self, zone: Zone) -> None:
        """Change the active zone; collected clicks no longer apply."""
        self._zone = zone.with_screen(self._screen)
        self._targets = compute_targets(self._zone, self.grid_blocks)
        logger.info(f"Active zone changed to {self._zone.describe()}")
        self.reset()

    def update_screen(self, screen: ScreenGeometry) -> bool:
        """Handle a reported screen geometry.

        Returns:
            True if the geometry changed and the session was reset
        """
        if screen == self._screen:
            return False

        logger.info(
            f"Screen geometry changed from {self._screen.width}x{self._screen.height} "
            f"to {screen.width}x{screen.height}"
        )
        self._screen = screen
        if self._zone.zoned:
            self.set_zone(self._zone)
        else:
            self.set_zone(Zone.full_screen(screen))
        return True

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def snapshot(self, version_tag: str = __version__) -> CalibrationSnapshot:
        """Return the validated calibration as a persistable snapshot.

        Raises:
            NoData: If the session has not produced a validated matrix
        """
        matrix = self.matrix
        if matrix is None:
            raise NoData(f"no validated calibration (session {self._state.value})")
        return CalibrationSnapshot(version_tag=version_tag, zone=self._zone, matrix=matrix)
