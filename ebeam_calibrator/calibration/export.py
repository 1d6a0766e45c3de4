"""Values handed to the driver and the window system.

The calibration core does not write driver attributes or window-system
properties itself. These helpers produce the exact payloads the collaborators
transfer: one decimal string per driver attribute, and the evdev axis
calibration plus coordinate transformation matrix for the window system.
"""

import logging
from typing import Any, Optional

from .errors import NoData
from .geometry import ScreenGeometry, coordinate_transform_matrix, identity_transform
from .persistence import CalibrationSnapshot

logger = logging.getLogger(__name__)

DRIVER_ZONE_FIELDS = ("min_x", "min_y", "max_x", "max_y")
CALIBRATED_FIELD = "calibrated"

AXIS_CALIBRATION_PROPERTY = "Evdev Axis Calibration"
TRANSFORM_MATRIX_PROPERTY = "Coordinate Transformation Matrix"


def driver_attributes(snapshot: Optional[CalibrationSnapshot]) -> dict[str, str]:
    """Driver attribute values for a calibration, in transfer order.

    The 13 calibration fields come first; the ``calibrated`` flag is last so
    the driver only switches to the new values once all of them are written.

    Raises:
        NoData: If there is no calibration to export
    """
    if snapshot is None or snapshot.matrix is None:
        raise NoData("no calibration data to export")

    zone = snapshot.zone
    attributes = {name: str(getattr(zone, name)) for name in DRIVER_ZONE_FIELDS}
    attributes.update(
        {name: str(value) for name, value in snapshot.matrix.as_dict().items()}
    )
    attributes[CALIBRATED_FIELD] = "1"
    return attributes


def reset_driver_attributes() -> dict[str, str]:
    """Attributes that put the driver back into uncalibrated mode."""
    return {CALIBRATED_FIELD: "0"}


def window_system_properties(
    snapshot: Optional[CalibrationSnapshot], screen: ScreenGeometry
) -> dict[str, Any]:
    """Window-system pointer properties matching a calibration.

    Raises:
        NoData: If there is no calibration to export
    """
    if snapshot is None:
        raise NoData("no calibration data to export")

    zone = snapshot.zone
    matrix = coordinate_transform_matrix(zone, screen)
    return {
        AXIS_CALIBRATION_PROPERTY: list(zone.axis_calibration()),
        TRANSFORM_MATRIX_PROPERTY: matrix.flatten().tolist(),
    }


def reset_window_system_properties() -> dict[str, Any]:
    """Properties that leave the pointer uncalibrated.

    An empty axis calibration resets evdev to its raw device range.
    """
    return {
        AXIS_CALIBRATION_PROPERTY: [],
        TRANSFORM_MATRIX_PROPERTY: identity_transform().flatten().tolist(),
    }
