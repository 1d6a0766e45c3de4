"""Device calibration module.

This module provides the calibration core for eBeam devices: fixed-point
homography solving, driver-exact replay validation, session state and
calibration persistence.
"""

from .errors import (
    CalibrationError,
    DegenerateMatrix,
    DuplicateClick,
    MalformedState,
    NoData,
    NotEnoughPoints,
    SingularSystem,
    ValidationMismatch,
)
from .export import (
    driver_attributes,
    reset_driver_attributes,
    reset_window_system_properties,
    window_system_properties,
)
from .fixed_point import DEFAULT_PRECISION, quantize
from .geometry import (
    DEFAULT_GRID_BLOCKS,
    Corner,
    Point,
    ScreenGeometry,
    Zone,
    compute_targets,
    coordinate_transform_matrix,
)
from .homography import Correspondence, HomographyMatrix, solve_homography
from .persistence import (
    CalibrationPersistence,
    CalibrationSnapshot,
    decode_snapshot,
    encode_snapshot,
    load_state,
    save_state,
)
from .replay import project_point, validate_homography
from .session import (
    DEFAULT_THRESHOLD,
    CalibrationResult,
    CalibrationSession,
    ClickOutcome,
    DeviceInfo,
    SessionState,
    SessionStatus,
)

__all__ = [
    # Errors
    "CalibrationError",
    "DuplicateClick",
    "NotEnoughPoints",
    "SingularSystem",
    "DegenerateMatrix",
    "ValidationMismatch",
    "NoData",
    "MalformedState",
    # Math
    "DEFAULT_PRECISION",
    "quantize",
    "Correspondence",
    "HomographyMatrix",
    "solve_homography",
    "project_point",
    "validate_homography",
    # Geometry
    "DEFAULT_GRID_BLOCKS",
    "Corner",
    "Point",
    "ScreenGeometry",
    "Zone",
    "compute_targets",
    "coordinate_transform_matrix",
    # Session
    "DEFAULT_THRESHOLD",
    "CalibrationSession",
    "CalibrationResult",
    "ClickOutcome",
    "DeviceInfo",
    "SessionState",
    "SessionStatus",
    # Persistence and export
    "CalibrationPersistence",
    "CalibrationSnapshot",
    "encode_snapshot",
    "decode_snapshot",
    "load_state",
    "save_state",
    "driver_attributes",
    "reset_driver_attributes",
    "window_system_properties",
    "reset_window_system_properties",
]
