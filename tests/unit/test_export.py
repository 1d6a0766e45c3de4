"""Unit tests for driver and window-system payloads."""

import pytest

from ebeam_calibrator.calibration.errors import NoData
from ebeam_calibrator.calibration.export import (
    AXIS_CALIBRATION_PROPERTY,
    DRIVER_ZONE_FIELDS,
    TRANSFORM_MATRIX_PROPERTY,
    driver_attributes,
    reset_driver_attributes,
    reset_window_system_properties,
    window_system_properties,
)
from ebeam_calibrator.calibration.geometry import ScreenGeometry
from ebeam_calibrator.calibration.homography import HomographyMatrix
from ebeam_calibrator.calibration.persistence import CalibrationSnapshot

IDENTITY = [1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0]


@pytest.fixture()
def zone_snapshot(zone):
    return CalibrationSnapshot("1.0.0", zone, HomographyMatrix.identity(12))


@pytest.mark.unit()
class TestDriverAttributes:
    """Test driver attribute export."""

    def test_transfer_order(self, zone_snapshot):
        attributes = driver_attributes(zone_snapshot)

        assert list(attributes) == [
            "min_x",
            "min_y",
            "max_x",
            "max_y",
            *[f"h{i}" for i in range(1, 10)],
            "calibrated",
        ]

    def test_zone_fields_follow_driver_names(self, zone_snapshot):
        attributes = driver_attributes(zone_snapshot)

        assert tuple(attributes)[:4] == DRIVER_ZONE_FIELDS
        assert [attributes[name] for name in DRIVER_ZONE_FIELDS] == [
            "100",
            "100",
            "899",
            "899",
        ]

    def test_values_are_decimal_strings(self, zone_snapshot):
        attributes = driver_attributes(zone_snapshot)

        assert attributes["min_x"] == "100"
        assert attributes["max_y"] == "899"
        assert attributes["h1"] == "1000000000000"
        assert attributes["h2"] == "0"
        assert attributes["calibrated"] == "1"

    def test_no_data(self):
        with pytest.raises(NoData):
            driver_attributes(None)

    def test_reset(self):
        assert reset_driver_attributes() == {"calibrated": "0"}


@pytest.mark.unit()
class TestWindowSystemProperties:
    """Test window-system property export."""

    def test_zone_properties(self, zone_snapshot):
        properties = window_system_properties(
            zone_snapshot, ScreenGeometry(1000, 1000)
        )

        assert properties[AXIS_CALIBRATION_PROPERTY] == [100, 899, 100, 899]
        assert properties[TRANSFORM_MATRIX_PROPERTY] == pytest.approx(
            [0.8, 0.0, 0.1, 0.0, 0.8, 0.1, 0.0, 0.0, 1.0], rel=1e-6
        )

    def test_full_screen_properties(self, calibrated_session, screen):
        properties = window_system_properties(calibrated_session.snapshot(), screen)

        assert properties[AXIS_CALIBRATION_PROPERTY] == [0, 1023, 0, 767]
        assert properties[TRANSFORM_MATRIX_PROPERTY] == IDENTITY

    def test_no_data(self, screen):
        with pytest.raises(NoData):
            window_system_properties(None, screen)

    def test_reset(self):
        properties = reset_window_system_properties()

        assert properties[AXIS_CALIBRATION_PROPERTY] == []
        assert properties[TRANSFORM_MATRIX_PROPERTY] == IDENTITY
