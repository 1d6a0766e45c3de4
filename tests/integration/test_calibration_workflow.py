"""Integration tests for a complete calibration run."""

import pytest

from ebeam_calibrator.calibration import (
    CalibrationSession,
    ClickOutcome,
    ScreenGeometry,
    SessionState,
    Zone,
    driver_attributes,
    load_state,
    project_point,
    save_state,
    window_system_properties,
)
from ebeam_calibrator.config import ConfigLoader, EnvironmentLoader


@pytest.mark.integration()
class TestCalibrationWorkflow:
    """Run sessions end to end: collect, solve, persist, restore, export."""

    def test_calibrate_save_restore(self, temp_dir, screen, affine_clicks):
        session = CalibrationSession(screen)
        for dev_x, dev_y in affine_clicks:
            session.add_click(dev_x, dev_y)
        assert session.state == SessionState.VALIDATED

        path = save_state(temp_dir / "ebeam.calib", session.snapshot())
        restored = load_state(path, screen)

        assert restored == session.snapshot()
        assert driver_attributes(restored) == driver_attributes(session.snapshot())

        # Restored matrix still maps the device like the driver would
        for (dev_x, dev_y), target in zip(affine_clicks, session.targets):
            assert project_point(restored.matrix, dev_x, dev_y) == target

    def test_perspective_calibration(self, screen):
        # Trapezoid seen by a device mounted off-axis
        clicks = [(100, 100), (50, 900), (900, 100), (950, 900)]
        session = CalibrationSession(screen)
        for dev_x, dev_y in clicks:
            session.add_click(dev_x, dev_y)

        assert session.state == SessionState.VALIDATED
        matrix = session.matrix
        assert matrix[6] != 0 or matrix[7] != 0
        assert session.result.replayed == session.targets

    @pytest.mark.parametrize("precision", [9, 10, 12, 14])
    def test_safe_precisions(self, screen, affine_clicks, precision):
        session = CalibrationSession(screen, precision=precision)
        for dev_x, dev_y in affine_clicks:
            session.add_click(dev_x, dev_y)

        assert session.state == SessionState.VALIDATED
        assert session.matrix.scale == 10**precision

    def test_zone_calibration_exports_transform(self, temp_dir):
        screen = ScreenGeometry(1000, 1000)
        session = CalibrationSession(screen, zone=Zone(100, 100, 899, 899))
        assert session.targets[0] == (200, 200)

        # device = 3 * screen
        for target in session.targets:
            session.add_click(target.x * 3, target.y * 3)
        snapshot = session.snapshot()

        restored = load_state(save_state(temp_dir / "zone.calib", snapshot), screen)
        properties = window_system_properties(restored, screen)

        assert restored.zone.zoned is True
        assert properties["Evdev Axis Calibration"] == [100, 899, 100, 899]
        assert properties["Coordinate Transformation Matrix"][0] == pytest.approx(0.8)

    def test_retry_after_rejection(self, screen, collinear_clicks, affine_clicks):
        session = CalibrationSession(screen)
        for dev_x, dev_y in collinear_clicks:
            session.add_click(dev_x, dev_y)
        assert session.state == SessionState.REJECTED

        session.reset()
        outcomes = [session.add_click(x, y) for x, y in affine_clicks]

        assert outcomes[-1] == ClickOutcome.COMPLETE
        assert session.state == SessionState.VALIDATED

    def test_session_from_configuration(self, temp_dir, affine_clicks):
        config_file = temp_dir / "ebeam.yaml"
        config_file.write_text(
            "precision: 10\nthreshold: 8\nscreen:\n  width: 1024\n  height: 768\n"
        )
        config = ConfigLoader(env_loader=EnvironmentLoader(environ={})).load(
            config_file
        )

        screen = config.screen_geometry()
        session = CalibrationSession(
            screen,
            zone=config.active_zone(screen),
            precision=config.precision,
            threshold=config.threshold,
            grid_blocks=config.grid_blocks,
        )
        for dev_x, dev_y in affine_clicks:
            session.add_click(dev_x, dev_y)

        assert session.matrix.scale == 10**10
