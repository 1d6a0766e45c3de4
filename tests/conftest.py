"""Shared test configuration and fixtures for the eBeam calibrator."""

import logging
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Ensure the package is importable without installation
project_path = Path(__file__).parent.parent
sys.path.insert(0, str(project_path))

from ebeam_calibrator.calibration import (
    CalibrationSession,
    Correspondence,
    ScreenGeometry,
    Zone,
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep EBEAM_ settings of the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("EBEAM_") or key == "LOG_CFG":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handlers installed by setup_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture()
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture()
def screen():
    return ScreenGeometry(1024, 768)


@pytest.fixture()
def zone():
    """A 800x800 zone on a 1000x1000 screen."""
    return Zone(100, 100, 899, 899)


@pytest.fixture()
def affine_clicks():
    """Device samples for the full-screen 1024x768 targets, device = 2*screen + 50."""
    return [(306, 242), (306, 1392), (1840, 242), (1840, 1392)]


@pytest.fixture()
def collinear_clicks():
    return [(100, 100), (200, 200), (300, 300), (400, 400)]


@pytest.fixture()
def square_correspondences():
    """A square device area mapped onto a smaller screen square."""
    return [
        Correspondence(125, 125, 200, 200),
        Correspondence(125, 875, 200, 800),
        Correspondence(875, 125, 800, 200),
        Correspondence(875, 875, 800, 800),
    ]


@pytest.fixture()
def calibrated_session(screen, affine_clicks):
    """A session that completed a calibration."""
    session = CalibrationSession(screen)
    for dev_x, dev_y in affine_clicks:
        session.add_click(dev_x, dev_y)
    return session
