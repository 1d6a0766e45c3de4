"""Calibration tools for eBeam kernel driver based devices."""

__version__ = "1.0.0"
