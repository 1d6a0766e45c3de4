"""Utility helpers for the calibrator."""

from .logging import setup_logging

__all__ = ["setup_logging"]
