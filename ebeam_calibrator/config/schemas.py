"""Pydantic configuration schemas for the calibrator.

Provides type-safe validation, defaults and constraints for every setting a
calibration run accepts, whether it comes from a file, the environment or the
command line.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..calibration.fixed_point import (
    DEFAULT_PRECISION,
    MAX_SAFE_PRECISION,
    MIN_SAFE_PRECISION,
)
from ..calibration.geometry import DEFAULT_GRID_BLOCKS, ScreenGeometry, Zone
from ..calibration.session import DEFAULT_THRESHOLD


class LogLevel(str, Enum):
    """Logging level enumeration."""

    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


class BaseConfig(BaseModel):
    """Base configuration class with common functionality."""

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        use_enum_values=True,
    )


class ScreenConfig(BaseConfig):
    """Screen geometry in pixels."""

    width: int = Field(..., gt=0, description="Screen width in pixels")
    height: int = Field(..., gt=0, description="Screen height in pixels")
    rotated: bool = Field(
        default=False, description="Screen is rotated by 90 or 270 degrees"
    )

    def to_geometry(self) -> ScreenGeometry:
        return ScreenGeometry(self.width, self.height).oriented(self.rotated)


class ZoneConfig(BaseConfig):
    """Active zone bounds; all zeros means full screen."""

    min_x: int = Field(default=0, ge=0)
    min_y: int = Field(default=0, ge=0)
    max_x: int = Field(default=0, ge=0)
    max_y: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_bounds(self):
        """Validate that bounds describe a rectangle."""
        if not self.is_full_screen() and (
            self.min_x > self.max_x or self.min_y > self.max_y
        ):
            raise ValueError("zone min bounds must not exceed max bounds")
        return self

    def is_full_screen(self) -> bool:
        return not (self.min_x or self.min_y or self.max_x or self.max_y)

    def to_zone(self, screen: ScreenGeometry) -> Zone:
        return Zone.from_bounds(self.min_x, self.min_y, self.max_x, self.max_y, screen)


class LoggingConfig(BaseConfig):
    """Logging settings."""

    level: LogLevel = Field(
        default=LogLevel.INFO, validate_default=True, description="Root log level"
    )
    config_file: Optional[Path] = Field(
        default=None, description="YAML logging dictConfig file"
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.upper()
        return v


class CalibratorConfig(BaseConfig):
    """Complete calibrator configuration."""

    precision: int = Field(
        default=DEFAULT_PRECISION,
        ge=MIN_SAFE_PRECISION,
        le=MAX_SAFE_PRECISION,
        description="H matrix coefficients are scaled by 10^precision",
    )
    threshold: int = Field(
        default=DEFAULT_THRESHOLD,
        ge=0,
        description="Mis-click threshold in device units (0 = off)",
    )
    grid_blocks: int = Field(
        default=DEFAULT_GRID_BLOCKS,
        ge=2,
        description="Grid resolution used to place the targets",
    )
    zone: Optional[ZoneConfig] = Field(default=None, description="Active zone")
    screen: Optional[ScreenConfig] = Field(
        default=None, description="Screen geometry"
    )
    state_file: Optional[Path] = Field(
        default=None, description="Calibration state file"
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def screen_geometry(self) -> Optional[ScreenGeometry]:
        if self.screen is None:
            return None
        return self.screen.to_geometry()

    def active_zone(self, screen: ScreenGeometry) -> Zone:
        if self.zone is None:
            return Zone.full_screen(screen)
        return self.zone.to_zone(screen)
