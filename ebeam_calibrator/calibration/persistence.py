"""Calibration state persistence.

This module saves and restores a calibration snapshot (active zone plus
homography coefficients) as a small text file, one decimal token per line:

    version
    min_x
    max_x
    min_y
    max_y
    h1
    ...
    h9

The layout is shared with earlier releases of the tools, so a version tag
mismatch is reported but never prevents a restore.
"""

import contextlib
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .. import __version__
from .errors import MalformedState, NoData
from .fixed_point import fits_int64
from .geometry import ScreenGeometry, Zone
from .homography import NUM_COEFFICIENTS, HomographyMatrix

logger = logging.getLogger(__name__)

NUM_TOKENS = 5 + NUM_COEFFICIENTS

_DECIMAL = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class CalibrationSnapshot:
    """The unit of persistence: where the device maps to and how."""

    version_tag: str
    zone: Zone
    matrix: HomographyMatrix


class CalibrationPersistence:
    """Encodes, decodes, saves and loads calibration snapshots.

    Writes are atomic: the full text is built in memory, written to a
    temporary file next to the target and then renamed over it.
    """

    def __init__(self, version_tag: str = __version__):
        """Initialize calibration persistence.

        Args:
            version_tag: Tag written to saved files and compared on load
        """
        self.version_tag = version_tag

    def encode(self, snapshot: Optional[CalibrationSnapshot]) -> str:
        """Encode a snapshot to its text form.

        Raises:
            NoData: If there is no snapshot or it carries no matrix
        """
        if snapshot is None or snapshot.matrix is None:
            raise NoData("no calibration data to save")

        zone = snapshot.zone
        tokens = [
            snapshot.version_tag,
            zone.min_x,
            zone.max_x,
            zone.min_y,
            zone.max_y,
            *snapshot.matrix.coefficients,
        ]
        return "".join(f"{token}\n" for token in tokens)

    def decode(self, text: str, screen: ScreenGeometry) -> CalibrationSnapshot:
        """Decode a snapshot from its text form.

        Args:
            text: Encoded state
            screen: Current screen geometry, used to re-derive ``zoned``

        Raises:
            MalformedState: If a token is missing or not a valid integer
        """
        tokens = text.split()
        if not tokens:
            raise MalformedState("bad state file (version): empty")

        version_tag = tokens[0]
        if version_tag != self.version_tag:
            logger.warning(
                f"Version mismatch: state file is {version_tag}, "
                f"application is {self.version_tag}. Proceeding anyway."
            )

        bounds = self._parse_integers(tokens[1:5], 4, "min/max")
        coefficients = self._parse_integers(
            tokens[5:NUM_TOKENS], NUM_COEFFICIENTS, "H coefs"
        )

        if len(tokens) > NUM_TOKENS:
            logger.warning(
                f"Ignoring {len(tokens) - NUM_TOKENS} trailing token(s) in state"
            )

        min_x, max_x, min_y, max_y = bounds
        try:
            zone = Zone(min_x, min_y, max_x, max_y).with_screen(screen)
        except ValueError as e:
            raise MalformedState(f"bad state file (min/max): {e}") from e

        if zone.zoned:
            logger.debug(f"Active zone : {zone.describe()}")
        else:
            logger.debug("Active zone : full screen")

        return CalibrationSnapshot(
            version_tag=version_tag,
            zone=zone,
            matrix=HomographyMatrix(tuple(coefficients)),
        )

    @staticmethod
    def _parse_integers(tokens: list[str], expected: int, section: str) -> list[int]:
        if len(tokens) < expected:
            raise MalformedState(
                f"bad state file ({section}): expected {expected} values, "
                f"got {len(tokens)}"
            )

        values = []
        for token in tokens:
            if not _DECIMAL.fullmatch(token):
                raise MalformedState(
                    f"bad state file ({section}): {token!r} is not an integer"
                )
            value = int(token, 10)
            if not fits_int64(value):
                raise MalformedState(
                    f"bad state file ({section}): {value} does not fit in 64 bits"
                )
            values.append(value)
        return values

    def save(
        self, path: Union[str, Path], snapshot: Optional[CalibrationSnapshot]
    ) -> Path:
        """Save a snapshot to ``path``.

        Raises:
            NoData: If there is nothing to save
            OSError: If the file cannot be written
        """
        path = Path(path)
        content = self.encode(snapshot)
        self._atomic_write(path, content)
        logger.info(f"Calibration data saved to {path}")
        return path

    def load(self, path: Union[str, Path], screen: ScreenGeometry) -> CalibrationSnapshot:
        """Load a snapshot from ``path``.

        Raises:
            MalformedState: If the file content cannot be parsed
            OSError: If the file cannot be read
        """
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            content = f.read()

        try:
            snapshot = self.decode(content, screen)
        except MalformedState as e:
            raise MalformedState(f"{e} in {path}") from e

        logger.info(f"Calibration data restored from {path}")
        return snapshot

    def _atomic_write(self, file_path: Path, content: str) -> None:
        """Write ``content`` to a temporary file and rename it over ``file_path``."""
        temp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=file_path.parent,
                prefix=f".{file_path.name}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
            ) as temp_file:
                temp_path = Path(temp_file.name)
                temp_file.write(content)
                temp_file.flush()
                os.fsync(temp_file.fileno())

            temp_path.replace(file_path)
            logger.debug(f"Atomic write completed: {file_path}")

        except BaseException:
            if temp_path is not None and temp_path.exists():
                with contextlib.suppress(OSError):
                    temp_path.unlink()
            raise


def encode_snapshot(snapshot: Optional[CalibrationSnapshot]) -> str:
    return CalibrationPersistence(__version__).encode(snapshot)


def decode_snapshot(
    text: str, screen: ScreenGeometry, version_tag: str = __version__
) -> CalibrationSnapshot:
    return CalibrationPersistence(version_tag).decode(text, screen)


def save_state(
    path: Union[str, Path],
    snapshot: Optional[CalibrationSnapshot],
    version_tag: str = __version__,
) -> Path:
    """Save ``snapshot`` to ``path``; see CalibrationPersistence.save."""
    return CalibrationPersistence(version_tag).save(path, snapshot)


def load_state(
    path: Union[str, Path],
    screen: ScreenGeometry,
    version_tag: str = __version__,
) -> CalibrationSnapshot:
    """Load a snapshot from ``path``; see CalibrationPersistence.load."""
    return CalibrationPersistence(version_tag).load(path, screen)
