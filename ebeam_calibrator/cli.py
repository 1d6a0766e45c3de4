"""Command-line entry point for batch calibration and state inspection."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from . import __version__
from .calibration import (
    CalibrationError,
    CalibrationSession,
    ClickOutcome,
    ScreenGeometry,
    SessionState,
    compute_targets,
    driver_attributes,
    load_state,
    save_state,
    window_system_properties,
)
from .config import CalibratorConfig, ConfigurationError, load_config
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ebeam-calibrator",
        description="Calibration tools for eBeam kernel driver based devices",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="print debug messages during the process",
    )
    parser.add_argument(
        "--config", type=Path, help="JSON or YAML configuration file"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    geometry = argparse.ArgumentParser(add_help=False)
    geometry.add_argument(
        "--screen",
        nargs=2,
        type=int,
        metavar=("WIDTH", "HEIGHT"),
        help="screen size in pixels",
    )
    geometry.add_argument(
        "--rotated",
        action="store_true",
        default=None,
        help="screen is rotated by 90 or 270 degrees",
    )

    zone = argparse.ArgumentParser(add_help=False)
    zone.add_argument(
        "--zone",
        nargs=4,
        type=int,
        metavar=("MIN_X", "MIN_Y", "MAX_X", "MAX_Y"),
        help="set the active zone (default: full screen)",
    )
    zone.add_argument(
        "--blocks", type=int, help="grid resolution used to place the targets"
    )

    subparsers.add_parser(
        "targets",
        parents=[geometry, zone],
        help="print the four target points for a zone",
    )

    calibrate = subparsers.add_parser(
        "calibrate",
        parents=[geometry, zone],
        help="compute a calibration from four recorded clicks",
    )
    calibrate.add_argument(
        "--precision", type=int, help="number of digits of precision (default: 12)"
    )
    calibrate.add_argument(
        "--threshold",
        type=int,
        help="mis-click threshold in device units (0=off, default: 16)",
    )
    clicks = calibrate.add_mutually_exclusive_group(required=True)
    clicks.add_argument(
        "--click",
        nargs=2,
        type=int,
        action="append",
        metavar=("X", "Y"),
        help="raw device position of a click, in target order; repeat 4 times",
    )
    clicks.add_argument(
        "--clicks-file",
        type=Path,
        help="file with one 'X Y' or 'X Y x y' click per line",
    )
    calibrate.add_argument(
        "-o", "--output", type=Path, help="save the calibration state to this file"
    )

    show = subparsers.add_parser(
        "show", parents=[geometry], help="print a saved calibration state"
    )
    show.add_argument("state_file", nargs="?", type=Path, help="state file to read")

    return parser


def _overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    if getattr(args, "screen", None):
        overrides["screen"] = {"width": args.screen[0], "height": args.screen[1]}
    if getattr(args, "rotated", None):
        overrides.setdefault("screen", {})["rotated"] = True
    if getattr(args, "zone", None):
        min_x, min_y, max_x, max_y = args.zone
        overrides["zone"] = {
            "min_x": min_x,
            "min_y": min_y,
            "max_x": max_x,
            "max_y": max_y,
        }
    for name, key in (
        ("blocks", "grid_blocks"),
        ("precision", "precision"),
        ("threshold", "threshold"),
    ):
        value = getattr(args, name, None)
        if value is not None:
            overrides[key] = value
    if getattr(args, "state_file", None):
        overrides["state_file"] = str(args.state_file)
    if args.verbose:
        overrides["logging"] = {"level": "DEBUG"}

    return overrides


def read_clicks_file(path: Path) -> list[tuple[int, ...]]:
    """Read clicks from a text file.

    Each non-empty line that is not a ``#`` comment holds either the raw
    device position ``X Y`` or a full ``X Y x y`` correspondence.
    """
    clicks = []
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            fields = line.replace(",", " ").split()
            if len(fields) not in (2, 4):
                raise ValueError(
                    f"{path}:{line_number}: expected 2 or 4 integers, got {len(fields)}"
                )
            try:
                clicks.append(tuple(int(field) for field in fields))
            except ValueError as e:
                raise ValueError(f"{path}:{line_number}: {e}") from e
    return clicks


def _require_screen(config: CalibratorConfig) -> ScreenGeometry:
    screen = config.screen_geometry()
    if screen is None:
        raise ConfigurationError(
            "screen geometry is required (--screen WIDTH HEIGHT or config 'screen')"
        )
    return screen


def _print_calibration(snapshot, screen: ScreenGeometry) -> None:
    print(f"Active zone: {snapshot.zone.describe()}")
    for name, value in driver_attributes(snapshot).items():
        print(f"{name} {value}")
    for name, value in window_system_properties(snapshot, screen).items():
        print(f"{name}: {' '.join(f'{v:g}' for v in value)}")


def cmd_targets(config: CalibratorConfig) -> int:
    screen = _require_screen(config)
    zone = config.active_zone(screen)
    for index, point in enumerate(compute_targets(zone, config.grid_blocks), start=1):
        print(f"{index} {point.x} {point.y}")
    return 0


def cmd_calibrate(config: CalibratorConfig, args: argparse.Namespace) -> int:
    screen = _require_screen(config)

    if args.clicks_file is not None:
        clicks = read_clicks_file(args.clicks_file)
    else:
        clicks = [tuple(click) for click in args.click]

    session = CalibrationSession(
        screen,
        zone=config.active_zone(screen),
        precision=config.precision,
        threshold=config.threshold,
        grid_blocks=config.grid_blocks,
    )

    for click in clicks:
        if session.state != SessionState.COLLECTING:
            logger.warning(f"Ignoring extra click {click}")
            continue
        outcome = session.add_click(*click)
        if outcome == ClickOutcome.DUPLICATE:
            print(f"Double click detected at {click[:2]}, skipped.", file=sys.stderr)

    result = session.result
    if result is None:
        result = session.finish()

    if not result.success:
        print(f"Calibration failed: {result.reason}", file=sys.stderr)
        return 1

    snapshot = session.snapshot()
    print("Calibration complete.")
    _print_calibration(snapshot, screen)

    output = args.output or config.state_file
    if output is not None:
        save_state(output, snapshot)
        print(f"Calibration data saved to {output}")
    return 0


def cmd_show(config: CalibratorConfig) -> int:
    screen = _require_screen(config)
    if config.state_file is None:
        raise ConfigurationError("no state file given")

    snapshot = load_state(config.state_file, screen)
    print(f"Version: {snapshot.version_tag}")
    _print_calibration(snapshot, screen)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the command line tool."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config, _overrides_from_args(args))
    except ConfigurationError as e:
        parser.error(str(e))

    setup_logging(config.logging.level, config.logging.config_file)
    logger.debug(f"ebeam-calibrator v{__version__}")

    try:
        if args.command == "targets":
            return cmd_targets(config)
        if args.command == "calibrate":
            return cmd_calibrate(config, args)
        if args.command == "show":
            return cmd_show(config)
    except ConfigurationError as e:
        parser.error(str(e))
    except (CalibrationError, OSError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    parser.error(f"unknown command {args.command}")


if __name__ == "__main__":
    sys.exit(main())
