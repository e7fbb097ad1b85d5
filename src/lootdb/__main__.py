"""
Main entry point for the loot database builder.
Usage: python -m lootdb [--force] [--info]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .build import BuildOrchestrator, BuildState
from .database import SNAPSHOT_FILE, describe_snapshot, read_snapshot
from .errors import SnapshotFormatError
from .settings import AppSettings
from .utils.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lootdb",
        description="Build the loot filter game database from templates and overrides.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--force", action="store_true", help="rebuild even if the snapshot is up to date"
    )
    parser.add_argument(
        "--info", action="store_true", help="describe the existing snapshot and exit"
    )
    parser.add_argument("--content-version", help="game content version for this build")
    parser.add_argument("--template-dir", type=Path, help="template root (saved to settings)")
    parser.add_argument("--override-dir", type=Path, help="override root (saved to settings)")
    parser.add_argument("--output-dir", type=Path, help="output directory (saved to settings)")
    parser.add_argument("--profile", default="default", help="settings profile name")
    parser.add_argument("--settings-file", type=Path, help="INI settings file to use")
    return parser


def show_info(settings: AppSettings) -> int:
    """Print the database info report for the published snapshot."""
    logger = logging.getLogger(f"{__name__}.show_info")
    path = settings.output_dir / SNAPSHOT_FILE
    try:
        snapshot = read_snapshot(path)
    except SnapshotFormatError as e:
        logger.error(f"Cannot read snapshot: {e}")
        return 1
    print(describe_snapshot(snapshot), end="")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    logger = logging.getLogger(f"{__name__}.main")

    settings = AppSettings(profile=args.profile, settings_file=args.settings_file)
    if args.template_dir is not None:
        settings.template_root = args.template_dir
    if args.override_dir is not None:
        settings.override_root = args.override_dir
    if args.output_dir is not None:
        settings.output_dir = args.output_dir

    setup_logging(settings)
    logger.info(f"lootdb {__version__}")
    logger.info(f"Configuration loaded from {settings.get_settings_file_path()}")

    if args.info:
        return show_info(settings)

    validation = settings.validate()
    for warning in validation.warnings:
        logger.warning(f"  {warning}")
    if not validation.is_valid:
        logger.error("Configuration validation failed:")
        for error in validation.errors:
            logger.error(f"  {error}")
        return 1

    orchestrator = BuildOrchestrator(settings.build_config(content_version=args.content_version))
    result = orchestrator.run(force=args.force)

    if result.state is BuildState.FAILED:
        logger.error(f"Build failed: {result.error}")
        return 1
    if result.summary:
        print(result.summary, end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
