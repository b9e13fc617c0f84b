"""Anki audio normalizer - command line entry point."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ankinorm.config import Settings, get_settings
from ankinorm.core.ffmpeg_utils import ToolNotFoundError, check_ffmpeg_installed, find_helper
from ankinorm.core.files import collect_audio_files
from ankinorm.core.models import NormalizationRequest
from ankinorm.tools.normalize import AudioNormalizer
from ankinorm.tools.report import format_report

logger = logging.getLogger("ankinorm")

PREVIEW_COUNT = 5


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ankinorm",
        usage="%(prog)s [options] file_or_directory [file_or_directory...]",
        description="Normalize loudness of audio files in Anki collections using ffmpeg-lh and ffmpeg.",
    )
    p.add_argument("paths", nargs="+", metavar="file_or_directory", help="Audio files or directories to normalize")
    p.add_argument("-b", "--backup-dir", type=Path, default=settings.backup_dir,
                   help=f"Backup directory (default: {settings.backup_dir})")
    p.add_argument("-i", "--integrated-loudness", type=float, default=settings.integrated_loudness,
                   help=f"Integrated loudness target [-70.0..-5.0] (default: {settings.integrated_loudness})")
    p.add_argument("-l", "--loudness-range", type=float, default=settings.loudness_range,
                   help=f"Loudness range target [1.0..20.0] (default: {settings.loudness_range})")
    p.add_argument("-t", "--true-peak", type=float, default=settings.true_peak,
                   help=f"Maximum true peak [-9.0..0.0] (default: {settings.true_peak})")
    p.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")
    p.add_argument("-n", "--dry-run", action="store_true", help="Show what would be done without making changes")
    p.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    return p


def confirm(prompt: str = "Proceed with normalization? This will modify the files. (y/n): ") -> bool:
    """Ask the user for a yes/no answer. Anything but y/yes means no."""
    try:
        response = input(prompt)
    except EOFError:
        return False
    return response.strip().lower() in ("y", "yes")


def main(argv: Optional[list[str]] = None) -> int:
    try:
        settings = get_settings()
    except ValidationError as e:
        # Unvalidated defaults, only used to report the error
        build_parser(Settings.model_construct()).error(f"invalid environment configuration: {e}")

    parser = build_parser(settings)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stdout,
    )

    try:
        request = NormalizationRequest(
            integrated_loudness=args.integrated_loudness,
            loudness_range=args.loudness_range,
            true_peak=args.true_peak,
        )
    except ValidationError as e:
        parser.error(str(e))

    # Check dependencies before touching any file
    if not check_ffmpeg_installed(settings.ffmpeg_path):
        logger.error("Error: ffmpeg is not installed or not in PATH")
        return 1
    try:
        helper_path = find_helper(settings.get_helper_candidates())
    except ToolNotFoundError as e:
        logger.error("Error: %s", e)
        return 1
    logger.debug("Using ffmpeg-lh: %s", helper_path)

    files, invalid = collect_audio_files(args.paths, backup_dir=args.backup_dir)
    if not files:
        logger.info("No audio files found in the specified paths.")
        return 0

    logger.info("Found %d audio files to normalize.", len(files))
    if args.verbose:
        logger.info("First few files:")
        for file_path in files[:PREVIEW_COUNT]:
            logger.info("  - %s", file_path)
        if len(files) > PREVIEW_COUNT:
            logger.info("...")

    if not (args.dry_run or args.yes) and not confirm():
        logger.info("Operation cancelled.")
        return 0

    normalizer = AudioNormalizer(
        request=request,
        helper_path=helper_path,
        backup_dir=args.backup_dir,
        ffmpeg_path=settings.ffmpeg_path,
        dry_run=args.dry_run,
        measure_levels=settings.measure_levels,
        command_log_path=settings.command_log_path,
        timeout=settings.tool_timeout_sec,
    )
    report = normalizer.run(files, skipped=len(invalid))

    logger.info(format_report(report, args.backup_dir, dry_run=args.dry_run))
    return 0


if __name__ == "__main__":
    sys.exit(main())
