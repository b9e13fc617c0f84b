"""Normalize tool - runs ffmpeg-lh and ffmpeg over a batch of audio files."""

import logging
import os
import shlex
from pathlib import Path
from typing import Callable, Optional

from ankinorm.core.ffmpeg_utils import (
    build_helper_command,
    build_transcode_command,
    get_audio_levels,
    invoke,
    processing_path,
    save_command,
)
from ankinorm.core.files import (
    backup_path_for,
    ensure_backup,
    is_inside,
    prepare_backup_dir,
    remove_if_exists,
)
from ankinorm.core.filter_parser import (
    extract_filter,
    fallback_filter,
    filter_args,
    is_non_finite_failure,
    resolve_filter,
)
from ankinorm.core.models import (
    AudioLevels,
    FileOutcome,
    NormalizationRequest,
    RunReport,
    ToolInvocationResult,
)

logger = logging.getLogger(__name__)

Runner = Callable[[list[str]], ToolInvocationResult]


class AudioNormalizer:
    """Normalizes audio files in place, keeping a backup of each original."""

    def __init__(
        self,
        request: NormalizationRequest,
        helper_path: str,
        backup_dir: Path,
        ffmpeg_path: str = "ffmpeg",
        dry_run: bool = False,
        measure_levels: bool = True,
        command_log_path: Optional[Path] = Path("last_ffmpeg_command.sh"),
        timeout: Optional[float] = None,
        runner: Optional[Runner] = None,
    ):
        self.request = request
        self.helper_path = helper_path
        self.backup_dir = backup_dir
        self.ffmpeg_path = ffmpeg_path
        self.dry_run = dry_run
        self.measure_levels = measure_levels
        self.command_log_path = command_log_path
        self.runner = runner or (lambda cmd: invoke(cmd, timeout=timeout))

    def run(self, files: list[Path], skipped: int = 0) -> RunReport:
        """
        Process files one at a time.

        Args:
            files: Audio files to normalize.
            skipped: Number of inputs already rejected during discovery.

        Returns:
            RunReport with processed/failed/skipped counters.
        """
        report = RunReport(skipped=skipped)
        if not self.dry_run:
            prepare_backup_dir(self.backup_dir)

        for index, file_path in enumerate(files, start=1):
            logger.info("[%d/%d] Processing: %s", index, len(files), file_path)
            report.record(self.process_file(file_path))

        return report

    def process_file(self, file_path: Path) -> FileOutcome:
        """Normalize a single file. Never raises."""
        temp_path: Optional[Path] = None
        if is_inside(file_path, self.backup_dir):
            logger.warning("%s is inside the backup directory, skipping", file_path)
            return FileOutcome.SKIPPED

        try:
            before = self._log_levels(file_path, "Original audio levels:")

            if self.dry_run:
                logger.info("  [DRY RUN] Would backup to: %s", backup_path_for(file_path, self.backup_dir))
                logger.info("  [DRY RUN] Would normalize audio using ffmpeg-lh")
                return FileOutcome.DRY_RUN

            ensure_backup(file_path, self.backup_dir)

            filter_text = self._recommend_filter(file_path)
            if filter_text is None:
                return FileOutcome.FAILED

            temp_path = processing_path(file_path)
            result = self._transcode(file_path, temp_path, filter_text)

            if not result.success:
                logger.error("Error normalizing: %s", file_path)
                logger.error("ffmpeg output: %s", result.output)
                if not is_non_finite_failure(result.output):
                    return FileOutcome.FAILED

                logger.warning("Attempting fallback method for very short audio...")
                result = self._transcode(file_path, temp_path, fallback_filter(self.request))
                if not result.success:
                    logger.error("Fallback method also failed: %s", file_path)
                    logger.error("Fallback output: %s", result.output)
                    return FileOutcome.FAILED

            if not _has_output(temp_path):
                logger.error("Output file is missing or empty, skipping: %s", file_path)
                logger.error("ffmpeg output: %s", result.output)
                return FileOutcome.FAILED

            os.replace(temp_path, file_path)
            logger.info("Successfully normalized: %s", file_path)

            after = self._log_levels(file_path, "Normalized audio levels:")
            if before is not None and after is not None:
                _log_volume_change(before, after)

            return FileOutcome.PROCESSED

        except Exception as e:
            logger.error("Error processing %s: %s", file_path, e)
            logger.debug("Traceback:", exc_info=True)
            return FileOutcome.FAILED

        finally:
            if temp_path is not None and remove_if_exists(temp_path):
                logger.debug("Cleaned up temporary file")

    def _recommend_filter(self, file_path: Path) -> Optional[str]:
        """Run ffmpeg-lh and return a usable filter, or None if it failed."""
        cmd = build_helper_command(self.helper_path, file_path, self.request)
        logger.debug("Executing ffmpeg-lh command: %s", shlex.join(cmd))

        result = self.runner(cmd)
        if not result.success:
            logger.error("Error running ffmpeg-lh:")
            logger.error("%s", result.output)
            return None

        logger.debug("ffmpeg-lh output:\n%s", result.output)
        expression = extract_filter(result.output)
        filter_text, used_fallback = resolve_filter(expression, self.request)
        if used_fallback:
            logger.warning("Normalizing %s with gain fallback: %s", file_path, filter_text)
        else:
            logger.debug("Extracted filter command: %s", filter_text)
        return filter_text

    def _transcode(self, file_path: Path, temp_path: Path, filter_text: str) -> ToolInvocationResult:
        cmd = build_transcode_command(
            file_path,
            temp_path,
            filter_args(filter_text),
            ffmpeg_path=self.ffmpeg_path,
        )
        logger.debug("Executing ffmpeg command: %s", shlex.join(cmd))

        if self.command_log_path is not None:
            try:
                save_command(cmd, self.command_log_path)
                logger.debug("Command saved to %s", self.command_log_path)
            except OSError as e:
                logger.warning("Could not save command to %s: %s", self.command_log_path, e)

        return self.runner(cmd)

    def _log_levels(self, file_path: Path, title: str) -> Optional[AudioLevels]:
        if not self.measure_levels:
            return None

        levels = get_audio_levels(file_path, ffmpeg_path=self.ffmpeg_path, runner=self.runner)
        logger.info(title)
        logger.info("  Mean volume: %s", AudioLevels.format_level(levels.mean_volume))
        logger.info("  Max volume: %s", AudioLevels.format_level(levels.max_volume))
        return levels


def _has_output(path: Path) -> bool:
    return path.exists() and path.stat().st_size > 0


def _log_volume_change(before: AudioLevels, after: AudioLevels) -> None:
    logger.info("Volume change:")
    logger.info(
        "  Mean volume: %s → %s",
        AudioLevels.format_level(before.mean_volume),
        AudioLevels.format_level(after.mean_volume),
    )
    logger.info(
        "  Max volume: %s → %s",
        AudioLevels.format_level(before.max_volume),
        AudioLevels.format_level(after.max_volume),
    )
