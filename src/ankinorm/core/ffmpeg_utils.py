"""FFmpeg and ffmpeg-lh utility functions."""

import logging
import os
import re
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from ankinorm.config import (
    CODEC_MAP,
    HELPER_URL,
    PASSTHROUGH_CODEC,
    PROCESSING_SUFFIX,
)
from ankinorm.core.models import AudioLevels, NormalizationRequest, ToolInvocationResult

logger = logging.getLogger(__name__)

MEAN_VOLUME_RE = re.compile(r"mean_volume: ([-\d.]+) dB")
MAX_VOLUME_RE = re.compile(r"max_volume: ([-\d.]+) dB")


class FFmpegError(Exception):
    """FFmpeg operation error."""

    pass


class ToolNotFoundError(FFmpegError):
    """A required external tool is not installed."""

    pass


def invoke(cmd: list[str], timeout: Optional[float] = None) -> ToolInvocationResult:
    """
    Run an external command and capture its merged output.

    A nonzero exit status does not raise; it is reported through the
    ``success`` flag. A missing executable or an expired timeout is
    reported the same way.

    Args:
        cmd: Command argument vector.
        timeout: Optional timeout in seconds.

    Returns:
        ToolInvocationResult with merged stdout/stderr text.
    """
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        output = e.output or ""
        if isinstance(output, bytes):
            output = output.decode(errors="replace")
        return ToolInvocationResult(
            output=f"{output}\n{cmd[0]} timed out after {timeout} seconds",
            success=False,
        )
    except OSError as e:
        return ToolInvocationResult(output=f"Failed to run {cmd[0]}: {e}", success=False)

    return ToolInvocationResult(
        output=result.stdout or "",
        success=result.returncode == 0,
        returncode=result.returncode,
    )


def check_ffmpeg_installed(ffmpeg_path: str = "ffmpeg") -> bool:
    """Check if FFmpeg is installed and available in PATH."""
    return shutil.which(ffmpeg_path) is not None


def find_helper(candidates: list[str]) -> str:
    """
    Locate the ffmpeg-loudnorm-helper executable.

    Args:
        candidates: Names or paths to try, in order.

    Returns:
        The first candidate found in PATH or as an executable file.

    Raises:
        ToolNotFoundError: If none of the candidates is usable.
    """
    for candidate in candidates:
        if shutil.which(candidate) is not None:
            return candidate
        # Bare names are only looked up in PATH
        path = Path(candidate)
        if os.path.dirname(candidate) and path.is_file() and os.access(path, os.X_OK):
            return candidate

    raise ToolNotFoundError(
        "ffmpeg-loudnorm-helper (ffmpeg-lh) is not installed or not in PATH. "
        f"Install it from {HELPER_URL} "
        "or place the executable in the current directory."
    )


def codec_for(file_path: Path) -> str:
    """Get the audio encoder that re-writes a file in its own format."""
    return CODEC_MAP.get(file_path.suffix.lower(), PASSTHROUGH_CODEC)


def processing_path(file_path: Path) -> Path:
    """Get the sibling temporary path used while transcoding a file."""
    return file_path.with_name(f"{file_path.name}{PROCESSING_SUFFIX}{file_path.suffix}")


def build_helper_command(
    helper_path: str,
    file_path: Path,
    request: NormalizationRequest,
) -> list[str]:
    """Build the ffmpeg-lh command that recommends a loudnorm filter."""
    return [
        helper_path,
        str(file_path),
        "--i", str(request.integrated_loudness),
        "--lra", str(request.loudness_range),
        "--tp", str(request.true_peak),
    ]


def build_transcode_command(
    input_path: Path,
    output_path: Path,
    filter_args: list[str],
    ffmpeg_path: str = "ffmpeg",
) -> list[str]:
    """
    Build the ffmpeg command that applies a filter and re-encodes.

    Args:
        input_path: Original audio file.
        output_path: Temporary output file.
        filter_args: Filter arguments, e.g. ["-af", "loudnorm=..."].
        ffmpeg_path: ffmpeg executable.

    Returns:
        Command argument vector.
    """
    return [
        ffmpeg_path,
        "-i", str(input_path),
        "-c:a", codec_for(input_path),
        "-y",
        *filter_args,
        str(output_path),
    ]


def save_command(cmd: list[str], script_path: Path) -> None:
    """Write a command as a shell script for manual troubleshooting."""
    script_path.write_text(f"#!/bin/sh\n{shlex.join(cmd)}\n", encoding="utf-8")


def get_audio_levels(
    file_path: Path,
    ffmpeg_path: str = "ffmpeg",
    runner=invoke,
) -> AudioLevels:
    """
    Measure mean and max volume with ffmpeg's volumedetect filter.

    Args:
        file_path: Path to audio file.
        ffmpeg_path: ffmpeg executable.
        runner: Command runner, ``invoke`` by default.

    Returns:
        AudioLevels; values are None when they could not be measured.
    """
    cmd = [
        ffmpeg_path,
        "-i", str(file_path),
        "-filter:a", "volumedetect",
        "-f", "null",
        "-",
    ]
    logger.debug("Running volume detection: %s", shlex.join(cmd))
    result = runner(cmd)

    if not result.success or not result.output:
        logger.warning("Could not analyze audio levels for %s", file_path)
        return AudioLevels()

    mean_match = MEAN_VOLUME_RE.search(result.output)
    max_match = MAX_VOLUME_RE.search(result.output)
    try:
        return AudioLevels(
            mean_volume=float(mean_match.group(1)) if mean_match else None,
            max_volume=float(max_match.group(1)) if max_match else None,
        )
    except ValueError as e:
        logger.warning("Error parsing audio levels for %s: %s", file_path, e)
        return AudioLevels()
