"""Audio file discovery and backups."""

import logging
import shutil
from pathlib import Path
from typing import Iterable, Optional

from ankinorm.config import AUDIO_EXTENSIONS
from ankinorm.core.models import BackupOutcome

logger = logging.getLogger(__name__)


def is_audio_file(path: Path) -> bool:
    """Check if a path is a regular file with a supported extension."""
    return path.is_file() and path.suffix.lower() in AUDIO_EXTENSIONS


def is_inside(path: Path, directory: Path) -> bool:
    """Check if a path lies anywhere below a directory."""
    return directory.resolve() in path.resolve().parents


def collect_audio_files(
    paths: Iterable[str],
    backup_dir: Optional[Path] = None,
) -> tuple[list[Path], list[str]]:
    """
    Resolve input paths to the audio files they contain.

    Directories are searched recursively. Inputs that are neither a
    directory nor a supported audio file are returned separately, as are
    files inside the backup directory.

    Args:
        paths: Files or directories, as given on the command line.
        backup_dir: Backup directory whose contents must never be processed.

    Returns:
        Tuple of (audio files without duplicates, skipped inputs).
    """
    found: dict[Path, Path] = {}
    invalid: list[str] = []

    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            candidates = [p for p in sorted(path.rglob("*")) if is_audio_file(p)]
        elif is_audio_file(path):
            candidates = [path]
        else:
            logger.warning("%s is not a valid file or directory, or not an audio file", raw)
            invalid.append(raw)
            continue

        for candidate in candidates:
            key = candidate.resolve()
            if key in found:
                continue
            if backup_dir is not None and is_inside(candidate, backup_dir):
                if str(candidate) not in invalid:
                    logger.warning("%s is inside the backup directory, skipping", candidate)
                    invalid.append(str(candidate))
                continue
            found[key] = candidate

    return list(found.values()), invalid


def backup_path_for(file_path: Path, backup_dir: Path) -> Path:
    """Get the backup location of a file (keyed by file name)."""
    return backup_dir / file_path.name


def prepare_backup_dir(backup_dir: Path) -> None:
    """Create the backup directory if needed."""
    backup_dir.mkdir(parents=True, exist_ok=True)


def ensure_backup(file_path: Path, backup_dir: Path) -> BackupOutcome:
    """
    Copy a file into the backup directory unless a backup already exists.

    An existing backup with the same name is trusted as is; its content
    is not compared with the file.
    """
    backup_path = backup_path_for(file_path, backup_dir)
    if backup_path.exists():
        logger.info("Backup already exists: %s, skipping backup", backup_path)
        return BackupOutcome.ALREADY_EXISTED

    shutil.copyfile(file_path, backup_path)
    logger.debug("Backed up to: %s", backup_path)
    return BackupOutcome.CREATED


def remove_if_exists(path: Path) -> bool:
    """Delete a file if present. Returns True if something was removed."""
    if path.exists():
        path.unlink()
        return True
    return False
