from pathlib import Path

from ankinorm.config import AUDIO_EXTENSIONS
from ankinorm.core.files import (
    backup_path_for,
    collect_audio_files,
    ensure_backup,
    prepare_backup_dir,
    remove_if_exists,
)
from ankinorm.core.models import BackupOutcome


def test_collect_audio_files_from_directory(media_dir):
    nested = media_dir / "sub"
    nested.mkdir()
    (nested / "deep.FLAC").write_bytes(b"flac")
    (nested / "image.png").write_bytes(b"png")

    files, invalid = collect_audio_files([str(media_dir)])

    assert invalid == []
    assert sorted(f.name for f in files) == ["deep.FLAC", "hello.mp3", "world.ogg"]
    assert all(f.suffix.lower() in AUDIO_EXTENSIONS for f in files)


def test_collect_audio_files_removes_duplicates(media_dir):
    single = media_dir / "hello.mp3"
    files, invalid = collect_audio_files([str(single), str(media_dir), str(single)])

    assert invalid == []
    assert len(files) == len({f.resolve() for f in files}) == 2


def test_collect_audio_files_reports_invalid_inputs(media_dir, tmp_path, caplog):
    missing = tmp_path / "missing.mp3"
    text = media_dir / "notes.txt"

    files, invalid = collect_audio_files([str(missing), str(text), str(media_dir / "world.ogg")])

    assert [f.name for f in files] == ["world.ogg"]
    assert invalid == [str(missing), str(text)]
    assert "not a valid file or directory" in caplog.text


def test_prepare_backup_dir_is_idempotent(tmp_path):
    backup_dir = tmp_path / "a" / "b" / "backup"
    prepare_backup_dir(backup_dir)
    prepare_backup_dir(backup_dir)
    assert backup_dir.is_dir()


def test_ensure_backup_copies_bytes(media_dir, tmp_path):
    backup_dir = tmp_path / "backup"
    prepare_backup_dir(backup_dir)
    source = media_dir / "hello.mp3"

    assert ensure_backup(source, backup_dir) == BackupOutcome.CREATED
    assert backup_path_for(source, backup_dir).read_bytes() == b"original mp3"


def test_ensure_backup_never_overwrites(media_dir, tmp_path):
    backup_dir = tmp_path / "backup"
    prepare_backup_dir(backup_dir)
    (backup_dir / "hello.mp3").write_bytes(b"older backup")

    assert ensure_backup(media_dir / "hello.mp3", backup_dir) == BackupOutcome.ALREADY_EXISTED
    assert (backup_dir / "hello.mp3").read_bytes() == b"older backup"


def test_remove_if_exists(tmp_path):
    path = tmp_path / "x.tmp"
    path.write_bytes(b"x")
    assert remove_if_exists(path)
    assert not path.exists()
    assert not remove_if_exists(path)


def test_collect_audio_files_leaves_out_backup_dir(media_dir, caplog):
    backup_dir = media_dir / "backup"
    backup_dir.mkdir()
    (backup_dir / "hello.mp3").write_bytes(b"original mp3")

    files, skipped = collect_audio_files([str(media_dir)], backup_dir=backup_dir)

    assert sorted(f.name for f in files) == ["hello.mp3", "world.ogg"]
    assert all(backup_dir.resolve() not in f.resolve().parents for f in files)
    assert skipped == [str(backup_dir / "hello.mp3")]
    assert "inside the backup directory" in caplog.text


def test_collect_audio_files_backup_dir_given_relative(media_dir, monkeypatch):
    monkeypatch.chdir(media_dir)
    (media_dir / "backup").mkdir()
    (media_dir / "backup" / "world.ogg").write_bytes(b"original ogg")

    files, skipped = collect_audio_files(["."], backup_dir=Path("./backup"))

    assert sorted(f.name for f in files) == ["hello.mp3", "world.ogg"]
    assert len(skipped) == 1
