import shutil
from datetime import datetime
from pathlib import Path
from typing import BinaryIO

COPY_CHUNK_SIZE = 1024 * 1024  # 1 MB


def plan_backup_dir(backup_root, date_taken: datetime) -> Path:
    """
    Construct: backup_root / YYYY / MM / DD
    Example: /backup/2024/03/15
    """
    return (
        Path(backup_root)
        / f"{date_taken.year:04d}"
        / f"{date_taken.month:02d}"
        / f"{date_taken.day:02d}"
    )


def build_destination_path(backup_dir: Path, original_filename: str) -> Path:
    return backup_dir / original_filename


def is_same_file(source_path: Path, target_path: Path) -> bool:
    """
    Treat two files as the same picture when their sizes match.

    Contents are not compared: two different pictures of identical byte
    length are reported as duplicates. Timestamps are not compared either,
    since a copy gets fresh ones. Raises OSError if either file can't be
    stat'ed.
    """
    return Path(source_path).stat().st_size == Path(target_path).stat().st_size


def copy_file(source: BinaryIO, dest_path: Path) -> Path:
    """
    Copy the bytes of an open source file to dest_path.

    The destination is created exclusively, so an existing file is never
    overwritten (FileExistsError). A partially written destination is
    removed before the error is re-raised, including when the permission
    bits cannot be copied from the source.
    """
    source.seek(0)
    with open(dest_path, "xb") as out:
        try:
            shutil.copyfileobj(source, out, COPY_CHUNK_SIZE)
            shutil.copymode(source.name, dest_path)
        except BaseException:
            out.close()
            dest_path.unlink(missing_ok=True)
            raise
    return dest_path
