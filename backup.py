"""
Back up one picture: resolve its capture date, route it to ROOT/YYYY/MM/DD,
then copy it or recognise it as already archived.

The archive is append-only: an existing destination is never overwritten.
"""

import os
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from copier import build_destination_path, copy_file, is_same_file, plan_backup_dir
from directories import DirectoryManager
from exif_reader import DateResolver
from models import (
    AlreadyArchived,
    ArchivedButDifferent,
    BackupOutcome,
    Copied,
    CopyFailed,
    InvalidName,
)

_SEPARATORS = tuple(s for s in (os.sep, os.altsep) if s)


def extract_file_name(source_path: str) -> Optional[str]:
    """Return the final path component, or None if there isn't a usable one."""
    if not source_path or source_path.endswith(_SEPARATORS):
        return None
    name = os.path.basename(source_path)
    if name in ("", ".", ".."):
        return None
    return name


def _compare_with_archived(source_path: str, dest_path: Path) -> BackupOutcome:
    try:
        same = is_same_file(Path(source_path), dest_path)
    except OSError as e:
        return CopyFailed(source_path, f"cannot compare with {dest_path}: {e}")
    if same:
        return AlreadyArchived(source_path, str(dest_path))
    return ArchivedButDifferent(source_path, str(dest_path))


def backup_file(
    backup_root,
    source_path,
    directories: DirectoryManager,
    resolver: DateResolver,
    dry_run: bool = False,
) -> BackupOutcome:
    """
    Back up a single file and classify what happened.

    Per-file problems come back as failure outcomes. FatalBackupError (the
    backup tree is unusable) propagates to the caller.
    """
    source_path = os.fspath(source_path)

    # Checked first: nothing is opened or created for a nameless path.
    file_name = extract_file_name(source_path)
    if file_name is None:
        return InvalidName(source_path)

    try:
        handle = open(source_path, "rb")
    except OSError as e:
        return CopyFailed(source_path, f"cannot open the file: {e}")

    with handle:
        timestamp = resolver.resolve(source_path, handle)

        backup_dir = plan_backup_dir(backup_root, timestamp.when)
        directories.ensure_directory(backup_dir)
        dest_path = build_destination_path(backup_dir, file_name)

        if dest_path.is_file():
            return _compare_with_archived(source_path, dest_path)

        if dry_run:
            tqdm.write(f"[dry-run] {source_path} would be copied to {dest_path}")
            return Copied(source_path, str(dest_path), timestamp.provenance)

        try:
            copy_file(handle, dest_path)
        except FileExistsError as e:
            if not dest_path.is_file():
                return CopyFailed(source_path, f"cannot copy to {dest_path}: {e}")
            # Another worker archived a file with the same name meanwhile.
            return _compare_with_archived(source_path, dest_path)
        except OSError as e:
            return CopyFailed(source_path, f"cannot copy to {dest_path}: {e}")

    return Copied(source_path, str(dest_path), timestamp.provenance)
