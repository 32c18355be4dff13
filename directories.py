import threading
from pathlib import Path
from typing import List

from tqdm import tqdm

from models import FatalBackupError


def validate_backup_root(backup_root) -> Path:
    """Refuse a backup root that exists as something other than a directory."""
    root = Path(backup_root)
    if root.exists() and not root.is_dir():
        raise FatalBackupError(root, "is a file, not a valid backup directory")
    return root


class DirectoryManager:
    """
    Creates dated backup directories for one run.

    A single instance is shared by every worker. The existence check and the
    creation happen under one lock, so two workers routed to the same day
    never both try to create it.
    """

    def __init__(self, dry_run: bool = False) -> None:
        self.dry_run = dry_run
        self._lock = threading.Lock()
        self._created: List[Path] = []

    @property
    def created(self) -> List[Path]:
        """Directories created (or, in dry-run mode, that would be) so far."""
        with self._lock:
            return list(self._created)

    def ensure_directory(self, path: Path) -> None:
        path = Path(path)
        with self._lock:
            if path.is_dir():
                return
            if path.exists():
                raise FatalBackupError(
                    path, "already exists and is not a directory, can't store a picture in it"
                )
            if self.dry_run:
                if path not in self._created:
                    self._created.append(path)
                    tqdm.write(f"[dry-run] Directory would be created: {path}")
                return
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FatalBackupError(path, f"cannot create the backup directory: {e}") from e
            self._created.append(path)
