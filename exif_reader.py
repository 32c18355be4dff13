import os
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence

import exifread

from exiftool_reader import DEFAULT_EXECUTABLE, read_create_date
from models import CaptureTimestamp, FatalBackupError, Provenance

# DateTime and DateTimeDigitized are ignored.
EXIF_CAPTURE_TAG = "EXIF DateTimeOriginal"

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"


def _parse_exif_date(raw_value: str) -> Optional[datetime]:
    """Parse an EXIF date string as UTC, returning None if invalid or empty."""
    try:
        dt = datetime.strptime(raw_value.strip().rstrip("\x00"), EXIF_DATE_FORMAT)
    except (ValueError, AttributeError):
        return None
    return dt.replace(tzinfo=timezone.utc)


# ── Date strategies ───────────────────────────────────────────────────────────

class DateStrategy:
    """One source of capture dates. attempt() returns None when it has nothing."""

    provenance: Provenance

    def attempt(self, path: Path, handle: BinaryIO) -> Optional[datetime]:
        raise NotImplementedError


class EmbeddedMetadataStrategy(DateStrategy):
    provenance = Provenance.EMBEDDED_METADATA

    def attempt(self, path: Path, handle: BinaryIO) -> Optional[datetime]:
        try:
            handle.seek(0)
            tags = exifread.process_file(handle, stop_tag="DateTimeOriginal", details=False)
            tag = tags.get(EXIF_CAPTURE_TAG)
            if tag is None:
                return None
            return _parse_exif_date(str(tag))
        except Exception:
            # Truncated or unknown containers: no embedded date
            return None


class ExternalToolStrategy(DateStrategy):
    provenance = Provenance.EXTERNAL_TOOL

    def __init__(self, executable: str = DEFAULT_EXECUTABLE, timeout: Optional[float] = None) -> None:
        self.executable = executable
        self.timeout = timeout

    def attempt(self, path: Path, handle: BinaryIO) -> Optional[datetime]:
        return read_create_date(path, executable=self.executable, timeout=self.timeout)


class FilesystemTimeStrategy(DateStrategy):
    """Last-modified time. Reflects the last write, not the capture."""

    provenance = Provenance.FILESYSTEM

    def attempt(self, path: Path, handle: BinaryIO) -> Optional[datetime]:
        try:
            mtime = os.fstat(handle.fileno()).st_mtime
        except (OSError, ValueError) as e:
            raise FatalBackupError(path, f"cannot read filesystem metadata: {e}") from e
        return datetime.fromtimestamp(mtime, tz=timezone.utc)


def default_strategies(exiftool: str = DEFAULT_EXECUTABLE) -> List[DateStrategy]:
    return [
        EmbeddedMetadataStrategy(),
        ExternalToolStrategy(executable=exiftool),
        FilesystemTimeStrategy(),
    ]


# ── Resolver ──────────────────────────────────────────────────────────────────

class DateResolver:
    """
    Try each strategy in order; the first one that produces a date wins.

    With the default strategies this never fails for per-file reasons:
    the filesystem timestamp is always available.
    """

    def __init__(self, strategies: Optional[Sequence[DateStrategy]] = None) -> None:
        self.strategies = list(strategies) if strategies is not None else default_strategies()

    def resolve(self, path, handle: BinaryIO) -> CaptureTimestamp:
        path = Path(path)
        for strategy in self.strategies:
            when = strategy.attempt(path, handle)
            if when is not None:
                return CaptureTimestamp(when=when, provenance=strategy.provenance)
        raise FatalBackupError(path, "no date strategy produced a capture date")
