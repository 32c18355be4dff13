from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Union


class Provenance(Enum):
    """Which source produced a picture's capture date."""
    EMBEDDED_METADATA = "EXIF metadata"
    EXTERNAL_TOOL = "the exiftool program"
    FILESYSTEM = "filesystem metadata"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class CaptureTimestamp:
    when: datetime               # timezone-aware, UTC
    provenance: Provenance


class FatalBackupError(Exception):
    """Raised when the backup tree or the environment is unusable for the whole run."""

    def __init__(self, path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = str(path)
        self.reason = reason


# ── Outcomes ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AlreadyArchived:
    source_path: str
    destination_path: str


@dataclass(frozen=True)
class Copied:
    source_path: str
    destination_path: str
    provenance: Provenance


@dataclass(frozen=True)
class ArchivedButDifferent:
    source_path: str
    destination_path: str

    def describe(self) -> str:
        return (
            f"{self.source_path} => {self.destination_path}: already exists in "
            f"the backup but has a different content"
        )


@dataclass(frozen=True)
class CopyFailed:
    source_path: str
    reason: str

    def describe(self) -> str:
        return f"Copy error, {self.source_path}: {self.reason}"


@dataclass(frozen=True)
class InvalidName:
    source_path: str

    def describe(self) -> str:
        return f"Incorrect file name {self.source_path!r}"


BackupOutcome = Union[AlreadyArchived, Copied, ArchivedButDifferent, CopyFailed, InvalidName]
BackupFailure = Union[ArchivedButDifferent, CopyFailed, InvalidName]


# ── Statistics ────────────────────────────────────────────────────────────────

@dataclass
class BatchStatistics:
    duplicates: int = 0
    copied_by_provenance: Dict[Provenance, int] = field(
        default_factory=lambda: {p: 0 for p in Provenance}
    )
    failures: List[BackupFailure] = field(default_factory=list)

    @property
    def copied(self) -> int:
        return sum(self.copied_by_provenance.values())

    @property
    def processed(self) -> int:
        return self.duplicates + self.copied + len(self.failures)

    def record(self, outcome: BackupOutcome) -> None:
        if isinstance(outcome, AlreadyArchived):
            self.duplicates += 1
        elif isinstance(outcome, Copied):
            self.copied_by_provenance[outcome.provenance] += 1
        elif isinstance(outcome, (ArchivedButDifferent, CopyFailed, InvalidName)):
            self.failures.append(outcome)
        else:
            raise TypeError(f"Unknown backup outcome: {outcome!r}")

    @classmethod
    def from_outcomes(cls, outcomes) -> "BatchStatistics":
        stats = cls()
        for outcome in outcomes:
            stats.record(outcome)
        return stats
