"""
Shared fixtures for the picture-backup test suite.
"""
import os
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest


# ── File-creation helpers ─────────────────────────────────────────────────────

def make_file(path: Path, content: bytes = b"dummy content") -> Path:
    """Create a file with the given content; create parent dirs as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def set_mtime(path: Path, when: datetime) -> Path:
    ts = when.timestamp()
    os.utime(path, (ts, ts))
    return path


def exif_tags(date_string: str) -> dict:
    """Fake exifread.process_file() result carrying a DateTimeOriginal tag."""
    tag = MagicMock()
    tag.__str__ = lambda self: date_string
    return {"EXIF DateTimeOriginal": tag}


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def src(tmp_path: Path) -> Path:
    """Empty source directory."""
    d = tmp_path / "source"
    d.mkdir()
    return d


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """Empty backup root."""
    d = tmp_path / "archive"
    d.mkdir()
    return d
