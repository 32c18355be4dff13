"""
Thin wrapper around the exiftool program.

exiftool understands far more containers than exifread (QuickTime/MP4 video
in particular), at the cost of one process spawn per file. Every problem here
is reported as "no date", never as an error.
"""

import json
import shutil
import subprocess
from datetime import datetime, timezone
from typing import Optional

DEFAULT_EXECUTABLE = "exiftool"
CREATE_DATE_FIELD = "CreateDate"
EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"


def exiftool_available(executable: str = DEFAULT_EXECUTABLE) -> bool:
    return shutil.which(executable) is not None


def _parse_records(stdout: str) -> Optional[datetime]:
    try:
        records = json.loads(stdout)
    except ValueError:
        return None

    # Exactly one record for one file; anything else is ambiguous.
    if not isinstance(records, list) or len(records) != 1:
        return None
    record = records[0]
    if not isinstance(record, dict):
        return None

    raw = record.get(CREATE_DATE_FIELD)
    if not isinstance(raw, str):
        return None
    try:
        naive = datetime.strptime(raw.strip(), EXIF_DATE_FORMAT)
    except ValueError:
        return None
    return naive.replace(tzinfo=timezone.utc)


def read_create_date(
    path,
    executable: str = DEFAULT_EXECUTABLE,
    timeout: Optional[float] = None,
) -> Optional[datetime]:
    """
    Run `exiftool -j -P -CreateDate <path>` and return the CreateDate as a
    UTC datetime, or None when the tool is missing, fails, or prints
    anything other than a single well-formed record.
    """
    cmd = [executable, "-j", "-P", f"-{CREATE_DATE_FIELD}", str(path)]
    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if proc.returncode != 0:
        return None
    return _parse_records(proc.stdout)
