#!/usr/bin/env python3
"""
picture-backup: Archive pictures into a dated backup tree (ROOT/YYYY/MM/DD/),
using the EXIF capture date when available, and skip pictures already there.

Usage:
    python picture_backup.py ~/Pictures/Library /Volumes/SD1/DCIM/IMG_0042.JPG
    find /Volumes/SD1 -type f | python picture_backup.py ~/Pictures/Library
"""

import argparse
import os
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from tqdm import tqdm

from backup import backup_file
from directories import DirectoryManager, validate_backup_root
from exif_reader import DateResolver, default_strategies
from exiftool_reader import DEFAULT_EXECUTABLE, exiftool_available
from models import (
    AlreadyArchived,
    BackupOutcome,
    BatchStatistics,
    Copied,
    FatalBackupError,
    Provenance,
)
from scanner import iter_input_paths

DEFAULT_WORKERS = os.cpu_count() or 1


# ── Core pipeline ─────────────────────────────────────────────────────────────

def _log_outcome(outcome: BackupOutcome, dry_run: bool) -> None:
    if isinstance(outcome, Copied):
        action = "DRY-RUN" if dry_run else "COPY"
        tqdm.write(
            f"  {action}  {outcome.source_path}  →  {outcome.destination_path}"
            f"  ({outcome.provenance.label})"
        )
    elif isinstance(outcome, AlreadyArchived):
        tqdm.write(f"  SKIP  {outcome.source_path}")
    else:
        tqdm.write(f"  ERROR {outcome.describe()}", file=sys.stderr)


def run_batch(
    backup_root,
    paths: Iterable[str],
    workers: Optional[int] = None,
    dry_run: bool = False,
    verbose: bool = False,
    use_progress: bool = True,
    resolver: Optional[DateResolver] = None,
) -> BatchStatistics:
    """
    Back up every path on a thread pool and fold the outcomes into statistics.

    Each path yields exactly one outcome. Outcomes are folded in input order,
    so the failure list does not depend on which worker finished first.
    FatalBackupError cancels the pending work and propagates.
    """
    paths = list(paths)
    root = validate_backup_root(backup_root)
    resolver = resolver if resolver is not None else DateResolver()
    directories = DirectoryManager(dry_run=dry_run)
    outcomes: List[Optional[BackupOutcome]] = [None] * len(paths)

    executor = ThreadPoolExecutor(max_workers=workers or DEFAULT_WORKERS)
    with executor, tqdm(
        total=len(paths), unit="file", desc="Backup", ncols=80, disable=not use_progress
    ) as bar:
        futures = {
            executor.submit(backup_file, root, path, directories, resolver, dry_run): index
            for index, path in enumerate(paths)
        }
        try:
            for future in as_completed(futures):
                outcome = future.result()
                outcomes[futures[future]] = outcome
                bar.update(1)
                if verbose:
                    _log_outcome(outcome, dry_run)
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            raise

    return BatchStatistics.from_outcomes(outcomes)


# ── Output ────────────────────────────────────────────────────────────────────

def print_report(stats: BatchStatistics, dry_run: bool = False, file: Optional[TextIO] = None) -> None:
    out = file if file is not None else sys.stderr
    print("Backup Statistics", file=out)
    if dry_run:
        print("  (DRY RUN — no files were copied)", file=out)
    print("=" * 44, file=out)
    print(f"  Duplicates : {stats.duplicates:>6,}", file=out)
    print(f"  Copied     : {stats.copied:>6,}", file=out)
    print("  To classify these newly copied files, we used:", file=out)
    for provenance in Provenance:
        count = stats.copied_by_provenance[provenance]
        print(f"    {count:>6,}  {provenance.label}", file=out)
    print(f"  Failures   : {len(stats.failures):>6,}", file=out)

    if stats.failures:
        print("\nWARNING: unable to back up some files:", file=out)
        for failure in stats.failures:
            print(f"    ! {failure.describe()}", file=out)


# ── CLI ───────────────────────────────────────────────────────────────────────

def _positive_int(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="picture_backup.py",
        description=(
            "Copy pictures into a dated backup tree (ROOT/YYYY/MM/DD/). The date "
            "comes from EXIF metadata, then exiftool, then the file's "
            "modification time. Pictures already present are skipped."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python picture_backup.py ~/Pictures/Library /Volumes/SD1/DCIM/IMG_0042.JPG\n"
            "  find /Volumes/SD1 -type f | python picture_backup.py ~/Pictures/Library\n"
            "  find /Volumes/SD1 -type f | python picture_backup.py ~/Pictures/Library --dry-run --verbose\n"
        ),
    )
    parser.add_argument(
        "backup_root",
        metavar="BACKUP_ROOT",
        help="Pictures library directory.",
    )
    parser.add_argument(
        "file_path",
        nargs="?",
        default=None,
        metavar="FILE",
        help="Picture to back up. Without it, a list of pictures is read from stdin, one per line.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report the directories and copies that would be made without making them.",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=DEFAULT_WORKERS,
        metavar="N",
        help=f"Number of files processed in parallel (default: {DEFAULT_WORKERS}).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print each file's action (COPY / SKIP / ERROR).",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar (useful when piping output to log files).",
    )
    parser.add_argument(
        "--exiftool",
        default=DEFAULT_EXECUTABLE,
        metavar="PATH",
        help=f"exiftool executable used when EXIF data is missing (default: {DEFAULT_EXECUTABLE}).",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.file_path is not None and not Path(args.file_path).is_file():
        parser.error(f"{args.file_path} is not a file")

    if not exiftool_available(args.exiftool):
        print(
            f"{args.exiftool} doesn't seem to be present in $PATH. Install it to "
            f"extract dates from more picture and video formats.",
            file=sys.stderr,
        )

    if args.dry_run:
        print("[DRY RUN] No directories will be created and no files copied.", file=sys.stderr)

    # Raw bytes: a path list may hold names the locale cannot decode.
    stdin = getattr(sys.stdin, "buffer", sys.stdin)
    paths = list(iter_input_paths(args.file_path, stdin))
    resolver = DateResolver(default_strategies(exiftool=args.exiftool))

    try:
        stats = run_batch(
            args.backup_root,
            paths,
            workers=args.workers,
            dry_run=args.dry_run,
            verbose=args.verbose,
            use_progress=not args.no_progress,
            resolver=resolver,
        )
    except FatalBackupError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print_report(stats, dry_run=args.dry_run)
    return 0


if __name__ == "__main__":
    sys.exit(main())
