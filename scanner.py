import os
from typing import IO, Iterable, Iterator, Optional, Union


def read_path_list(stream: Iterable[Union[str, bytes]]) -> Iterator[str]:
    """
    Yield one path per line of a newline-delimited list (e.g. `find` output).
    Byte lines are decoded like file names (os.fsdecode), so names that are
    not valid in the locale's encoding still reach the file system intact.
    Line endings are stripped; other whitespace belongs to the file name.
    Blank lines are skipped.
    """
    for line in stream:
        if isinstance(line, bytes):
            line = os.fsdecode(line)
        path = line.rstrip("\r\n")
        if path:
            yield path


def iter_input_paths(file_path: Optional[str], stream: IO) -> Iterator[str]:
    """The single file_path when given, otherwise the paths listed on stream."""
    if file_path is not None:
        yield file_path
        return
    yield from read_path_list(stream)
