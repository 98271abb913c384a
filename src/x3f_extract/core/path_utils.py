"""Bounded output and temporary path synthesis."""

import os
from typing import Optional, Tuple

from .exceptions import PathTooLongError

MAXPATH = 1000
EXTMAX = 10
MAXOUTPATH = MAXPATH + EXTMAX
MAXTMPPATH = MAXOUTPATH + EXTMAX

TMP_SUFFIX = ".tmp"

_SEPARATORS = tuple(sep for sep in ("/", os.sep, os.altsep) if sep)


class BoundedPath:
    """
    A path buffer with a fixed capacity.

    Copies and appends that would push the value past ``capacity``
    characters raise PathTooLongError and leave the current value
    unchanged; nothing is ever truncated.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        self.value = ""

    def copy(self, src: str) -> "BoundedPath":
        if len(src) > self.capacity:
            raise PathTooLongError(src, self.capacity)
        self.value = src
        return self

    def append(self, src: str) -> "BoundedPath":
        candidate = self.value + src
        if len(candidate) > self.capacity:
            raise PathTooLongError(candidate, self.capacity)
        self.value = candidate
        return self

    def __str__(self) -> str:
        return self.value

    def __len__(self) -> int:
        return len(self.value)


def basename(path: str) -> str:
    """Everything after the last path separator, or the whole path if none."""
    cut = max(path.rfind(sep) for sep in _SEPARATORS)
    return path[cut + 1:]


def make_paths(
    input_path: str, output_dir: Optional[str], extension: str
) -> Tuple[str, str]:
    """
    Build the final output path and the temporary path for one output.

    Without an output directory the output sits next to the input;
    otherwise it is ``<output_dir>/<basename>``. The input's own
    extension is kept, so ``c.x3f`` becomes ``c.x3f.dng``.

    Args:
        input_path: Path of the container being read
        output_dir: Optional directory for all outputs
        extension: Extension to append, including the leading dot

    Returns:
        Tuple of (output_path, temp_path)

    Raises:
        PathTooLongError: If any intermediate path exceeds its capacity
    """
    base = BoundedPath(MAXPATH)
    if output_dir is None:
        base.copy(input_path)
    else:
        base.copy(output_dir).append("/").append(basename(input_path))

    output_path = BoundedPath(MAXOUTPATH).copy(base.value).append(extension)
    temp_path = BoundedPath(MAXTMPPATH).copy(output_path.value).append(TMP_SUFFIX)

    return output_path.value, temp_path.value
