import os
from pathlib import Path

from dotswap.errors import PathError


def resolve(input_path):
    """Return the absolute canonical form of input_path as a string.

    Relative paths are resolved against the current working directory,
    ~ is expanded and symlinks are followed. The path does not need to exist.
    """
    raw = os.fspath(input_path) if input_path is not None else ""
    if not raw:
        raise PathError("Empty path")
    if "\x00" in raw:
        raise PathError(f"Path contains a NUL byte: {raw!r}")
    try:
        return str(Path(raw).expanduser().resolve(strict=False))
    except (OSError, RuntimeError) as e:
        raise PathError(f'Failed to canonicalize "{raw}": {e}') from e
