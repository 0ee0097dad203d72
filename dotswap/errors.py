"""Exceptions raised by dotswap.

Every error the CLI can report derives from DotswapError, so the command
layer catches one type and turns it into a red message plus exit code 1.
"""


class DotswapError(Exception):
    """Base class for dotswap errors."""
    pass


class PathError(DotswapError):
    """An input path could not be resolved to an absolute canonical path."""
    pass


class FileNotFound(DotswapError):
    """The file to add does not exist or is not a regular file."""
    pass


class FileNotManaged(DotswapError):
    """The path is not tracked in the store (or not in the given profile)."""
    pass


class ProfileNotFound(DotswapError):
    pass


class InvalidProfileName(DotswapError):
    pass


class CopyError(DotswapError):
    """Capturing file content into variant storage failed."""
    pass


class InstallError(DotswapError):
    """Copying a stored snapshot back to a live path failed."""
    pass


class DeleteError(DotswapError):
    pass


class StoreCorrupt(DotswapError):
    """The state file exists but cannot be parsed."""
    pass


class StoreWriteError(DotswapError):
    pass
