"""Snapshots stored next to the file they belong to.

    ~/.gitconfig.org.1a2b3c4d     original
    ~/.gitconfig.work.5e6f7a8b    variant for profile "work"

Handy when the managed files live on a volume that moves between machines:
the variants travel with them. The ref is the snapshot's absolute path.
"""

import logging
import secrets
from pathlib import Path

from dotswap.errors import CopyError, DeleteError, InstallError
from dotswap.variants.base import VariantStorage, copy_via_temp

logger = logging.getLogger(__name__)


class SiblingVariantStorage(VariantStorage):

    def store(self, source_path, label):
        source = Path(source_path)
        if not source.is_file():
            raise CopyError(f'Cannot snapshot "{source}": not a regular file')
        target = source.with_name(f"{source.name}.{label}.{secrets.token_hex(4)}")
        while target.exists():
            target = source.with_name(f"{source.name}.{label}.{secrets.token_hex(4)}")
        try:
            copy_via_temp(source, target)
        except OSError as e:
            raise CopyError(f'Error copying "{source}" to "{target}": {e}') from e
        logger.debug('Stored "%s" (%s) as %s', source, label, target)
        return str(target)

    def install(self, ref, destination):
        try:
            copy_via_temp(self.path(ref), destination)
        except ValueError as e:
            raise InstallError(f'Cannot install into "{destination}": {e}') from e
        except OSError as e:
            raise InstallError(f'Error copying "{ref}" to "{destination}": {e}') from e

    def delete(self, ref):
        try:
            self.path(ref).unlink(missing_ok=True)
        except ValueError as e:
            raise DeleteError(str(e)) from e
        except OSError as e:
            raise DeleteError(f'Failed to remove file "{ref}": {e}') from e

    def path(self, ref):
        if not isinstance(ref, str) or not ref:
            raise ValueError(f"Invalid variant ref: {ref!r}")
        path = Path(ref)
        if not path.is_absolute():
            raise ValueError(f"Invalid variant ref: {ref!r}")
        return path
