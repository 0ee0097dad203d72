import logging
import uuid
from pathlib import Path

from dotswap.errors import CopyError, DeleteError, InstallError
from dotswap.variants.base import VariantStorage, copy_via_temp

logger = logging.getLogger(__name__)


class LocalVariantStorage(VariantStorage):
    """Snapshots kept in one flat directory, named by a random hex ref."""

    def __init__(self, root):
        self.root = Path(root)

    def store(self, source_path, label):
        source = Path(source_path)
        if not source.is_file():
            raise CopyError(f'Cannot snapshot "{source}": not a regular file')
        ref = uuid.uuid4().hex
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            copy_via_temp(source, self.path(ref))
        except OSError as e:
            raise CopyError(f'Error copying "{source}" into variant storage: {e}') from e
        logger.debug('Stored "%s" (%s) as %s', source, label, ref)
        return ref

    def install(self, ref, destination):
        try:
            snapshot = self.path(ref)
        except ValueError as e:
            raise InstallError(f'Cannot install into "{destination}": {e}') from e
        try:
            copy_via_temp(snapshot, destination)
        except OSError as e:
            raise InstallError(f'Error copying "{snapshot}" to "{destination}": {e}') from e

    def delete(self, ref):
        try:
            snapshot = self.path(ref)
        except ValueError as e:
            raise DeleteError(str(e)) from e
        try:
            snapshot.unlink(missing_ok=True)
        except OSError as e:
            raise DeleteError(f'Failed to remove file "{snapshot}": {e}') from e

    def path(self, ref):
        if not isinstance(ref, str) or not ref or "/" in ref or ref.startswith("."):
            raise ValueError(f"Invalid variant ref: {ref!r}")
        return self.root / ref
