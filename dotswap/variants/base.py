import logging
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


def copy_via_temp(source, destination):
    """Copy source over destination without ever exposing a half-written file.

    Content goes to a hidden temporary next to destination first and is then
    renamed into place. Raises OSError; the temporary is removed on failure.
    """
    source = Path(source)
    destination = Path(destination)
    tmp = destination.parent / f".{destination.name}.dotswap-tmp"
    logger.debug('Creating "%s" as a copy of "%s"', destination, source)
    try:
        shutil.copy2(source, tmp)
        os.replace(tmp, destination)
    except OSError:
        if tmp.exists():
            tmp.unlink()
        raise


class VariantStorage(ABC):
    """Base interface for variant snapshot backends.

    Implementations: LocalVariantStorage (default), SiblingVariantStorage.
    Refs returned by store() are opaque strings; never edit the content behind one.
    """

    @abstractmethod
    def store(self, source_path, label):
        """Capture the content of source_path. Returns a new ref.

        label is "org" for originals, the profile name for variants.
        """
        pass

    @abstractmethod
    def install(self, ref, destination):
        """Copy the content behind ref over the live file at destination."""
        pass

    @abstractmethod
    def delete(self, ref):
        """Delete the content behind ref. Deleting a missing ref is a no-op."""
        pass

    @abstractmethod
    def path(self, ref):
        """Filesystem location of the content behind ref."""
        pass
