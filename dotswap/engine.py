"""The profile state machine.

Every managed file is in one of two live states: showing its original, or
showing the variant of one profile. Which one is decided by the Store:

    live content == variant of the most recently activated active profile
                    that manages the file, else the original

Each operation below takes the Store, mutates it, and keeps that rule true
on disk. Operations on a single file (add, remove) touch the Store only
after every copy for that file succeeded. Operations over many files
(activate, deactivate, refresh) are best-effort per file and return a
TransitionReport listing what failed.
"""

import logging
from pathlib import Path

from dotswap.errors import DeleteError, FileNotFound, FileNotManaged, InstallError
from dotswap.store import RESERVED_PROFILE, validate_profile_name

logger = logging.getLogger(__name__)


class TransitionReport:
    """Per-file outcome of an operation.

    installed: paths that received new content
    failed: {path: InstallError} for paths that could not be written
    orphaned: {ref: DeleteError} for snapshots that were deregistered but not deleted
    """

    def __init__(self):
        self.installed = []
        self.failed = {}
        self.orphaned = {}

    @property
    def ok(self):
        return not self.failed and not self.orphaned

    def merge(self, other):
        for path in other.installed:
            self.failed.pop(path, None)
            if path not in self.installed:
                self.installed.append(path)
        self.failed.update(other.failed)
        self.orphaned.update(other.orphaned)
        return self


def _installed(path):
    report = TransitionReport()
    report.installed.append(path)
    return report


class ProfileEngine:

    def __init__(self, storage):
        self.storage = storage

    # ------------------------------------------------------------------
    # Single-file operations
    # ------------------------------------------------------------------

    def add_file(self, store, path):
        """Start managing path. Returns False if it already was managed."""
        if path in store.files:
            logger.info('"%s" is already managed', path)
            return False
        if not Path(path).is_file():
            raise FileNotFound(f'File "{path}" doesn\'t exist or is not a regular file')

        ref = self.storage.store(path, RESERVED_PROFILE)
        store.add_file(path, ref)
        logger.info('Now managing "%s"', path)
        return True

    def add(self, store, path, name=None):
        """add_file, then add_to_profile when name is given.

        Returns (added, report). If the capture fails, a file this call
        started managing is dropped again together with its original.
        """
        if name is not None and name not in store.profiles:
            validate_profile_name(name)

        added = self.add_file(store, path)
        if name is None:
            return added, None
        try:
            report = self.add_to_profile(store, path, name)
        except Exception:
            if added:
                original = store.files.pop(path).original
                try:
                    self.storage.delete(original)
                except DeleteError as e:
                    logger.warning("%s", e)
            raise
        return added, report

    def add_to_profile(self, store, path, name):
        """Capture the current content of path as the variant for profile name."""
        store.file(path)
        if name not in store.profiles:
            validate_profile_name(name)

        report = self.activate_all(store)
        if path in report.failed:
            raise InstallError(
                f'Could not bring "{path}" to a defined state before capturing it'
            ) from report.failed[path]

        ref = self.storage.store(path, name)
        store.ensure_profile(name)
        previous = store.set_variant(path, name, ref)
        if previous:
            self._discard([previous], report)
        logger.info('Added "%s" to profile "%s"', path, name)
        return report

    def remove_file(self, store, path):
        """Restore the original content of path and forget everything about it."""
        managed = store.file(path)
        report = self.activate_all(store)

        # Failing here leaves the Store untouched.
        self.storage.install(managed.original, path)
        report.merge(_installed(path))

        store.remove_file(path)
        self._discard([*managed.variants.values(), managed.original], report)
        logger.info('File "%s" removed from management', path)
        return report

    def remove_from_profile(self, store, path, name):
        """Drop the variant of path for profile name. Empty profiles are deleted."""
        managed = store.file(path)
        store.profile(name)
        if name not in managed.variants:
            raise FileNotManaged(f'File "{path}" not found in profile "{name}"')

        report = self.activate_all(store)
        live = store.live_profile(path)
        if live is not None and live.name == name:
            replacement = store.live_profile(path, exclude=name)
            ref = managed.variants[replacement.name] if replacement else managed.original
            self.storage.install(ref, path)
            report.merge(_installed(path))

        ref = store.drop_variant(path, name)
        self._discard([ref], report)
        logger.info('File "%s" removed from profile "%s"', path, name)
        if not store.members(name):
            logger.info('Profile "%s" is empty now, removing it', name)
            store.remove_profile(name)
        return report

    # ------------------------------------------------------------------
    # Multi-file operations
    # ------------------------------------------------------------------

    def activate(self, store, name, exclusive=False):
        """Install profile name's variants and mark it the most recently activated.

        With exclusive=True every other profile is deactivated first.
        """
        store.profile(name)
        report = self.deactivate_all(store) if exclusive else TransitionReport()

        logger.info('Activating profile "%s"', name)
        step = TransitionReport()
        for managed in store.members(name):
            self._install(step, managed.path, managed.variants[name])
        store.mark_active(name)
        return report.merge(step)

    def deactivate(self, store, name):
        """Mark name inactive and hand each of its files to the next winner (or the original)."""
        store.profile(name)
        store.mark_inactive(name)

        logger.info('Deactivating profile "%s"', name)
        report = TransitionReport()
        for managed in store.members(name):
            winner = store.live_profile(managed.path)
            ref = managed.variants[winner.name] if winner else managed.original
            self._install(report, managed.path, ref)
        return report

    def deactivate_all(self, store):
        """Deactivate every profile and restore every managed file's original."""
        logger.info("Deactivating all profiles ...")
        for profile in store.active_profiles():
            store.mark_inactive(profile.name)

        report = TransitionReport()
        for path in sorted(store.files):
            self._install(report, path, store.files[path].original)
        return report

    def activate_all(self, store):
        """Re-install the winning variant of every file managed by an active profile.

        Files no active profile manages are left alone.
        """
        report = TransitionReport()
        for path in sorted(store.files):
            winner = store.live_profile(path)
            if winner is None:
                continue
            self._install(report, path, store.files[path].variants[winner.name])
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _install(self, report, path, ref):
        try:
            self.storage.install(ref, path)
        except InstallError as e:
            logger.warning("%s", e)
            report.failed[path] = e
        else:
            report.installed.append(path)

    def _discard(self, refs, report):
        """Delete snapshots whose Store references are already gone."""
        for ref in refs:
            try:
                self.storage.delete(ref)
            except DeleteError as e:
                logger.warning("%s", e)
                report.orphaned[ref] = e
