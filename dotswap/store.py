"""Persisted registry of managed files and profiles.

The state file is JSON:

    {
      "version": 1,
      "seq": 3,
      "profiles": {"work": {"active": true, "activated_seq": 3}},
      "files": {
        "/home/me/.gitconfig": {
          "original": "<ref>",
          "variants": {"work": "<ref>"}
        }
      }
    }

A Store is a plain value: load it, hand it to one engine operation, save it.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from dotswap.errors import (
    FileNotManaged,
    InvalidProfileName,
    ProfileNotFound,
    StoreCorrupt,
    StoreWriteError,
)

logger = logging.getLogger(__name__)

STORE_VERSION = 1

# Label used for original snapshots, so it can never be a profile name.
RESERVED_PROFILE = "org"


def validate_profile_name(name):
    if not name or not name.strip():
        raise InvalidProfileName("Profile name must not be empty")
    if name == RESERVED_PROFILE:
        raise InvalidProfileName(f'The profile name "{RESERVED_PROFILE}" is reserved, please use another')
    if "/" in name or "\\" in name or name.startswith("."):
        raise InvalidProfileName(f'Invalid profile name "{name}": no path separators or leading dot')
    return name


@dataclass
class ManagedFile:
    path: str
    original: str
    variants: dict = field(default_factory=dict)


@dataclass
class Profile:
    name: str
    active: bool = False
    activated_seq: int = 0


@dataclass
class Store:
    files: dict = field(default_factory=dict)
    profiles: dict = field(default_factory=dict)
    seq: int = 0

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def file(self, path):
        try:
            return self.files[path]
        except KeyError:
            raise FileNotManaged(f'File "{path}" is not managed') from None

    def profile(self, name):
        try:
            return self.profiles[name]
        except KeyError:
            raise ProfileNotFound(f'Profile "{name}" doesn\'t exist') from None

    def members(self, name):
        """Files that have a variant for profile `name`, in path order."""
        return [self.files[p] for p in sorted(self.files) if name in self.files[p].variants]

    def active_profiles(self):
        """Active profiles, least recently activated first."""
        active = [p for p in self.profiles.values() if p.active]
        return sorted(active, key=lambda p: (p.activated_seq, p.name))

    def live_profile(self, path, exclude=None):
        """The profile whose variant should be live at `path`, or None for the original.

        Among active profiles managing the file the most recently activated wins.
        """
        managed = self.file(path)
        winner = None
        for profile in self.active_profiles():
            if profile.name == exclude or profile.name not in managed.variants:
                continue
            winner = profile
        return winner

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def add_file(self, path, original):
        if path in self.files:
            raise ValueError(f'File "{path}" is already managed')
        managed = ManagedFile(path=path, original=original)
        self.files[path] = managed
        return managed

    def remove_file(self, path):
        return self.files.pop(self.file(path).path)

    def ensure_profile(self, name):
        if name in self.profiles:
            return self.profiles[name]
        validate_profile_name(name)
        profile = Profile(name=name)
        self.profiles[name] = profile
        return profile

    def remove_profile(self, name):
        self.profile(name)
        if self.members(name):
            raise ValueError(f'Profile "{name}" still has files')
        return self.profiles.pop(name)

    def set_variant(self, path, name, ref):
        """Register ref as the variant of (path, name). Returns the replaced ref, if any."""
        managed = self.file(path)
        self.profile(name)
        previous = managed.variants.get(name)
        managed.variants[name] = ref
        return previous

    def drop_variant(self, path, name):
        managed = self.file(path)
        if name not in managed.variants:
            raise FileNotManaged(f'File "{path}" not found in profile "{name}"')
        return managed.variants.pop(name)

    def mark_active(self, name):
        profile = self.profile(name)
        self.seq += 1
        profile.active = True
        profile.activated_seq = self.seq
        return profile

    def mark_inactive(self, name):
        profile = self.profile(name)
        profile.active = False
        return profile

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self):
        return {
            "version": STORE_VERSION,
            "seq": self.seq,
            "profiles": {
                name: {"active": p.active, "activated_seq": p.activated_seq}
                for name, p in sorted(self.profiles.items())
            },
            "files": {
                path: {"original": f.original, "variants": dict(sorted(f.variants.items()))}
                for path, f in sorted(self.files.items())
            },
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise StoreCorrupt("State must be a JSON object")
        version = data.get("version", STORE_VERSION)
        if version != STORE_VERSION:
            raise StoreCorrupt(f"Unsupported state version: {version!r}")
        try:
            store = cls(seq=int(data.get("seq", 0)))
            for name, raw in data.get("profiles", {}).items():
                store.profiles[name] = Profile(
                    name=name,
                    active=bool(raw.get("active", False)),
                    activated_seq=int(raw.get("activated_seq", 0)),
                )
            for path, raw in data.get("files", {}).items():
                variants = dict(raw.get("variants", {}))
                store.files[path] = ManagedFile(path=path, original=raw["original"], variants=variants)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StoreCorrupt(f"Malformed state: {e}") from e

        for managed in store.files.values():
            for ref in [managed.original, *managed.variants.values()]:
                if not isinstance(ref, str) or not ref:
                    raise StoreCorrupt(f'File "{managed.path}" has an invalid snapshot ref: {ref!r}')

        # Activation stamps must stay unique and increasing.
        store.seq = max([store.seq, *(p.activated_seq for p in store.profiles.values())])

        for managed in store.files.values():
            dangling = set(managed.variants) - set(store.profiles)
            if dangling:
                raise StoreCorrupt(
                    f'File "{managed.path}" references unknown profile(s): {sorted(dangling)}'
                )
        return store


def load_store(path):
    """Read the state file. A missing file yields an empty Store."""
    path = Path(path)
    if not path.exists():
        logger.info('State file "%s" doesn\'t exist, starting empty', path)
        return Store()
    if path.is_dir():
        raise StoreCorrupt(f'State file "{path}" is a directory')
    try:
        data = json.loads(path.read_text())
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StoreCorrupt(f'Failed to parse state file "{path}": {e}') from e
    return Store.from_dict(data)


def save_store(store, path):
    """Write the state file via temp-file-then-rename so the old copy survives a failed write."""
    path = Path(path)
    payload = json.dumps(store.to_dict(), indent=2) + "\n"
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StoreWriteError(f'Failed writing "{path}": {e}') from e
    logger.debug('Saved state to "%s"', path)
