import pytest

from dotswap.engine import ProfileEngine
from dotswap.errors import CopyError, DeleteError, InstallError
from dotswap.store import Store
from dotswap.variants.local import LocalVariantStorage


class FlakyStorage(LocalVariantStorage):
    """Local storage that fails on selected labels, destinations or refs."""

    def __init__(self, root):
        super().__init__(root)
        self.fail_store = set()
        self.fail_install = set()
        self.fail_delete = set()

    def store(self, source_path, label):
        if label in self.fail_store:
            raise CopyError(f'Simulated failure capturing "{source_path}" for {label}')
        return super().store(source_path, label)

    def install(self, ref, destination):
        if str(destination) in self.fail_install:
            raise InstallError(f'Simulated failure writing "{destination}"')
        super().install(ref, destination)

    def delete(self, ref):
        if ref in self.fail_delete:
            raise DeleteError(f"Simulated failure deleting {ref}")
        super().delete(ref)


@pytest.fixture(autouse=True)
def dotswap_home(tmp_path, monkeypatch):
    """Point DOTSWAP_HOME at a temp dir and run every test from an empty cwd."""
    home = tmp_path / "home"
    monkeypatch.setenv("DOTSWAP_HOME", str(home))
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return home


@pytest.fixture
def storage(tmp_path):
    return FlakyStorage(tmp_path / "variants")


@pytest.fixture
def engine(storage):
    return ProfileEngine(storage)


@pytest.fixture
def store():
    return Store()


@pytest.fixture
def make_file(tmp_path):
    def _make(name, content):
        path = (tmp_path / "files" / name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return str(path.resolve())
    return _make