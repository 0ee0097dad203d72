from pathlib import Path

import pytest

from dotswap.errors import CopyError, DeleteError, InstallError
from dotswap.variants import create_variant_storage
from dotswap.variants.local import LocalVariantStorage
from dotswap.variants.sibling import SiblingVariantStorage


def test_local_store_install_delete(tmp_path, make_file):
    storage = LocalVariantStorage(tmp_path / "variants")
    path = make_file("a.conf", "X")

    ref = storage.store(path, "org")
    assert storage.path(ref).read_text() == "X"

    Path(path).write_text("changed")
    storage.install(ref, path)
    assert Path(path).read_text() == "X"

    storage.delete(ref)
    assert not storage.path(ref).exists()
    storage.delete(ref)


def test_each_capture_gets_a_new_ref(tmp_path, make_file):
    storage = LocalVariantStorage(tmp_path / "variants")
    path = make_file("a.conf", "X")
    first = storage.store(path, "work")
    Path(path).write_text("Y")
    second = storage.store(path, "work")

    assert first != second
    assert storage.path(first).read_text() == "X"
    assert storage.path(second).read_text() == "Y"


def test_store_of_missing_source_raises(tmp_path):
    storage = LocalVariantStorage(tmp_path / "variants")
    with pytest.raises(CopyError):
        storage.store(tmp_path / "missing.conf", "org")
    assert not (tmp_path / "variants").exists() or not any((tmp_path / "variants").iterdir())


def test_install_into_missing_directory_raises(tmp_path, make_file):
    storage = LocalVariantStorage(tmp_path / "variants")
    ref = storage.store(make_file("a.conf", "X"), "org")
    with pytest.raises(InstallError):
        storage.install(ref, tmp_path / "no" / "such" / "dir" / "a.conf")


def test_sibling_snapshots_live_next_to_the_file(make_file):
    storage = SiblingVariantStorage()
    path = make_file("a.conf", "X")

    ref = storage.store(path, "work")
    snapshot = storage.path(ref)
    assert snapshot.parent == Path(path).parent
    assert snapshot.name.startswith("a.conf.work.")
    assert snapshot.read_text() == "X"

    storage.delete(ref)
    assert not snapshot.exists()


def test_factory_picks_backend(tmp_path):
    local = create_variant_storage({"variant_dir": str(tmp_path / "v")})
    assert isinstance(local, LocalVariantStorage)
    assert local.root == tmp_path / "v"

    assert isinstance(create_variant_storage({"variant_backend": "sibling"}), SiblingVariantStorage)

    with pytest.raises(ValueError):
        create_variant_storage({"variant_backend": "s3"})


def test_default_local_root_is_under_dotswap_home(dotswap_home):
    assert create_variant_storage().root == dotswap_home / "variants"


@pytest.mark.parametrize("bad_ref", ["", "../escape", None])
def test_local_bad_ref_raises_storage_errors(tmp_path, make_file, bad_ref):
    storage = LocalVariantStorage(tmp_path / "variants")
    with pytest.raises(InstallError):
        storage.install(bad_ref, make_file("a.conf", "X"))
    with pytest.raises(DeleteError):
        storage.delete(bad_ref)


def test_sibling_bad_ref_raises_storage_errors(make_file):
    storage = SiblingVariantStorage()
    with pytest.raises(InstallError):
        storage.install("relative/ref", make_file("a.conf", "X"))
    with pytest.raises(DeleteError):
        storage.delete("")
