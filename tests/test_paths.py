import os

import pytest

from dotswap.errors import PathError
from dotswap.paths import resolve


def test_relative_path_resolves_against_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert resolve("a.conf") == str((tmp_path / "a.conf").resolve())


def test_dot_segments_are_collapsed(tmp_path):
    nested = tmp_path / "x" / "y"
    nested.mkdir(parents=True)
    assert resolve(str(nested / ".." / "b.conf")) == str((tmp_path / "x" / "b.conf").resolve())


def test_home_is_expanded(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert resolve("~/.gitconfig") == str((tmp_path / ".gitconfig").resolve())


def test_symlinks_are_followed(tmp_path):
    target = tmp_path / "real.conf"
    target.write_text("x")
    link = tmp_path / "link.conf"
    os.symlink(target, link)
    assert resolve(str(link)) == str(target.resolve())


def test_missing_file_still_resolves(tmp_path):
    assert resolve(str(tmp_path / "nope")) == str((tmp_path / "nope").resolve())


@pytest.mark.parametrize("bad", ["", "bad\x00name"])
def test_unresolvable_input_raises(bad):
    with pytest.raises(PathError):
        resolve(bad)
