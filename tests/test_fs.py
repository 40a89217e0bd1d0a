import os

import pytest

from xdtorrent.fs import STD, StdFS


def test_join_cleans_and_skips_empty():
    fs = StdFS()
    assert fs.join("a", "", "b") == os.path.join("a", "b")
    assert fs.join("a", "x", "..", "b") == os.path.join("a", "b")
    assert fs.join("", "") == ""


def test_split_keeps_trailing_separator():
    path = os.path.join("a", "b", "c")
    assert STD.split(path) == (os.path.join("a", "b") + os.sep, "c")
    assert STD.split("name") == ("", "name")


def test_ensure_file_creates_zero_filled(tmp_path):
    target = os.path.join(str(tmp_path), "sub", "dir", "f.bin")
    STD.ensure_file(target, 100)
    assert STD.file_exists(target)
    with STD.open_read(target) as f:
        assert f.read() == bytes(100)
    assert STD.stat(target).st_size == 100


def test_ensure_file_keeps_existing(tmp_path):
    target = os.path.join(str(tmp_path), "f.bin")
    with open(target, "wb") as f:
        f.write(b"data")
    STD.ensure_file(target, 10)
    with open(target, "rb") as f:
        assert f.read() == b"data"


def test_open_write_does_not_truncate(tmp_path):
    target = os.path.join(str(tmp_path), "f.bin")
    with open(target, "wb") as f:
        f.write(b"abcdef")
    with STD.open_write(target) as f:
        f.write(b"XY")
    with STD.open_read(target) as f:
        assert f.read() == b"XYcdef"


def test_move_creates_destination_dir(tmp_path):
    src = os.path.join(str(tmp_path), "a.txt")
    with open(src, "wb") as f:
        f.write(b"x")
    dst = os.path.join(str(tmp_path), "new", "place", "a.txt")
    STD.move(src, dst)
    assert not STD.file_exists(src)
    assert STD.file_exists(dst)


def test_remove_all_and_missing(tmp_path):
    root = os.path.join(str(tmp_path), "tree")
    STD.ensure_file(os.path.join(root, "x", "y.bin"), 1)
    STD.remove_all(root)
    assert not STD.file_exists(root)
    STD.remove_all(root)
    assert not STD.file_exists(root)


def test_remove_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        STD.remove(os.path.join(str(tmp_path), "nope"))


def test_glob_sorted(tmp_path):
    for name in ("b.torrent", "a.torrent", "c.txt"):
        STD.ensure_file(os.path.join(str(tmp_path), name), 0)
    found = STD.glob(STD.join(str(tmp_path), "*.torrent"))
    assert [os.path.basename(p) for p in found] == ["a.torrent", "b.torrent"]


def test_context_manager_returns_driver():
    with StdFS() as fs:
        assert fs.join("a", "b") == os.path.join("a", "b")