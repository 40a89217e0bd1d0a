import os

import pytest

from xdtorrent.fs import STD
from xdtorrent.metainfo import TorrentFile
from xdtorrent.mktorrent import make_torrent

DATA = bytes(range(256)) * 10


def test_single_file(tmp_path):
    path = os.path.join(str(tmp_path), "file.bin")
    with open(path, "wb") as f:
        f.write(DATA)
    tf = make_torrent(STD, path, 1024)
    assert tf.is_single_file()
    assert tf.torrent_name() == "file.bin"
    assert tf.total_size() == len(DATA)
    assert tf.info.num_pieces() == 3
    for idx in range(tf.info.num_pieces()):
        piece = DATA[idx * 1024 : (idx + 1) * 1024]
        assert tf.info.check_piece(idx, piece)
        assert tf.length_of_piece(idx) == len(piece)


def test_exact_multiple_of_piece_length(tmp_path):
    path = os.path.join(str(tmp_path), "even.bin")
    with open(path, "wb") as f:
        f.write(DATA[:2048])
    tf = make_torrent(STD, path, 1024)
    assert tf.info.num_pieces() * 1024 == tf.total_size()
    assert tf.info.check_piece(1, DATA[1024:2048])


def test_round_trip_keeps_infohash(tmp_path):
    path = os.path.join(str(tmp_path), "file.bin")
    with open(path, "wb") as f:
        f.write(DATA)
    tf = make_torrent(STD, path, 512)
    again = TorrentFile.bdecode(tf.bencode())
    assert again.infohash() == tf.infohash()
    assert again.info == tf.info


def test_directory(tmp_path):
    root = os.path.join(str(tmp_path), "bundle")
    STD.ensure_dir(os.path.join(root, "sub"))
    first, second = DATA[:700], DATA[700:1500]
    with open(os.path.join(root, "a.bin"), "wb") as f:
        f.write(first)
    with open(os.path.join(root, "sub", "b.bin"), "wb") as f:
        f.write(second)
    tf = make_torrent(STD, root, 1024)
    assert not tf.is_single_file()
    assert tf.torrent_name() == "bundle"
    assert [(fi.path, fi.length) for fi in tf.info.files] == [
        (["a.bin"], len(first)),
        (["sub", "b.bin"], len(second)),
    ]
    joined = first + second
    assert tf.total_size() == len(joined)
    assert tf.info.check_piece(0, joined[:1024])
    assert tf.info.check_piece(1, joined[1024:])


def test_empty_file_rejected(tmp_path):
    path = os.path.join(str(tmp_path), "empty.bin")
    open(path, "wb").close()
    with pytest.raises(ValueError):
        make_torrent(STD, path, 1024)


def test_bad_piece_length_rejected(tmp_path):
    with pytest.raises(ValueError):
        make_torrent(STD, str(tmp_path), 0)


def test_missing_path_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        make_torrent(STD, os.path.join(str(tmp_path), "missing"), 1024)