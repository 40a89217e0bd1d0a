"""Create torrent metainfo from files on a filesystem driver."""

from __future__ import annotations

import hashlib
import stat as _stat
from typing import Iterator, List, Tuple

from xdtorrent.fs import Driver
from xdtorrent.metainfo import FileInfo, Info, TorrentFile


def _read_full(f, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = f.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _walk(driver: Driver, root: str, prefix: List[str]) -> Iterator[Tuple[List[str], str]]:
    for entry in driver.glob(driver.join(root, "*")):
        name = driver.split(entry)[1]
        if _stat.S_ISDIR(driver.stat(entry).st_mode):
            yield from _walk(driver, entry, prefix + [name])
        else:
            yield prefix + [name], entry


def _hash_pieces(driver: Driver, paths: List[str], piece_length: int) -> Tuple[bytes, List[int]]:
    """SHA-1 of every piece across the files in order, and each file's length."""
    pieces = bytearray()
    lengths: List[int] = []
    pending = bytearray()
    for path in paths:
        length = 0
        with driver.open_read(path) as f:
            while True:
                chunk = _read_full(f, piece_length)
                if not chunk:
                    break
                length += len(chunk)
                pending += chunk
                while len(pending) >= piece_length:
                    pieces += hashlib.sha1(pending[:piece_length]).digest()
                    del pending[:piece_length]
        lengths.append(length)
    if pending:
        pieces += hashlib.sha1(pending).digest()
    return bytes(pieces), lengths


def make_torrent(driver: Driver, path: str, piece_length: int) -> TorrentFile:
    """Build a torrent for a file or directory; raises ValueError if it holds no data."""
    if piece_length <= 0:
        raise ValueError("piece length must be positive")
    st = driver.stat(path)
    name = driver.split(path.rstrip("/\\"))[1]
    if _stat.S_ISDIR(st.st_mode):
        entries = list(_walk(driver, path, []))
        pieces, lengths = _hash_pieces(driver, [full for _, full in entries], piece_length)
        if not pieces:
            raise ValueError(f"no data to make a torrent of in {path}")
        files = [FileInfo(length, rel) for (rel, _), length in zip(entries, lengths)]
        info = Info(piece_length=piece_length, pieces=pieces, name=name, files=files)
    else:
        pieces, lengths = _hash_pieces(driver, [path], piece_length)
        if not pieces:
            raise ValueError(f"cannot make a torrent of empty file {path}")
        info = Info(piece_length=piece_length, pieces=pieces, name=name, length=lengths[0])
    return TorrentFile.from_info(info)