"""BitTorrent metainfo (.torrent) files."""

from __future__ import annotations

import hashlib
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, List, Optional

from xdtorrent import bencode, log
from xdtorrent.bencode import BencodeError


def _join(*parts: str) -> str:
    kept = [p for p in parts if p]
    if not kept:
        return ""
    return os.path.normpath(os.path.join(*kept))


def _as_str(value: Any, name: str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "surrogateescape")
    if isinstance(value, str):
        return value
    raise BencodeError(f"{name} must be a string")


def _as_bytes(value: Any, name: str) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8", "surrogateescape")
    raise BencodeError(f"{name} must be a string")


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise BencodeError(f"{name} must be an integer")


def _as_list(value: Any, name: str) -> list:
    if isinstance(value, list):
        return value
    raise BencodeError(f"{name} must be a list")


def _as_dict(value: Any, name: str) -> Mapping:
    if isinstance(value, Mapping):
        return value
    raise BencodeError(f"{name} must be a dictionary")


@dataclass
class FileInfo:
    """One file of a multi-file torrent."""

    length: int = 0
    path: List[str] = field(default_factory=list)
    md5sum: Optional[bytes] = None

    def file_path(self, base: str = "") -> str:
        """The file's path, below ``base`` when given."""
        return _join(base, *self.path)

    def to_dict(self) -> dict:
        d: dict = {"length": self.length, "path": list(self.path)}
        if self.md5sum:
            d["md5sum"] = self.md5sum
        return d

    @classmethod
    def from_dict(cls, data: Any) -> "FileInfo":
        d = _as_dict(data, "file entry")
        md5 = d.get("md5sum")
        return cls(
            length=_as_int(d.get("length", 0), "length"),
            path=[_as_str(p, "path element") for p in _as_list(d.get("path", []), "path")],
            md5sum=_as_bytes(md5, "md5sum") if md5 is not None else None,
        )


@dataclass
class Info:
    """The info section of a torrent."""

    piece_length: int = 0
    pieces: bytes = b""
    name: str = ""
    files: List[FileInfo] = field(default_factory=list)
    private: Optional[int] = None
    length: int = 0
    md5sum: Optional[bytes] = None

    def get_files(self) -> List[FileInfo]:
        """Files of the torrent; a single-file torrent yields one entry."""
        if self.length > 0:
            return [FileInfo(self.length, [self.name], self.md5sum)]
        return list(self.files)

    def num_pieces(self) -> int:
        return len(self.pieces) // 20

    def check_piece(self, index: int, data: bytes) -> bool:
        """True if ``data`` hashes to the expected digest of piece ``index``."""
        if 0 <= index < self.num_pieces():
            digest = hashlib.sha1(data).digest()
            expected = self.pieces[index * 20 : index * 20 + 20]
            if digest == expected:
                return True
            log.warn("piece missmatch: %s != %s", digest.hex(), expected.hex())
            return False
        log.error("piece index out of bounds")
        return False

    def to_dict(self) -> dict:
        d: dict = {"piece length": self.piece_length, "pieces": self.pieces, "name": self.name}
        if self.files:
            d["files"] = [f.to_dict() for f in self.files]
        if self.private is not None:
            d["private"] = self.private
        if self.length:
            d["length"] = self.length
        if self.md5sum:
            d["md5sum"] = self.md5sum
        return d

    @classmethod
    def from_dict(cls, data: Any) -> "Info":
        d = _as_dict(data, "info")
        private = d.get("private")
        md5 = d.get("md5sum")
        return cls(
            piece_length=_as_int(d.get("piece length", 0), "piece length"),
            pieces=_as_bytes(d.get("pieces", b""), "pieces"),
            name=_as_str(d.get("name", b""), "name"),
            files=[FileInfo.from_dict(f) for f in _as_list(d.get("files", []), "files")],
            private=_as_int(private, "private") if private is not None else None,
            length=_as_int(d.get("length", 0), "length"),
            md5sum=_as_bytes(md5, "md5sum") if md5 is not None else None,
        )


def _skip(data: bytes, pos: int) -> int:
    lead = data[pos : pos + 1]
    if lead == b"i":
        return data.index(b"e", pos) + 1
    if lead in (b"l", b"d"):
        pos += 1
        while data[pos : pos + 1] != b"e":
            if pos >= len(data):
                raise BencodeError("unexpected end of data")
            pos = _skip(data, pos)
        return pos + 1
    if lead.isdigit():
        colon = data.index(b":", pos)
        return colon + 1 + int(data[pos:colon])
    raise BencodeError(f"invalid token at offset {pos}")


def _raw_info(data: bytes) -> Optional[bytes]:
    """The exact bytes of the top-level ``info`` value, as found in the file."""
    pos = 1
    while data[pos : pos + 1] != b"e":
        colon = data.index(b":", pos)
        key_end = _skip(data, pos)
        key = data[colon + 1 : key_end]
        value_end = _skip(data, key_end)
        if key == b"info":
            return data[key_end:value_end]
        pos = value_end
    return None


@dataclass
class TorrentFile:
    """A torrent file; ``raw_info`` holds the info section's exact bytes."""

    info: Info = field(default_factory=Info)
    raw_info: bytes = b""
    announce: str = ""
    announce_list: List[List[str]] = field(default_factory=list)
    created: int = 0
    comment: bytes = b""
    created_by: bytes = b""
    encoding: bytes = b""

    def length_of_piece(self, idx: int) -> int:
        """Length of piece ``idx``; the last piece may be short."""
        np = self.info.num_pieces()
        pl = self.info.piece_length
        if np == idx + 1:
            return pl - (np * pl - self.total_size())
        return pl

    def total_size(self) -> int:
        if self.is_single_file():
            return self.info.length
        return sum(f.length for f in self.info.files)

    def announce_urls(self) -> List[str]:
        """The announce URL followed by every non-empty announce-list entry."""
        urls = [self.announce] if self.announce else []
        urls.extend(a for tier in self.announce_list for a in tier if a)
        return urls

    def torrent_name(self) -> str:
        return self.info.name

    def infohash(self) -> bytes:
        """SHA-1 digest of the raw info section."""
        return hashlib.sha1(self.raw_info).digest()

    def is_single_file(self) -> bool:
        return self.info.length > 0

    def is_private(self) -> bool:
        return self.info.private is not None and self.info.private > 0

    def bencode(self) -> bytes:
        """Serialise the torrent, keeping the info section's bytes intact."""
        if not self.raw_info:
            raise BencodeError("torrent has no info section")
        fields = (
            ("announce", self.announce),
            ("announce-list", self.announce_list),
            ("comment", self.comment),
            ("created", self.created),
            ("created by", self.created_by),
            ("encoding", self.encoding),
        )
        out = [b"d"]
        for key, value in fields:
            out.append(bencode.encode(key))
            out.append(bencode.encode(value))
        out.append(b"4:info")
        out.append(self.raw_info)
        out.append(b"e")
        return b"".join(out)

    @classmethod
    def bdecode(cls, data: bytes) -> "TorrentFile":
        raw = bytes(data)
        decoded = bencode.decode(raw)
        if not isinstance(decoded, dict):
            raise BencodeError("torrent must be a dictionary")
        raw_info = _raw_info(raw)
        if raw_info is None:
            raise BencodeError("torrent has no info section")
        announce_list = [
            [_as_str(a, "announce") for a in _as_list(tier, "announce tier")]
            for tier in _as_list(decoded.get("announce-list", []), "announce-list")
        ]
        return cls(
            info=Info.from_dict(bencode.decode(raw_info)),
            raw_info=raw_info,
            announce=_as_str(decoded.get("announce", b""), "announce"),
            announce_list=announce_list,
            created=_as_int(decoded.get("created", 0), "created"),
            comment=_as_bytes(decoded.get("comment", b""), "comment"),
            created_by=_as_bytes(decoded.get("created by", b""), "created by"),
            encoding=_as_bytes(decoded.get("encoding", b""), "encoding"),
        )

    @classmethod
    def from_info_bytes(cls, data: bytes) -> "TorrentFile":
        raw = bytes(data)
        return cls(info=Info.from_dict(bencode.decode(raw)), raw_info=raw)

    @classmethod
    def from_info(cls, info: Info) -> "TorrentFile":
        return cls(info=info, raw_info=bencode.encode(info.to_dict()))