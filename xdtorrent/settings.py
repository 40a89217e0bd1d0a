"""Per-torrent key/value settings stored as bencode."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Dict

from xdtorrent import bencode
from xdtorrent.bencode import BencodeError


def _text(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "surrogateescape")
    if isinstance(value, str):
        return value
    raise BencodeError("setting values must be strings")


@dataclass
class Settings:
    """String options for one torrent."""

    opts: Dict[str, str] = field(default_factory=dict)

    def put(self, key: str, value: str) -> None:
        self.opts[key] = value

    def get(self, key: str, fallback: str) -> str:
        return self.opts.get(key, fallback)

    def bencode(self) -> bytes:
        return bencode.encode({"settings": self.opts})

    @classmethod
    def bdecode(cls, data: bytes) -> "Settings":
        decoded = bencode.decode(data)
        if not isinstance(decoded, Mapping):
            raise BencodeError("settings must be a dictionary")
        opts = decoded.get("settings", {})
        if not isinstance(opts, Mapping):
            raise BencodeError("settings must hold a dictionary")
        return cls({key: _text(value) for key, value in opts.items()})