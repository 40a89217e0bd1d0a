"""Bencoding: the serialisation format of torrent files."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_INT_RE = re.compile(rb"-?(0|[1-9][0-9]*)\Z")


class BencodeError(ValueError):
    """Raised for data that cannot be bencoded or bdecoded."""


def _key_bytes(key: Any) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8", "surrogateescape")
    if isinstance(key, (bytes, bytearray)):
        return bytes(key)
    raise BencodeError(f"dictionary key must be str or bytes, not {type(key).__name__}")


def _encode_into(obj: Any, out: list) -> None:
    if isinstance(obj, bool):
        raise BencodeError("cannot bencode bool")
    if isinstance(obj, int):
        out.append(b"i%de" % obj)
    elif isinstance(obj, (bytes, bytearray, memoryview)):
        raw = bytes(obj)
        out.append(b"%d:" % len(raw))
        out.append(raw)
    elif isinstance(obj, str):
        raw = obj.encode("utf-8", "surrogateescape")
        out.append(b"%d:" % len(raw))
        out.append(raw)
    elif isinstance(obj, (list, tuple)):
        out.append(b"l")
        for item in obj:
            _encode_into(item, out)
        out.append(b"e")
    elif isinstance(obj, Mapping):
        out.append(b"d")
        for key, value in sorted(((_key_bytes(k), v) for k, v in obj.items()), key=lambda kv: kv[0]):
            out.append(b"%d:" % len(key))
            out.append(key)
            _encode_into(value, out)
        out.append(b"e")
    else:
        raise BencodeError(f"cannot bencode {type(obj).__name__}")


def encode(obj: Any) -> bytes:
    """Bencode ints, strings, bytes, lists, tuples and mappings."""
    out: list = []
    _encode_into(obj, out)
    return b"".join(out)


def _decode_string(data: bytes, pos: int) -> tuple[bytes, int]:
    colon = data.find(b":", pos)
    if colon < 0:
        raise BencodeError("unterminated string length")
    length_text = data[pos:colon]
    if not length_text.isdigit():
        raise BencodeError(f"invalid string length at offset {pos}")
    start = colon + 1
    end = start + int(length_text)
    if end > len(data):
        raise BencodeError("string runs past end of data")
    return data[start:end], end


def _decode_at(data: bytes, pos: int) -> tuple[Any, int]:
    if pos >= len(data):
        raise BencodeError("unexpected end of data")
    lead = data[pos : pos + 1]
    if lead == b"i":
        end = data.find(b"e", pos)
        if end < 0:
            raise BencodeError("unterminated integer")
        text = data[pos + 1 : end]
        if not _INT_RE.match(text) or text == b"-0":
            raise BencodeError(f"invalid integer {text!r}")
        return int(text), end + 1
    if lead == b"l":
        items = []
        pos += 1
        while data[pos : pos + 1] != b"e":
            if pos >= len(data):
                raise BencodeError("unterminated list")
            item, pos = _decode_at(data, pos)
            items.append(item)
        return items, pos + 1
    if lead == b"d":
        result = {}
        pos += 1
        while data[pos : pos + 1] != b"e":
            if pos >= len(data):
                raise BencodeError("unterminated dictionary")
            if not data[pos : pos + 1].isdigit():
                raise BencodeError("dictionary key must be a string")
            key, pos = _decode_string(data, pos)
            value, pos = _decode_at(data, pos)
            result[key.decode("utf-8", "surrogateescape")] = value
        return result, pos + 1
    if lead.isdigit():
        return _decode_string(data, pos)
    raise BencodeError(f"invalid token {lead!r} at offset {pos}")


def decode(data: bytes) -> Any:
    """Decode one bencoded value; strings come back as bytes, keys as str."""
    raw = bytes(data)
    value, end = _decode_at(raw, 0)
    if end != len(raw):
        raise BencodeError("trailing data after value")
    return value