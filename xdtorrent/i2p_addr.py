"""I2P destination addresses and their base64/base32 encodings."""

from __future__ import annotations

import base64
import binascii
import hashlib
from dataclasses import dataclass

DEFAULT_ADDRESS = "127.0.0.1:7656"
DEFAULT_KEYFILE = "xd-privkey.dat"
DEFAULT_NAME = "XD"

_TO_I2P = bytes.maketrans(b"+/", b"-~")
_FROM_I2P = bytes.maketrans(b"-~", b"+/")


def i2p_b64encode(data: bytes) -> str:
    """Base64 with I2P's alphabet ('-' and '~' in place of '+' and '/')."""
    return base64.b64encode(data).translate(_TO_I2P).decode("ascii")


def i2p_b64decode(data: str) -> bytes:
    """Decode I2P base64; raises binascii.Error (a ValueError) on bad input."""
    raw = data.encode("ascii") if isinstance(data, str) else bytes(data)
    if b"+" in raw or b"/" in raw:
        raise binascii.Error("invalid character in i2p base64")
    return base64.b64decode(raw.translate(_FROM_I2P), validate=True)


def i2p_b32encode(data: bytes) -> str:
    """Lower-case base32 as used for .b32.i2p names."""
    return base64.b32encode(data).decode("ascii").lower()


def _join_host_port(host: str, port: str) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dataclass(frozen=True)
class Base32Addr:
    """SHA-256 hash of an I2P destination."""

    digest: bytes = bytes(32)

    def __str__(self) -> str:
        return i2p_b32encode(self.digest)[:52] + ".b32.i2p"


@dataclass(frozen=True)
class I2PAddr:
    """An I2P destination with an optional port."""

    addr: str
    port: str = ""

    def network(self) -> str:
        return "i2p"

    def __str__(self) -> str:
        return _join_host_port(self.addr, self.port)

    def base32_addr(self) -> Base32Addr:
        """Destination hash; all zeros if the destination is not valid base64."""
        try:
            raw = i2p_b64decode(self.addr)
        except (ValueError, UnicodeEncodeError):
            return Base32Addr()
        return Base32Addr(hashlib.sha256(raw).digest())


def _split_host_port(text: str):
    if text.startswith("["):
        end = text.find("]")
        if end < 0 or text[end + 1 : end + 2] != ":":
            raise ValueError(f"invalid address {text}")
        return text[1:end], text[end + 2 :]
    idx = text.rfind(":")
    if ":" in text[:idx]:
        raise ValueError(f"too many colons in address {text}")
    return text[:idx], text[idx + 1 :]


def parse_addr(addr: str) -> I2PAddr:
    """Parse ``dest`` or ``dest:port``; an unparsable host:port gives an empty address."""
    if ":" in addr:
        try:
            host, port = _split_host_port(addr)
        except ValueError:
            return I2PAddr("", "")
        return I2PAddr(host, port)
    return I2PAddr(addr)