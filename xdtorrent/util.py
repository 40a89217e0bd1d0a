"""Assorted helpers: rates, files, random strings and stream writing."""

from __future__ import annotations

import base64
import math
import os
import random
import re
import secrets
from datetime import datetime
from typing import BinaryIO, Tuple
from urllib.parse import urlsplit, urlunsplit

from xdtorrent import log

_RATE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")
_WINDOWS = os.name == "nt"
_ZERO_CHUNK = bytes(64 * 1024)
_STARTED_AT = datetime.now()
_UNKNOWN_CLIENT = "idklol"
_AZUREUS_ID = re.compile(rb"^-([A-Za-z0-9]{2})([A-Za-z0-9]{4})-")


def format_rate(rate: float) -> str:
    """Format a bytes-per-second rate with the closest unit."""
    if math.isinf(rate):
        return "infinity"
    unit = 0
    while rate > 1024.0:
        rate /= 1024.0
        unit += 1
    if unit >= len(_RATE_UNITS):
        raise OverflowError("rate too large to format")
    return f"{rate:.2f}{_RATE_UNITS[unit]}/sec"


def check_file(path: str) -> bool:
    """Return True unless the path is known not to exist."""
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except OSError:
        return True
    return True


def client_name_from_id(peer_id: bytes) -> str:
    """Name of the client behind an Azureus-style peer id, or a fallback name."""
    match = _AZUREUS_ID.match(bytes(peer_id))
    if match is None:
        return _UNKNOWN_CLIENT
    code, ver = match.group(1).decode("ascii"), match.group(2).decode("ascii")
    return f"{code} {'.'.join(ver)}"


def ensure_dir(path: str) -> None:
    """Create a directory and its parents if missing."""
    os.makedirs(path, exist_ok=True)


def ensure_file(path: str, size: int) -> None:
    """Ensure a file and its parent directory exist, zero filling new files."""
    directory = os.path.dirname(path)
    if directory:
        ensure_dir(directory)
    if os.path.exists(path):
        return
    log.debug("create file %s", path)
    with open(path, "wb") as f:
        if size > 0:
            write_zeros(f, size)


def scheme_path(url: str) -> Tuple[str, str]:
    """Split a URL into lower-cased scheme and path."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if _WINDOWS:
        if len(scheme) == 1:
            # a drive letter such as C:/something
            scheme = "file"
        return scheme, urlunsplit(parts)
    return scheme, parts.path


def started_at() -> datetime:
    """Time at which the program started."""
    return _STARTED_AT


def rand_bool_percent(percent: int) -> bool:
    """Random boolean weighted by ``percent``."""
    return random.random() * ((100 - percent) & 0xFF) > percent


def rand_str(length: int) -> str:
    """Random base32 string of the given length."""
    return base64.b32encode(secrets.token_bytes(length)).decode("ascii")[:length]


def ratio(tx: float, rx: float) -> float:
    """Share ratio of sent to received; infinite if nothing was received."""
    if rx > 0:
        return tx / rx
    if tx > 0:
        return math.inf
    return 0.0


def string_compare(a: str, b: str) -> int:
    """Three-way comparison returning -1, 0 or 1."""
    return (a > b) - (a < b)


def write_full(stream: BinaryIO, data: bytes) -> None:
    """Write all of ``data``, retrying on short writes."""
    view = memoryview(data)
    total = len(view)
    written = 0
    while written < total:
        n = stream.write(view[written:])
        if n is None:
            n = total - written
        if n <= 0:
            raise OSError("short write")
        log.debug("wrote %d of %d", n, total)
        written += n


def write_zeros(stream: BinaryIO, size: int) -> None:
    """Write ``size`` zero bytes to a stream."""
    remaining = size
    while remaining > 0:
        chunk = _ZERO_CHUNK[: min(remaining, len(_ZERO_CHUNK))]
        write_full(stream, chunk)
        remaining -= len(chunk)