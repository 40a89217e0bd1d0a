import io
import math
import os
import string
from datetime import datetime

import pytest

from xdtorrent import util


def test_format_rate_kilobytes():
    assert util.format_rate(1000000.5) == "976.56KB/sec"


def test_format_rate_infinity():
    assert util.format_rate(math.inf) == "infinity"


def test_format_rate_small_stays_bytes():
    assert util.format_rate(512.0) == "512.00B/sec"


def test_format_rate_too_large():
    with pytest.raises(OverflowError):
        util.format_rate(1024.0**7)


def test_check_file(tmp_path):
    target = tmp_path / "a.bin"
    assert util.check_file(str(target)) is False
    target.write_bytes(b"x")
    assert util.check_file(str(target)) is True


def test_client_name():
    assert util.client_name_from_id(b"-XD0001-") == "idklol"


def test_ensure_dir_nested(tmp_path):
    target = tmp_path / "a" / "b" / "c"
    util.ensure_dir(str(target))
    util.ensure_dir(str(target))
    assert target.is_dir()


def test_ensure_file_zero_fills(tmp_path):
    target = tmp_path / "sub" / "data.bin"
    util.ensure_file(str(target), 70000)
    assert target.read_bytes() == bytes(70000)


def test_ensure_file_keeps_existing(tmp_path):
    target = tmp_path / "data.bin"
    target.write_bytes(b"keep")
    util.ensure_file(str(target), 100)
    assert target.read_bytes() == b"keep"


def test_scheme_path():
    url = "HTTP://tracker.example.com/announce"
    scheme, path = util.scheme_path(url)
    assert scheme == "http"
    expected = url if os.name == "nt" else "/announce"
    assert path == expected


def test_started_at_is_in_past():
    assert util.started_at() <= datetime.now()


def test_rand_bool_percent_hundred_never_true():
    assert not any(util.rand_bool_percent(100) for _ in range(50))


def test_rand_str_length_and_alphabet():
    value = util.rand_str(10)
    assert len(value) == 10
    assert set(value) <= set(string.ascii_uppercase + "234567")


def test_ratio():
    assert util.ratio(10.0, 5.0) == 2.0
    assert util.ratio(1.0, 0.0) == math.inf
    assert util.ratio(0.0, 0.0) == 0.0


def test_string_compare():
    assert util.string_compare("a", "b") == -1
    assert util.string_compare("b", "a") == 1
    assert util.string_compare("same", "same") == 0


class _Trickle:
    def __init__(self):
        self.chunks = []

    def write(self, data):
        chunk = bytes(data[:3])
        self.chunks.append(chunk)
        return len(chunk)


def test_write_full_handles_short_writes():
    stream = _Trickle()
    util.write_full(stream, b"abcdefgh")
    assert b"".join(stream.chunks) == b"abcdefgh"
    assert all(len(c) <= 3 for c in stream.chunks)


class _Stuck:
    def write(self, data):
        return 0


def test_write_full_zero_write_raises():
    with pytest.raises(OSError):
        util.write_full(_Stuck(), b"abc")


def test_write_zeros():
    buf = io.BytesIO()
    util.write_zeros(buf, 100000)
    assert buf.getvalue() == bytes(100000)