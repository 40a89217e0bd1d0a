import pytest

from xdtorrent.bencode import BencodeError
from xdtorrent.settings import Settings


def test_get_returns_put_value():
    s = Settings()
    s.put("dir", "/data")
    assert s.get("dir", "/other") == "/data"


def test_get_falls_back_when_missing():
    assert Settings().get("dir", "/fallback") == "/fallback"


def test_put_overwrites():
    s = Settings()
    s.put("dir", "a")
    s.put("dir", "b")
    assert s.get("dir", "") == "b"


def test_bencode_wire_format():
    s = Settings()
    s.put("dir", "x")
    assert s.bencode() == b"d8:settingsd3:dir1:xee"


def test_round_trip():
    s = Settings()
    s.put("dir", "/seeding")
    s.put("other", "value")
    assert Settings.bdecode(s.bencode()) == s


def test_missing_settings_key_gives_empty():
    assert Settings.bdecode(b"de").opts == {}


def test_rejects_bad_data():
    with pytest.raises(BencodeError):
        Settings.bdecode(b"d8:settingsi3ee")