import pytest

from xdtorrent.bencode import BencodeError, decode, encode


def test_string_wire_form():
    assert encode(b"spam") == b"4:spam"


def test_integer_wire_form():
    assert encode(-42) == b"i-42e"


def test_dict_keys_are_sorted():
    assert encode({"b": 1, "a": b"x"}) == b"d1:a1:x1:bi1ee"


@pytest.mark.parametrize(
    "value",
    [
        0,
        123456789012345678901234567890,
        b"",
        b"\x00\xffbinary",
        [1, [2, b"three"], {}],
        {"announce": b"http://tracker.example.com/a", "info": {"length": 10, "name": b"f"}},
    ],
)
def test_round_trip(value):
    assert decode(encode(value)) == value


def test_str_is_encoded_as_utf8_bytes():
    assert decode(encode("héllo")) == "héllo".encode("utf-8")


def test_tuple_encodes_like_list():
    assert encode((1, b"a")) == encode([1, b"a"])


@pytest.mark.parametrize(
    "data",
    [b"i01e", b"i-0e", b"ie", b"i12", b"5:abc", b"l1:a", b"d1:ai1e", b"x", b"", b"di1ei2ee"],
)
def test_malformed_input_raises(data):
    with pytest.raises(BencodeError):
        decode(data)


def test_trailing_data_raises():
    with pytest.raises(BencodeError, match="trailing"):
        decode(b"i1ei2e")


@pytest.mark.parametrize("value", [1.5, True, None, {1: b"x"}])
def test_unsupported_types_raise(value):
    with pytest.raises(BencodeError):
        encode(value)