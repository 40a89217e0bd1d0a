from datetime import datetime, timedelta
from urllib.parse import unquote_to_bytes, urlsplit

import pytest

from xdtorrent import bencode
from xdtorrent.tracker import (
    AnnounceRequest,
    Event,
    HttpTracker,
    Network,
    Peer,
    TrackerError,
    from_url,
)


class FakeAddr:
    def __init__(self, network_name, text):
        self._network = network_name
        self._text = text

    def network(self):
        return self._network

    def __str__(self):
        return self._text


class FakeConn:
    def __init__(self, reply):
        self.sent = b""
        self._reply = reply
        self.closed = False

    def sendall(self, data):
        self.sent += data

    def recv(self, size):
        chunk, self._reply = self._reply[:size], self._reply[size:]
        return chunk

    def close(self):
        self.closed = True


class FakeNetwork(Network):
    def __init__(self, own_addr, reply=b"", dial_error=None):
        self.own = own_addr
        self.reply = reply
        self.dial_error = dial_error
        self.lookups = []
        self.dials = []
        self.conns = []

    def dial(self, network, address):
        if self.dial_error is not None:
            raise self.dial_error
        self.dials.append((network, address))
        conn = FakeConn(self.reply)
        self.conns.append(conn)
        return conn

    def accept(self):
        raise OSError("not listening")

    def read_from(self, size):
        return b"", None

    def write_to(self, data, addr):
        return len(data)

    def open(self):
        return None

    def close(self):
        return None

    def addr(self):
        return self.own

    def lookup(self, name, port):
        self.lookups.append((name, port))
        return FakeAddr("tcp", f"{name}:{port}")


def http_reply(body):
    return b"HTTP/1.0 200 OK\r\nContent-Length: %d\r\n\r\n" % len(body) + body


def query_params(url):
    out = {}
    for pair in urlsplit(url).query.split("&"):
        key, _, value = pair.partition("=")
        out.setdefault(key, []).append(unquote_to_bytes(value.replace("+", " ")))
    return out


def make_request(network, **kw):
    return AnnounceRequest(infohash=b"\x01" * 20, peer_id=b"-XD0001-abcdefghijkl", network=network, **kw)


def test_from_url_accepts_http_only():
    tracker = from_url("http://tracker.example/announce")
    assert isinstance(tracker, HttpTracker)
    assert tracker.name() == "http://tracker.example/announce"
    assert from_url("udp://tracker.example:6969") is None


@pytest.mark.parametrize(
    "event,text",
    [(Event.STARTED, b"started"), (Event.STOPPED, b"stopped"), (Event.COMPLETED, b"completed")],
)
def test_event_is_sent_in_query(event, text):
    net = FakeNetwork(FakeAddr("tcp", "10.1.1.1:6881"))
    url = HttpTracker("http://tracker.example/a").build_url(make_request(net, event=event))
    assert query_params(url)["event"] == [text]


def test_build_url_for_i2p_network():
    net = FakeNetwork(FakeAddr("i2p", "mydest:6881"))
    req = make_request(net, port=6881, left=100, event=Event.STARTED)
    tracker = HttpTracker("http://tracker.example/a")
    params = query_params(tracker.build_url(req))
    assert params["ip"] == [b"mydest.i2p"]
    assert params["info_hash"] == [b"\x01" * 20]
    assert params["peer_id"] == [b"-XD0001-abcdefghijkl"]
    assert params["event"] == [b"started"]
    assert params["compact"] == [b"1"]
    assert req.compact is True


def test_build_url_without_event_and_non_compact():
    net = FakeNetwork(FakeAddr("tcp", "10.1.1.1:6881"))
    req = make_request(net)
    params = query_params(HttpTracker("http://tracker.example/a?key=k").build_url(req))
    assert "event" not in params
    assert "compact" not in params
    assert params["key"] == [b"k"]
    assert params["ip"] == [b"10.1.1.1"]
    assert req.compact is False


def test_build_url_keys_sorted():
    net = FakeNetwork(FakeAddr("tcp", "10.1.1.1:6881"))
    url = HttpTracker("http://tracker.example/announce").build_url(make_request(net))
    keys = [pair.partition("=")[0] for pair in urlsplit(url).query.split("&")]
    assert keys == sorted(keys)


def test_parse_compact_peers_in_reverse_order():
    body = bencode.encode({"interval": 900, "peers": b"A" * 32 + b"B" * 32})
    resp = HttpTracker("http://t.example/announce").parse_response(body, True)
    assert resp.interval == 900
    assert resp.peers == [Peer(compact=b"B" * 32), Peer(compact=b"A" * 32)]


def test_parse_full_peers():
    body = bencode.encode({"interval": 5, "peers": [{"ip": "1.2.3.4", "port": 6881}]})
    resp = HttpTracker("http://t.example/a").parse_response(body, False)
    assert resp.peers == [Peer(ip="1.2.3.4", port=6881)]


def test_parse_failure_reason():
    body = bencode.encode({"failure reason": "denied"})
    resp = HttpTracker("http://t.example/a").parse_response(body, True)
    assert resp.error == "denied"
    assert resp.peers == []


def test_announce_collects_peers():
    body = bencode.encode({"interval": 900, "peers": b"A" * 32 + b"B" * 32})
    net = FakeNetwork(FakeAddr("i2p", "mydest:6881"), http_reply(body))
    tracker = HttpTracker("http://tracker.example/announce")
    assert tracker.should_resolve() is True
    before = datetime.now()
    resp = tracker.announce(make_request(net))
    assert [p.compact for p in resp.peers] == [b"B" * 32, b"A" * 32]
    assert net.lookups == [("tracker.example", "80")]
    assert net.dials == [("tcp", "tracker.example:80")]
    assert net.conns[0].sent.startswith(b"GET /announce?")
    assert net.conns[0].closed is True
    assert resp.next_announce - before >= timedelta(seconds=899)
    assert tracker.should_resolve() is False


def test_announce_reuses_resolved_address():
    body = bencode.encode({"interval": 10, "peers": b""})
    net = FakeNetwork(FakeAddr("i2p", "mydest:6881"), http_reply(body))
    tracker = HttpTracker("http://tracker.example/announce")
    tracker.announce(make_request(net))
    tracker.announce(make_request(net))
    assert len(net.lookups) == 1
    assert len(net.dials) == 2


def test_announce_failure_reason_raises():
    body = bencode.encode({"failure reason": "denied"})
    net = FakeNetwork(FakeAddr("i2p", "mydest:6881"), http_reply(body))
    before = datetime.now()
    with pytest.raises(TrackerError) as info:
        HttpTracker("http://tracker.example/announce").announce(make_request(net))
    assert str(info.value) == "denied"
    assert info.value.response.next_announce - before >= timedelta(seconds=59)


def test_announce_dial_error_raises():
    net = FakeNetwork(FakeAddr("i2p", "mydest:6881"), dial_error=ConnectionRefusedError("refused"))
    with pytest.raises(TrackerError) as info:
        HttpTracker("http://tracker.example/announce").announce(make_request(net))
    assert isinstance(info.value.__cause__, ConnectionRefusedError)


def test_announce_malformed_http_raises():
    net = FakeNetwork(FakeAddr("i2p", "mydest:6881"), b"garbage")
    with pytest.raises(TrackerError):
        HttpTracker("http://tracker.example/announce").announce(make_request(net))