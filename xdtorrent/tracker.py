"""Announcing to BitTorrent HTTP trackers over an abstract network."""

from __future__ import annotations

import abc
import enum
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from xdtorrent import bencode, log
from xdtorrent.bencode import BencodeError


class Network(abc.ABC):
    """A network session.

    Connections returned by ``dial`` and ``accept`` offer ``sendall``,
    ``recv`` and ``close``; addresses offer ``network()`` and ``str()``.
    """

    @abc.abstractmethod
    def dial(self, network: str, address: str) -> Any:
        """Open a stream connection to an address."""

    @abc.abstractmethod
    def accept(self) -> Any:
        """Wait for an inbound stream connection."""

    @abc.abstractmethod
    def read_from(self, size: int) -> Tuple[bytes, Any]:
        """Receive one datagram and its sender."""

    @abc.abstractmethod
    def write_to(self, data: bytes, addr: Any) -> int:
        """Send one datagram."""

    @abc.abstractmethod
    def open(self) -> None:
        """Bring the session up."""

    @abc.abstractmethod
    def close(self) -> None:
        """Tear the session down."""

    @abc.abstractmethod
    def addr(self) -> Any:
        """Our own address."""

    @abc.abstractmethod
    def lookup(self, name: str, port: str) -> Any:
        """Resolve a name to an address."""


class Event(enum.Enum):
    STARTED = "started"
    STOPPED = "stopped"
    COMPLETED = "completed"
    NOP = ""

    def __str__(self) -> str:
        return self.value


@dataclass
class Peer:
    """A peer from a tracker: a compact destination hash or an ip and port."""

    compact: bytes = b""
    ip: str = ""
    port: int = 0


@dataclass
class AnnounceRequest:
    infohash: bytes
    peer_id: bytes
    port: int = 0
    uploaded: int = 0
    downloaded: int = 0
    left: int = 0
    event: Event = Event.NOP
    num_want: int = 0
    compact: bool = False
    network: Optional[Network] = None


@dataclass
class AnnounceResponse:
    interval: int = 0
    peers: List[Peer] = field(default_factory=list)
    error: str = ""
    next_announce: Optional[datetime] = None


class TrackerError(Exception):
    """An announce failed; ``response`` still carries the next announce time."""

    def __init__(self, message: str, response: Optional[AnnounceResponse] = None) -> None:
        super().__init__(message)
        self.response = response


def _split_host_port(text: str) -> Tuple[str, str]:
    if text.startswith("["):
        end = text.find("]")
        if end < 0 or text[end + 1 : end + 2] != ":":
            raise ValueError(f"invalid address {text}")
        return text[1:end], text[end + 2 :]
    idx = text.rfind(":")
    if idx < 0:
        raise ValueError(f"missing port in address {text}")
    if ":" in text[:idx]:
        raise ValueError(f"too many colons in address {text}")
    return text[:idx], text[idx + 1 :]


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    if value is None:
        return ""
    return str(value)


def _dechunk(body: bytes) -> bytes:
    out = bytearray()
    pos = 0
    while True:
        eol = body.find(b"\r\n", pos)
        if eol < 0:
            raise TrackerError("malformed chunked body")
        try:
            size = int(body[pos:eol].split(b";")[0], 16)
        except ValueError:
            raise TrackerError("malformed chunk size") from None
        if size == 0:
            return bytes(out)
        start = eol + 2
        out += body[start : start + size]
        pos = start + size + 2


def _http_get(conn: Any, url: str) -> bytes:
    parts = urlsplit(url)
    target = parts.path or "/"
    if parts.query:
        target += "?" + parts.query
    host = parts.netloc.rpartition("@")[2]
    request = f"GET {target} HTTP/1.0\r\nHost: {host}\r\nConnection: close\r\n\r\n"
    try:
        conn.sendall(request.encode("utf-8"))
        chunks = []
        while True:
            chunk = conn.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    finally:
        conn.close()
    raw = b"".join(chunks)
    head, sep, body = raw.partition(b"\r\n\r\n")
    if not sep or not head.startswith(b"HTTP/"):
        raise TrackerError("malformed http response")
    headers = {}
    for line in head.split(b"\r\n")[1:]:
        key, _, value = line.partition(b":")
        headers[key.strip().lower()] = value.strip()
    if headers.get(b"transfer-encoding", b"").lower() == b"chunked":
        return _dechunk(body)
    length = headers.get(b"content-length")
    if length is not None and length.isdigit():
        return body[: int(length)]
    return body


class HttpTracker:
    """An HTTP tracker; its address is resolved at most once per interval."""

    def __init__(self, url: str) -> None:
        self._url = urlsplit(url)
        self.resolve_interval = 3600.0
        self.last_resolved = 0.0
        self._addr: Any = None
        self._resolving = threading.Lock()

    def name(self) -> str:
        return urlunsplit(self._url)

    def should_resolve(self) -> bool:
        return self.last_resolved + self.resolve_interval < time.time()

    def build_url(self, req: AnnounceRequest) -> str:
        """Announce URL for a request; may switch the request to compact mode."""
        params: dict = {}

        def add(key: str, value: Any) -> None:
            params.setdefault(key, []).append(value)

        for key, value in parse_qsl(self._url.query, keep_blank_values=True):
            add(key, value)
        ours = req.network.addr()
        try:
            host, _ = _split_host_port(str(ours))
        except ValueError:
            host = ""
        if ours.network() == "i2p":
            host += ".i2p"
            req.compact = True
        add("ip", host)
        add("info_hash", bytes(req.infohash))
        add("peer_id", bytes(req.peer_id))
        add("port", str(req.port))
        add("numwant", str(req.num_want))
        add("left", str(req.left))
        if req.event is not Event.NOP:
            add("event", req.event.value)
        add("downloaded", str(req.downloaded))
        add("uploaded", str(req.uploaded))
        if req.compact or self._url.path != "/a":
            req.compact = True
            add("compact", "1")
        query = urlencode([(key, value) for key in sorted(params) for value in params[key]])
        return urlunsplit(self._url._replace(query=query))

    def parse_response(self, body: bytes, compact: bool) -> AnnounceResponse:
        """Decode a tracker reply; a failure reason is left in ``error``."""
        decoded = bencode.decode(body)
        if not isinstance(decoded, Mapping):
            raise BencodeError("announce response must be a dictionary")
        interval = decoded.get("interval", 0)
        if not isinstance(interval, int) or isinstance(interval, bool):
            raise BencodeError("interval must be an integer")
        resp = AnnounceResponse(interval=interval, error=_text(decoded.get("failure reason")))
        peers = decoded.get("peers")
        if isinstance(peers, bytes):
            if not compact:
                raise BencodeError("unexpected compact peer list")
            for end in range(len(peers) // 32, 0, -1):
                resp.peers.append(Peer(compact=peers[(end - 1) * 32 : end * 32]))
        elif isinstance(peers, list):
            for entry in peers:
                if isinstance(entry, Mapping):
                    port = entry.get("port")
                    resp.peers.append(
                        Peer(
                            ip=_text(entry.get("ip")),
                            port=port if isinstance(port, int) and not isinstance(port, bool) else 0,
                        )
                    )
        return resp

    def _connect(self, req: AnnounceRequest) -> Any:
        network = req.network
        with self._resolving:
            if self.should_resolve():
                userinfo, at, hostport = self._url.netloc.rpartition("@")
                if ":" not in hostport:
                    hostport += ":80"
                    self._url = self._url._replace(netloc=userinfo + at + hostport)
                try:
                    host, port = _split_host_port(hostport)
                except ValueError as exc:
                    raise TrackerError(str(exc)) from exc
                addr = network.lookup(host, port)
                self._addr = addr
                self.last_resolved = time.time()
            else:
                addr = self._addr
        return network.dial(addr.network(), str(addr))

    def announce(self, req: AnnounceRequest) -> AnnounceResponse:
        """Announce to the tracker and collect peers; raises TrackerError on failure."""
        resp = AnnounceResponse()
        interval = 30
        err: Optional[BaseException] = None
        try:
            url = self.build_url(req)
            log.debug("%s announcing", self.name())
            body = _http_get(self._connect(req), url)
            parsed = self.parse_response(body, req.compact)
            resp.interval = parsed.interval
            resp.peers = parsed.peers
            resp.error = parsed.error
            interval = parsed.interval
            if parsed.error:
                err = TrackerError(parsed.error)
        except (OSError, ValueError, TrackerError) as exc:
            err = exc
        if err is None:
            log.info("%s got %d peers for %s", self.name(), len(resp.peers), bytes(req.infohash).hex())
        else:
            log.warn("%s got error while announcing: %s", self.name(), err)
        if interval == 0:
            interval = 60
        resp.next_announce = datetime.now() + timedelta(seconds=interval)
        if err is not None:
            if isinstance(err, TrackerError):
                err.response = resp
                raise err
            raise TrackerError(str(err), resp) from err
        return resp


def from_url(url: str) -> Optional[HttpTracker]:
    """An announcer for ``url``, or None if the URL is not a supported tracker."""
    try:
        scheme = urlsplit(url).scheme
    except ValueError:
        return None
    if scheme == "http":
        return HttpTracker(url)
    return None