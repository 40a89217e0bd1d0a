"""I2P sessions over a SAM v3 bridge: streams, datagrams and name lookups."""

from __future__ import annotations

import contextlib
import socket
import struct
import threading
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from xdtorrent.i2p_addr import I2PAddr, parse_addr
from xdtorrent.i2p_keyfile import SIG_TYPE, Keyfile, new_keyfile
from xdtorrent.tracker import Network

_MAX_DATAGRAM = 65536


class SamError(Exception):
    """The SAM bridge refused a command or sent a reply we cannot use."""


def read_line(sock: Any) -> str:
    """Read one newline-terminated line, byte by byte, newline included."""
    buf = bytearray()
    while True:
        byte = sock.recv(1)
        if not byte:
            raise EOFError("connection closed before end of line")
        buf += byte
        if byte == b"\n":
            return buf.decode("utf-8", "replace")


def _check_reply(line: str, skip: Iterable[str]) -> None:
    """Accept a reply whose words up to RESULT=OK are all in ``skip``."""
    skipped = set(skip)
    for word in line.split():
        upper = word.upper()
        if upper in skipped:
            continue
        if upper == "RESULT=OK":
            return
        raise SamError(line.strip())
    raise SamError(f"no result in reply: {line.strip()}")


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


def _lookup_port(port: str, proto: str) -> int:
    if port.isdigit():
        return int(port)
    try:
        return socket.getservbyname(port, proto)
    except OSError as exc:
        raise SamError(f"unknown port {port}/{proto}") from exc


def _set_keepalive(sock: Any, enabled: bool) -> None:
    with contextlib.suppress(OSError, AttributeError):
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1 if enabled else 0)
        if enabled:
            for name in ("TCP_KEEPIDLE", "TCP_KEEPINTVL"):
                opt = getattr(socket, name, None)
                if opt is not None:
                    sock.setsockopt(socket.IPPROTO_TCP, opt, 5)


def _default_connect(host: str, port: int) -> socket.socket:
    return socket.create_connection((host, port))


class I2PConn:
    """A stream to an I2P destination carried over a SAM socket."""

    def __init__(self, sock: Any, laddr: I2PAddr, raddr: I2PAddr) -> None:
        self.sock = sock
        self.local_addr = laddr
        self.remote_addr = raddr

    def __enter__(self) -> "I2PConn":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def recv(self, size: int) -> bytes:
        return self.sock.recv(size)

    def sendall(self, data: bytes) -> None:
        self.sock.sendall(data)

    def settimeout(self, timeout: Optional[float]) -> None:
        self.sock.settimeout(timeout)

    def close(self) -> None:
        self.sock.close()


class I2PPacketConn:
    """Repliable datagrams relayed through the SAM bridge's UDP port."""

    def __init__(
        self,
        sock: Any = None,
        laddr: Optional[I2PAddr] = None,
        samaddr: Optional[Tuple[str, int]] = None,
        version: str = "",
    ) -> None:
        self.sock = sock
        self.laddr = laddr
        self.samaddr = samaddr
        self.version = version

    def read_from(self, size: int) -> Tuple[bytes, I2PAddr]:
        """Receive one datagram of at most ``size`` bytes and its sender.

        Datagrams from anywhere but the bridge, malformed ones and ones
        larger than ``size`` are dropped silently.
        """
        if self.sock is None:
            raise SamError("no datagram socket")
        while True:
            data, sender = self.sock.recvfrom(_MAX_DATAGRAM)
            if sender != self.samaddr:
                continue
            idx = data.find(b"\n")
            if idx <= 0:
                continue
            parts = data[:idx].rstrip(b"\r").split(b" ", 1)
            if len(parts) < 2:
                continue
            source = parts[1].split(b" ")[-1].decode("utf-8", "replace")
            payload = data[idx + 1 :]
            if len(payload) > size:
                continue
            return payload, parse_addr(source)

    def write_to(self, data: bytes, to: Any) -> int:
        """Send ``data`` to an I2P destination; returns the payload length."""
        if self.sock is None:
            raise SamError("no datagram socket")
        header = f"{self.version} {to}\n".encode("utf-8")
        self.sock.sendto(header + bytes(data), self.samaddr)
        return len(data)

    def close(self) -> None:
        if self.sock is None:
            return
        sock, self.sock = self.sock, None
        sock.close()


class SamSession(Network):
    """A named I2P destination held open on a SAM bridge.

    ``connect`` opens a TCP connection to (host, port); by default a plain
    socket connection.
    """

    def __init__(
        self,
        name: str,
        sam_addr: str,
        keys: Keyfile,
        opts: Optional[Dict[str, str]] = None,
        connect: Optional[Callable[[str, int], Any]] = None,
    ) -> None:
        self._name = name
        self._sam_addr = sam_addr
        self._keys = keys
        self._opts = dict(opts) if opts else {}
        self._connect = connect or _default_connect
        self.min_version = "3.0"
        self.max_version = "3.0"
        self._control: Any = None
        self._lookup_lock = threading.Lock()
        self._pktconn = I2PPacketConn(version=f"{self.max_version} {name}")

    @property
    def keys(self) -> Keyfile:
        return self._keys

    def name(self) -> str:
        return self._name

    def addr(self) -> I2PAddr:
        return self._keys.addr()

    def local_addr(self) -> I2PAddr:
        return self._keys.addr()

    def b32_addr(self) -> str:
        """Printable .b32.i2p name of our destination."""
        return str(self._keys.addr().base32_addr())

    def open_control_socket(self) -> Any:
        """Connect to the bridge and complete the HELLO handshake."""
        host, port = _split_host_port(self._sam_addr)
        sock = self._connect(host, _lookup_port(port, "tcp"))
        try:
            _set_keepalive(sock, True)
            sock.sendall(f"HELLO VERSION MIN={self.min_version} MAX={self.max_version}\n".encode("ascii"))
            _check_reply(read_line(sock), ("HELLO", "REPLY"))
        except Exception:
            sock.close()
            raise
        return sock

    def dial_i2p(self, addr: I2PAddr) -> I2PConn:
        """Open a stream to a destination."""
        port = f" PORT={_lookup_port(addr.port, 'tcp')}" if addr.port else ""
        sock = self.open_control_socket()
        try:
            sock.sendall(
                f"STREAM CONNECT ID={self._name} DESTINATION={addr.addr}{port} SILENT=false\n".encode("utf-8")
            )
            _check_reply(read_line(sock), ("STREAM", "STATUS"))
        except Exception:
            sock.close()
            raise
        with contextlib.suppress(OSError, AttributeError):
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 0)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, 2400)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
        return I2PConn(sock, self._keys.addr(), addr)

    def dial(self, network: str, address: str) -> I2PConn:
        return self.dial_i2p(self.lookup_i2p(address))

    def lookup_i2p(self, name: str) -> I2PAddr:
        """Resolve a name (optionally ``name:port``) to a destination."""
        port = ""
        try:
            name, port = _split_host_port(name)
        except ValueError:
            pass
        with self._lookup_lock:
            control = self._control
            if control is None:
                raise SamError("session not open")
            control.sendall(f"NAMING LOOKUP NAME={name}\n".encode("utf-8"))
            line = read_line(control)
        for word in line.split():
            upper = word.upper()
            if upper in ("NAMING", "REPLY", "RESULT=OK") or upper.startswith("NAME="):
                continue
            if word.startswith("VALUE="):
                return I2PAddr(parse_addr(word[6:]).addr, port)
            raise SamError(line.strip())
        raise SamError(f"no value in lookup reply: {line.strip()}")

    def lookup(self, name: str, port: str) -> I2PAddr:
        return self.lookup_i2p(name)

    def _udp_addr(self) -> Tuple[Tuple[str, int], Tuple[str, int]]:
        host, port = _split_host_port(self._sam_addr)
        try:
            sam_ip = socket.gethostbyname(host)
        except OSError as exc:
            raise SamError(f"cannot resolve {host}") from exc
        probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            probe.connect((sam_ip, 9))
            src_ip = probe.getsockname()[0]
        except OSError as exc:
            raise SamError(f"unroutable address: {host}") from exc
        finally:
            probe.close()
        return (sam_ip, _lookup_port(port, "udp") - 1), (src_ip, 0)

    def _create_session(self, style: str) -> None:
        opts = " inbound.name=XD" + "".join(f" {k}={v}" for k, v in self._opts.items())
        if style == "DATAGRAM":
            sam_udp, src = self._udp_addr()
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                sock.bind(src)
                host, port = sock.getsockname()[:2]
            except OSError:
                sock.close()
                raise
            self._pktconn.sock = sock
            self._pktconn.samaddr = sam_udp
            opts += f" HOST={host} PORT={port}"
        self._control.sendall(
            (
                f"SESSION CREATE STYLE={style} ID={self._name} SIGNATURE_TYPE={SIG_TYPE} "
                f"DESTINATION={self._keys.privkey}{opts}\n"
            ).encode("utf-8")
        )
        _check_reply(read_line(self._control), ("SESSION", "STATUS"))

    def open(self) -> None:
        """Connect, ensure keys, create the stream session and learn our address."""
        try:
            self._control = self.open_control_socket()
            self._keys.ensure(self._control)
            self._create_session("STREAM")
            me = self.lookup_i2p("ME")
            self._keys.pubkey = str(me)
            self._pktconn.laddr = me
        except Exception:
            self.close()
            raise

    def close(self) -> None:
        if self._control is None:
            return
        control, self._control = self._control, None
        try:
            control.close()
        finally:
            self._pktconn.close()

    def accept(self) -> I2PConn:
        """Wait for one inbound stream to our destination."""
        if self._control is None:
            raise SamError("session closed")
        sock = self.open_control_socket()
        try:
            sock.sendall(f"STREAM ACCEPT ID={self._name} SILENT=false\n".encode("utf-8"))
            _check_reply(read_line(sock), ("STREAM", "STATUS", "RESULT"))
            line = read_line(sock)
        except Exception:
            sock.close()
            raise
        _set_keepalive(sock, False)
        return I2PConn(sock, parse_addr(self._keys.pubkey), parse_addr(line[:-1]))

    def read_from(self, size: int) -> Tuple[bytes, I2PAddr]:
        return self._pktconn.read_from(size)

    def write_to(self, data: bytes, to: Any) -> int:
        return self._pktconn.write_to(data, to)


def new_session(name: str, addr: str, keyfile: str, opts: Optional[Dict[str, str]] = None) -> SamSession:
    """A session named ``name`` on the bridge at ``addr`` using keys in ``keyfile``."""
    return SamSession(name, addr, new_keyfile(keyfile), opts)