"""Gnutella connections and a swarm holding them."""

from __future__ import annotations

import contextlib
import socket
from typing import List

HANDSHAKE = "GNUTELLA CONNECT/0.6"


class Conn:
    """A Gnutella peer connection over a stream socket."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock

    def handshake(self, reject: bool) -> None:
        """Answer the peer's handshake; only rejection is supported."""
        if reject:
            self.sock.sendall(b"GNUTELLA/0.6 503 Rejected\r\n")

    def close(self) -> None:
        self.sock.close()


class Swarm:
    """The set of active Gnutella connections."""

    def __init__(self) -> None:
        self.active_conns: List[Conn] = []

    def add_inbound_peer(self, conn: Conn) -> None:
        self.active_conns.append(conn)

    def close(self) -> None:
        """Close every connection and forget them."""
        for conn in self.active_conns:
            with contextlib.suppress(OSError):
                conn.close()
        self.active_conns = []