import socket

import pytest

from xdtorrent.gnutella import Conn, Swarm


def test_reject_sends_status_line():
    a, b = socket.socketpair()
    try:
        swarm = Swarm()
        conn = Conn(a)
        swarm.add_inbound_peer(conn)
        conn.handshake(True)
        assert swarm.active_conns == [conn]
        assert b.recv(100) == b"GNUTELLA/0.6 503 Rejected\r\n"
    finally:
        a.close()
        b.close()


def test_accept_sends_nothing():
    a, b = socket.socketpair()
    try:
        swarm = Swarm()
        conn = Conn(a)
        swarm.add_inbound_peer(conn)
        conn.handshake(False)
        assert swarm.active_conns == [conn]
        b.setblocking(False)
        with pytest.raises(BlockingIOError):
            b.recv(100)
    finally:
        a.close()
        b.close()


def test_swarm_close_closes_all():
    pairs = [socket.socketpair() for _ in range(2)]
    swarm = Swarm()
    for a, _ in pairs:
        swarm.add_inbound_peer(Conn(a))
    assert len(swarm.active_conns) == 2
    swarm.close()
    assert swarm.active_conns == []
    for a, b in pairs:
        assert a.fileno() == -1
        assert b.recv(10) == b""
        b.close()