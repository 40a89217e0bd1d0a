"""Client for the daemon's JSON control interface over HTTP or a unix socket."""

from __future__ import annotations

import http.client
import json
import socket
from typing import Any, Optional
from urllib.parse import urlsplit

from xdtorrent.rpc_requests import (
    RPC_CONTENT_TYPE,
    RPC_PATH,
    AddTorrentRequest,
    ChangeTorrentRequest,
    ListTorrentsRequest,
    ListTorrentStatusRequest,
    SetPieceWindowRequest,
    TorrentAction,
    TorrentStatusRequest,
)
from xdtorrent.translate import translate


class RPCError(Exception):
    """The daemon reported an error or sent a reply that is not JSON."""


class _UnixHTTPConnection(http.client.HTTPConnection):
    def __init__(self, socket_path: str, timeout: Optional[float]) -> None:
        super().__init__("unix")
        self._socket_path = socket_path
        self._unix_timeout = timeout

    def connect(self) -> None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(self._unix_timeout)
            sock.connect(self._socket_path)
        except OSError:
            sock.close()
            raise
        self.sock = sock


class Client:
    """Talks to one swarm of a daemon at ``url`` (``http://...`` or ``unix:/path``)."""

    def __init__(self, url: str, swarmno: int = 0, timeout: Optional[float] = None) -> None:
        self.url = url
        self.swarmno = str(swarmno)
        self.timeout = timeout

    def _connection(self):
        if self.url.startswith("unix:"):
            return _UnixHTTPConnection(self.url[5:], self.timeout), RPC_PATH
        parts = urlsplit(self.url)
        target = parts.path or "/"
        if parts.query:
            target += "?" + parts.query
        conn_class = http.client.HTTPSConnection if parts.scheme == "https" else http.client.HTTPConnection
        return conn_class(parts.hostname or "localhost", parts.port, timeout=self.timeout), target

    def _call(self, request: Any) -> Any:
        body = (json.dumps(request.to_json()) + "\n").encode("utf-8")
        conn, target = self._connection()
        try:
            conn.request("POST", target, body=body, headers={"Content-Type": RPC_CONTENT_TYPE})
            raw = conn.getresponse().read()
        finally:
            conn.close()
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise RPCError(f"invalid reply: {exc}") from exc

    def _torrent_action(self, infohash: str, action: TorrentAction) -> None:
        reply = self._call(ChangeTorrentRequest(self.swarmno, infohash, action))
        if isinstance(reply, dict) and reply.get("error") is not None:
            raise RPCError(translate(str(reply["error"])))

    def stop_torrent(self, infohash: str) -> None:
        self._torrent_action(infohash, TorrentAction.STOP)

    def start_torrent(self, infohash: str) -> None:
        self._torrent_action(infohash, TorrentAction.START)

    def remove_torrent(self, infohash: str) -> None:
        self._torrent_action(infohash, TorrentAction.REMOVE)

    def delete_torrent(self, infohash: str) -> None:
        self._torrent_action(infohash, TorrentAction.DELETE)

    def list_torrents(self) -> Any:
        """The swarm's torrent list as the daemon sends it."""
        return self._call(ListTorrentsRequest(self.swarmno))

    def get_swarm_status(self) -> Any:
        """Status of every torrent in the swarm, keyed by infohash."""
        return self._call(ListTorrentStatusRequest(self.swarmno))

    def set_piece_window(self, n: int) -> None:
        self._call(SetPieceWindowRequest(self.swarmno, n))

    def add_torrent(self, url: str) -> None:
        self._call(AddTorrentRequest(self.swarmno, url))

    def torrent_status(self, infohash: str) -> Any:
        """Status of one torrent."""
        return self._call(TorrentStatusRequest(self.swarmno, infohash))