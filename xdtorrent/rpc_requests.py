"""Requests understood by the daemon's JSON control interface."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict

RPC_PATH = "/ecksdee/api"
RPC_NAME = "XD"
RPC_CONTENT_TYPE = "text/json; encoding=UTF-8"

RPC_LIST_TORRENTS = RPC_NAME + ".ListTorrents"
RPC_LIST_TORRENT_STATUS = RPC_NAME + ".SwarmStatus"
RPC_TORRENT_STATUS = RPC_NAME + ".TorrentStatus"
RPC_ADD_TORRENT = RPC_NAME + ".AddTorrent"
RPC_DEL_TORRENT = RPC_NAME + ".DelTorrent"
RPC_SET_PIECE_WINDOW = RPC_NAME + ".SetPieceWindow"
RPC_CHANGE_TORRENT = RPC_NAME + ".ChangeTorrent"
RPC_SWARM_COUNT = RPC_NAME + ".SwarmCount"

PARAM_METHOD = "method"
PARAM_SWARM = "swarm"
PARAM_INFOHASH = "infohash"
PARAM_URL = "url"
PARAM_N = "n"
PARAM_ACTION = "action"
PARAM_SWARMS = "swarms"


class TorrentAction(str, enum.Enum):
    """What a change-torrent request asks the daemon to do."""

    START = "start"
    STOP = "stop"
    REMOVE = "remove"
    DELETE = "delete"


def _action_text(action: Any) -> str:
    return action.value if isinstance(action, TorrentAction) else str(action)


@dataclass
class AddTorrentRequest:
    """Fetch a torrent from a URL and add it to a swarm."""

    swarm: str = ""
    url: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {PARAM_SWARM: self.swarm, PARAM_URL: self.url, PARAM_METHOD: RPC_ADD_TORRENT}


@dataclass
class ChangeTorrentRequest:
    """Start, stop, remove or delete one torrent."""

    swarm: str = ""
    infohash: str = ""
    action: Any = TorrentAction.START

    def to_json(self) -> Dict[str, Any]:
        return {
            PARAM_SWARM: self.swarm,
            PARAM_INFOHASH: self.infohash,
            PARAM_ACTION: _action_text(self.action),
            PARAM_METHOD: RPC_CHANGE_TORRENT,
        }


@dataclass
class ListTorrentsRequest:
    """List the infohashes of every torrent in a swarm."""

    swarm: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {PARAM_SWARM: self.swarm, PARAM_METHOD: RPC_LIST_TORRENTS}


@dataclass
class ListTorrentStatusRequest:
    """Status of every torrent in a swarm, keyed by infohash."""

    swarm: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {PARAM_SWARM: self.swarm, PARAM_METHOD: RPC_LIST_TORRENT_STATUS}


@dataclass
class SetPieceWindowRequest:
    """Set how many piece requests may be outstanding per torrent."""

    swarm: str = ""
    n: int = 0

    def to_json(self) -> Dict[str, Any]:
        return {PARAM_METHOD: RPC_SET_PIECE_WINDOW, PARAM_N: self.n, PARAM_SWARM: self.swarm}


@dataclass
class SwarmCountRequest:
    """Ask how many swarms the daemon runs."""

    n: int = 0

    def to_json(self) -> Dict[str, Any]:
        return {PARAM_SWARMS: self.n, PARAM_METHOD: RPC_SWARM_COUNT}


@dataclass
class TorrentStatusRequest:
    """Status of one torrent."""

    swarm: str = ""
    infohash: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {
            PARAM_SWARM: self.swarm,
            PARAM_METHOD: RPC_TORRENT_STATUS,
            PARAM_INFOHASH: self.infohash,
        }


@dataclass
class ErrorReply:
    """An error sent back in place of a result."""

    message: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {"error": self.message}