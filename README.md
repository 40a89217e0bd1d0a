# xdtorrent

Building blocks for a BitTorrent client that runs over anonymous networks
such as I2P. It is a library: import the modules you need.

## Modules

- `xdtorrent.bencode` – `encode(obj)` and `decode(data)`. Decoded strings
  come back as `bytes`, dictionary keys as `str`. Malformed input raises
  `BencodeError` (a `ValueError`).
- `xdtorrent.metainfo` – `TorrentFile`, `Info` and `FileInfo`.
  `TorrentFile.bdecode(data)` loads a `.torrent` file and keeps the exact
  bytes of its info section, so `infohash()` (the SHA-1 digest of those
  bytes) is stable; `bencode()` writes it back. Also `total_size()`,
  `length_of_piece(idx)`, `announce_urls()`, `is_single_file()`,
  `is_private()`, `TorrentFile.from_info(info)`,
  `TorrentFile.from_info_bytes(data)` and `Info.check_piece(index, data)`.
- `xdtorrent.mktorrent` – `make_torrent(driver, path, piece_length)` builds
  a torrent for a single file or for a directory (walked recursively).
  An empty file or a directory without data raises `ValueError`.
- `xdtorrent.fs` – the `Driver` interface and `StdFS` for the local disk
  (`STD` is a ready instance). Drivers are context managers.
- `xdtorrent.sftp` – `SftpFS`, created with
  `sftp(username, hostname, keyfile, remotekey, port)`: the same interface
  over SFTP, authenticated with a private key file and pinned to a
  base64-encoded host public key. Requires `paramiko`.
- `xdtorrent.rate` and `xdtorrent.stats` – `Rate`, a ring buffer of
  per-tick samples (`tick`, `add_sample`, `current`, `max`, `min`,
  `mean`), and `Tracker`, a set of named rates with `bencode()` /
  `bdecode(data)`.
- `xdtorrent.settings` – `Settings`, string options for one torrent,
  stored as bencode.
- `xdtorrent.tracker` – `from_url(url)` returns an `HttpTracker` for
  `http` URLs and `None` otherwise. `HttpTracker.announce(req)` takes an
  `AnnounceRequest` whose `network` is a `Network` implementation, speaks
  HTTP over the connection that network dials, and returns an
  `AnnounceResponse` with compact or full peer lists. Failures, including
  a tracker's failure reason, raise `TrackerError`, whose `response`
  still carries the next announce time.
- `xdtorrent.gnutella` – `Conn` (only rejecting handshakes) and `Swarm`,
  a list of inbound connections.
- `xdtorrent.i2p_addr` – `I2PAddr`, `Base32Addr`, `parse_addr`, and I2P's
  base64/base32 encodings.
- `xdtorrent.i2p_keyfile` – `Keyfile` and `new_keyfile(fname)`
  (`"transient"` means the keys are never written to disk).
- `xdtorrent.i2p_sam` – `SamSession` (created with
  `new_session(name, addr, keyfile, opts)`), a `Network` over a SAM v3
  bridge: `open()` creates a stream session and learns its own address;
  then `dial`, `accept`, `lookup_i2p` and `b32_addr`. `I2PPacketConn`
  relays datagrams through the bridge's UDP port. Bridge refusals raise
  `SamError`.
- `xdtorrent.rpc_requests` – the JSON request types
  (`AddTorrentRequest`, `ChangeTorrentRequest`, `ListTorrentsRequest`,
  `ListTorrentStatusRequest`, `SetPieceWindowRequest`,
  `SwarmCountRequest`, `TorrentStatusRequest`, `ErrorReply`) and
  `TorrentAction`.
- `xdtorrent.rpc_client` – `Client(url, swarmno=0, timeout=None)` posts
  those requests to a daemon at an `http://` URL or a `unix:/path`
  socket: `list_torrents`, `get_swarm_status`, `torrent_status`,
  `add_torrent`, `set_piece_window`, and `start_torrent`,
  `stop_torrent`, `remove_torrent`, `delete_torrent`, which raise
  `RPCError` when the daemon reports an error.
- `xdtorrent.log` – a levelled logger: `set_level`, `set_output`,
  `debug`, `info`, `warn`, `error`, and `fatal`, which raises
  `FatalError` after logging.
- `xdtorrent.util` – `format_rate`, `ratio`, `rand_str`, `ensure_dir`,
  `ensure_file`, `write_full`, `write_zeros` and other small helpers.
- `xdtorrent.translate` – gettext-backed `translate`,
  `translate_plural`, `error_text` and `configure`.
- `xdtorrent.version` – `version(git, use_git)`.

## Installing

```
pip install xdtorrent
```

Run the tests with:

```
pip install "xdtorrent[test]"
pytest
```

## Examples

Make a torrent for a file on the local disk and write it out:

```python
from xdtorrent.fs import StdFS
from xdtorrent.mktorrent import make_torrent

torrent = make_torrent(StdFS(), "data/example.bin", 65536)
print(torrent.torrent_name(), torrent.total_size(), torrent.infohash().hex())

with open("example.torrent", "wb") as out:
    out.write(torrent.bencode())
```

Read a torrent file back:

```python
from xdtorrent.metainfo import TorrentFile

with open("example.torrent", "rb") as src:
    torrent = TorrentFile.bdecode(src.read())

for url in torrent.announce_urls():
    print(url)
```

Ask a running daemon for its torrents:

```python
from xdtorrent.rpc_client import Client

client = Client("http://127.0.0.1:1776/ecksdee/api")
print(client.list_torrents())
```

Format a transfer rate for display:

```python
from xdtorrent.util import format_rate

print(format_rate(1000000.5))   # 976.56KB/sec
```

## What this package does not do

There is no daemon, no command-line program and no RPC server here: the
client only talks to a daemon that is already running. There is no
torrent storage engine (piece reading and writing, bitfields, seeding),
no peer wire protocol and no download scheduling. `SamSession.open()`
sets up stream sessions only; datagrams need an `I2PPacketConn` with a
socket of its own.