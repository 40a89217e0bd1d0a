"""Bencoding, torrent metainfo, filesystem drivers, tracker announces, I2P SAM sessions and an RPC client."""

__version__ = "0.4.6"