"""I2P destination key pairs kept in a file or generated over SAM."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, TextIO

from xdtorrent.i2p_addr import I2PAddr, parse_addr

SIG_TYPE = 7


def _read_line(conn: Any) -> str:
    buf = bytearray()
    while True:
        byte = conn.recv(1)
        if not byte:
            raise EOFError("connection closed before end of line")
        buf += byte
        if byte == b"\n":
            return buf.decode("utf-8", "replace")


@dataclass
class Keyfile:
    """A destination key pair; an empty ``fname`` means transient keys."""

    fname: str = ""
    privkey: str = ""
    pubkey: str = ""

    def store(self) -> None:
        """Save the keys, if the key pair has a file."""
        if not self.fname:
            return
        fd = os.open(self.fname, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            self.write(f)

    def load(self) -> None:
        """Load the keys, if the key pair has a file."""
        if not self.fname:
            return
        with open(self.fname, encoding="utf-8") as f:
            self.read(f)

    def write(self, stream: TextIO) -> None:
        stream.write(f"{self.privkey}\n{self.pubkey}\n")

    def read(self, stream: TextIO) -> None:
        """Read private then public key lines; EOFError if the second is unterminated."""
        priv_line = stream.readline()
        pub_line = stream.readline()
        self.privkey = priv_line.strip("\n")
        self.pubkey = pub_line.strip("\n")
        if not pub_line.endswith("\n"):
            raise EOFError("key file ends before public key line")

    def addr(self) -> I2PAddr:
        return parse_addr(self.pubkey)

    def ensure(self, conn: Any) -> None:
        """Load the keys, or generate them over a SAM control connection."""
        if not self.fname or not os.path.exists(self.fname):
            conn.sendall(f"DEST GENERATE SIGNATURE_TYPE={SIG_TYPE}\n".encode("ascii"))
            line = _read_line(conn)
            for word in line.split():
                upper = word.upper()
                if upper.startswith("PUB="):
                    self.pubkey = word[4:]
                elif upper.startswith("PRIV="):
                    self.privkey = word[5:]
            self.store()
            return
        self.load()


def new_keyfile(fname: str) -> Keyfile:
    """A key pair stored in ``fname``; "transient" means never stored."""
    if fname.upper() == "TRANSIENT":
        fname = ""
    return Keyfile(fname=fname)