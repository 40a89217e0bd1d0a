"""Named transfer-rate trackers with bencoded persistence."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Dict, Iterator, Optional, Tuple

from xdtorrent import bencode
from xdtorrent.bencode import BencodeError
from xdtorrent.rate import Rate


class Tracker:
    """A set of named rates sharing one history length."""

    def __init__(self, history: int = 128) -> None:
        self.history = history
        self._rates: Dict[str, Rate] = {}

    def new_rate(self, name: str) -> None:
        """Start (or restart) tracking a rate under ``name``."""
        self._rates[name] = Rate(self.history)

    def add_sample(self, name: str, n: int) -> None:
        """Add ``n`` to the current sample of ``name``; unknown names are ignored."""
        rate = self._rates.get(name)
        if rate is not None:
            rate.add_sample(n)

    def rate(self, name: str) -> Optional[Rate]:
        return self._rates.get(name)

    def items(self) -> Iterator[Tuple[str, Rate]]:
        """Iterate over (name, rate) pairs."""
        return iter(list(self._rates.items()))

    def tick(self) -> None:
        for rate in self._rates.values():
            rate.tick()

    def bencode(self) -> bytes:
        return bencode.encode(
            {
                name: {"Samples": [[s.value, s.timestamp] for s in rate.samples]}
                for name, rate in self._rates.items()
            }
        )

    def bdecode(self, data: bytes) -> None:
        """Load rates from bencoded data, adding to those already tracked."""
        decoded = bencode.decode(data)
        if not isinstance(decoded, Mapping):
            raise BencodeError("stats must be a dictionary")
        loaded: Dict[str, Rate] = {}
        for name, value in decoded.items():
            if not isinstance(value, Mapping):
                raise BencodeError(f"rate {name} must be a dictionary")
            loaded[name] = Rate.from_bencode(bencode.encode(value))
        self._rates.update(loaded)