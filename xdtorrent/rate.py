"""Ring buffer of per-tick transfer samples."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import List

from xdtorrent import bencode

_U64 = (1 << 64) - 1


@dataclass
class RateSample:
    """Magnitude collected during one tick and the time the tick began."""

    value: int = 0
    timestamp: int = 0

    def time(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp)

    def clear(self) -> None:
        self.set(0)

    def set(self, n: int) -> None:
        self.value = n & _U64
        self.timestamp = int(time.time())

    def add(self, n: int) -> None:
        self.value = (self.value + n) & _U64


class Rate:
    """Fixed-length history of samples, advanced by tick()."""

    def __init__(self, sample_len: int) -> None:
        if sample_len < 1:
            raise ValueError("a rate needs at least one sample")
        self.samples: List[RateSample] = [RateSample() for _ in range(sample_len)]
        self._last = 0

    def tick(self) -> None:
        self._last = (self._last + 1) % len(self.samples)
        self.samples[self._last].clear()

    def add_sample(self, n: int) -> None:
        self.samples[self._last].add(n)

    def max(self) -> int:
        return max((s.value for s in self.samples), default=0)

    def min(self) -> int:
        return min((s.value for s in self.samples), default=_U64)

    def current(self) -> int:
        return self.samples[self._last].value

    def prev_tick_time(self) -> datetime:
        return self.samples[self._last - 1].time()

    def mean(self) -> float:
        """Average sample per second since the previous tick."""
        last_tick = self.samples[self._last - 1].timestamp
        average = sum(s.value for s in self.samples) // len(self.samples)
        elapsed = float(int(time.time()) - last_tick)
        if elapsed <= 0:
            elapsed = 1.0
        return average / elapsed

    def to_bencode(self) -> bytes:
        return bencode.encode({"Samples": [[s.value, s.timestamp] for s in self.samples]})

    @classmethod
    def from_bencode(cls, data: bytes) -> "Rate":
        decoded = bencode.decode(data)
        try:
            pairs = decoded["Samples"]
            samples = [RateSample(int(v), int(t)) for v, t in pairs]
        except (KeyError, TypeError, ValueError) as exc:
            raise bencode.BencodeError(f"invalid rate data: {exc}") from exc
        rate = cls(len(samples))
        rate.samples = samples
        return rate