"""Engine-assigned bid identifiers.

Identifiers are plain ints, unique within one clearing call:
  - hourly bids: each hour starts at the next multiple of 1000
  - block bids: start at the next multiple of 100000 after the last hourly bid
so an id alone tells a reader which hour (or the block range) it came from.
"""

import threading


class BidIdentifierSequence:
    """Monotonic id counter with stride jumps; reset at the start of each call."""

    HOUR_STRIDE = 1_000
    BLOCK_STRIDE = 100_000

    def __init__(self) -> None:
        self._next = 0
        self._lock = threading.Lock()

    def reset(self) -> None:
        with self._lock:
            self._next = 0

    def next_id(self) -> int:
        with self._lock:
            identifier = self._next
            self._next += 1
            return identifier

    def jump(self, stride: int) -> None:
        """Advance to the next multiple of ``stride``, always leaving a gap."""
        with self._lock:
            self._next = (self._next + stride) - (self._next % stride)

    def start_next_hour(self) -> None:
        self.jump(self.HOUR_STRIDE)

    def start_block_range(self) -> None:
        self.jump(self.BLOCK_STRIDE)
