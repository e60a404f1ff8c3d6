from __future__ import annotations

from typing import Dict


class DepthBuffer:
    """Sparse per-position observation counts over a sliding window.

    Only positions that have been incremented are stored, so memory follows the
    number of live positions rather than the contig length. A missing position
    reads as zero and zero is never stored.
    """

    def __init__(self) -> None:
        self._data: Dict[int, int] = {}

    def value(self, pos: int) -> int:
        return self._data.get(pos, 0)

    def increment(self, pos: int) -> None:
        self._data[pos] = self._data.get(pos, 0) + 1

    def evict(self, pos: int) -> None:
        self._data.pop(pos, None)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, pos: object) -> bool:
        return pos in self._data
