from __future__ import annotations

from typing import Iterable, List, Mapping


def max_sequence(keys: Iterable[int]) -> int:
    """Highest observed sequence number, 0 when nothing was observed."""
    return max(keys, default=0)


def missing_sequences(records: Mapping[int, object], upper: int | None = None) -> List[int]:
    """Ascending sequence numbers in [1, upper] absent from `records`.

    `upper` defaults to the highest key present. Sequences are assumed to start
    at 1 and be contiguous on the server side.
    """
    hi = max_sequence(records.keys()) if upper is None else int(upper)
    return [seq for seq in range(1, hi + 1) if seq not in records]
