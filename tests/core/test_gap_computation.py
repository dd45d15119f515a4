from __future__ import annotations

import random

from mm_core.gaps import max_sequence, missing_sequences


def test_empty_collection_has_no_gaps():
    assert max_sequence([]) == 0
    assert missing_sequences({}) == []


def test_single_gap():
    assert missing_sequences({1: "a", 2: "b", 4: "d"}) == [3]


def test_complete_range_has_no_gaps():
    assert missing_sequences({i: i for i in range(1, 11)}) == []


def test_gaps_at_start_and_middle():
    assert missing_sequences({3: 0, 5: 0, 8: 0}) == [1, 2, 4, 6, 7]


def test_missing_equals_range_minus_keys_ascending():
    rng = random.Random(11)
    for _ in range(50):
        m = rng.randint(1, 200)
        keys = set(rng.sample(range(1, m + 1), rng.randint(1, m))) | {m}
        got = missing_sequences({k: None for k in keys})
        assert got == sorted(set(range(1, m + 1)) - keys)


def test_explicit_upper_bound():
    recs = {1: 0, 2: 0, 4: 0}
    assert missing_sequences(recs, upper=2) == []
    assert missing_sequences(recs, upper=6) == [3, 5, 6]
