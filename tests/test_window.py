from __future__ import annotations

import pytest

from sediment_watch.core.window import InvariantViolation, WindowBuffer

from .helpers import readings


def test_append_evicts_oldest() -> None:
    buf = WindowBuffer(capacity=3)
    buf.replace(readings([1, 2, 3]))
    evicted = buf.append(readings([4, 5], start_id=4))
    assert buf.size() == 3
    assert [r.value for r in evicted] == [1, 2]
    assert [r.id for r in buf.snapshot()] == [3, 4, 5]


def test_replace_discards_prior_contents_and_truncates() -> None:
    buf = WindowBuffer(capacity=3)
    buf.replace(readings([1, 2]))
    buf.replace(readings([10, 20, 30, 40], start_id=50))
    assert buf.values() == [20, 30, 40]
    assert buf.max_id() == 53


def test_append_rejects_batch_not_above_max_id() -> None:
    buf = WindowBuffer(capacity=10)
    buf.replace(readings([1, 2, 3]))
    with pytest.raises(InvariantViolation):
        buf.append(readings([7, 8], start_id=3))
    assert [r.id for r in buf.snapshot()] == [1, 2, 3]


def test_append_rejects_unordered_batch() -> None:
    buf = WindowBuffer(capacity=10)
    batch = readings([1, 2, 3], start_id=5)
    with pytest.raises(InvariantViolation):
        buf.append([batch[1], batch[0], batch[2]])
    assert buf.size() == 0


def test_tail() -> None:
    buf = WindowBuffer(capacity=10)
    buf.replace(readings([1, 2, 3, 4]))
    assert [r.value for r in buf.tail(2)] == [3, 4]
    assert buf.tail(0) == []
