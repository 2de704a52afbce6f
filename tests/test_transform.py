"""Tests for positional adjustment of concurrent edits."""

from collab_relay.domain.operations import (
    EditOperation,
    OperationKind,
    PendingOperation,
)
from collab_relay.services.transform import (
    OperationHistory,
    adjust_against,
    adjust_operation,
)


def _insert(offset: int, text: str) -> EditOperation:
    return EditOperation(kind=OperationKind.INSERT, offset=offset, payload=text)


def _delete(offset: int, length: int) -> EditOperation:
    return EditOperation(kind=OperationKind.DELETE, offset=offset, payload=length)


def _pending(operation: EditOperation, timestamp: float) -> PendingOperation:
    return PendingOperation(
        operation=operation,
        connection_id="c1",
        user_id="alice",
        client_timestamp=timestamp,
    )


def test_insert_after_prior_insert_shifts_forward() -> None:
    adjusted = adjust_against(_insert(10, "x"), _insert(3, "abcd"))

    assert adjusted.offset == 14


def test_insert_before_prior_insert_stays() -> None:
    adjusted = adjust_against(_insert(5, "x"), _insert(10, "abcd"))

    assert adjusted.offset == 5


def test_insert_at_same_offset_shifts_forward() -> None:
    adjusted = adjust_against(_insert(3, "x"), _insert(3, "ab"))

    assert adjusted.offset == 5


def test_insert_after_prior_delete_shifts_backward() -> None:
    adjusted = adjust_against(_insert(10, "x"), _delete(2, 3))

    assert adjusted.offset == 7


def test_delete_after_prior_insert_shifts_forward() -> None:
    adjusted = adjust_against(_delete(8, 2), _insert(8, "abc"))

    assert adjusted.offset == 11
    assert adjusted.payload == 2


def test_shift_never_goes_below_zero() -> None:
    adjusted = adjust_against(_insert(2, "x"), _delete(1, 10))

    assert adjusted.offset == 0


def test_only_strictly_earlier_operations_apply() -> None:
    history = [
        _pending(_insert(0, "aa"), 1.0),
        _pending(_insert(0, "bbb"), 2.0),
        _pending(_insert(0, "cccc"), 3.0),
    ]

    adjusted = adjust_operation(_insert(5, "x"), 2.0, history)

    assert adjusted.offset == 7


def test_concurrent_deletes_are_not_adjusted() -> None:
    # Known limitation: replicas applying these in different orders diverge.
    document = "abcdefghij"
    first = _delete(2, 3)
    second = _delete(4, 3)

    adjusted = adjust_operation(second, 2.0, [_pending(first, 1.0)])

    def apply(text: str, operation: EditOperation) -> str:
        return text[: operation.offset] + text[operation.offset + operation.length :]

    replica_a = apply(apply(document, first), adjusted)
    replica_b = apply(apply(document, second), first)
    assert adjusted == second
    assert replica_a != replica_b


def test_history_keeps_latest_entries() -> None:
    history = OperationHistory(limit=100)
    for index in range(150):
        history.append("p1", "/a.py", _pending(_insert(index, "x"), float(index)))

    entries = history.entries("p1", "/a.py")

    assert len(entries) == 100
    assert entries[0].client_timestamp == 50.0
    assert entries[-1].client_timestamp == 149.0


def test_history_is_scoped_per_file() -> None:
    history = OperationHistory()
    history.append("p1", "/a.py", _pending(_insert(0, "x"), 1.0))
    history.append("p1", "/b.py", _pending(_insert(0, "y"), 2.0))
    history.append("p2", "/a.py", _pending(_insert(0, "z"), 3.0))

    history.forget("p1", "/b.py")

    assert len(history.entries("p1", "/a.py")) == 1
    assert history.entries("p1", "/b.py") == []
    assert history.pending_count("p1") == 1
    assert [path for path, _ in history.recent("p2")] == ["/a.py"]
