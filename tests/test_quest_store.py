from __future__ import annotations

import pytest

from pyquest.state.events import CommandKind, QuestCommand
from pyquest.state.policy import has_data, has_error, reduce_record
from pyquest.state.record import DEFAULT_RECORD, ResourceRecord
from pyquest.state.store import DataStore


def test_unknown_key_reads_as_default_record() -> None:
    store = DataStore()

    record = store.get_record("never-written")

    assert record == ResourceRecord(loading=False, completed=False, error=None, data=None)
    assert record is DEFAULT_RECORD
    assert store.snapshot() == {}


def test_start_keeps_previous_error_until_settlement() -> None:
    failure = RuntimeError("network down")
    failed = ResourceRecord(error=failure)

    record = reduce_record(failed, QuestCommand.start("posts"))

    assert record.loading is True
    assert record.error is failure


def test_reject_keeps_last_good_data() -> None:
    good = ResourceRecord(completed=True, data=["a"])
    failure = RuntimeError("boom")

    record = reduce_record(good.model_copy(update={"loading": True}), QuestCommand.reject("posts", failure))

    assert record == ResourceRecord(loading=False, completed=True, error=failure, data=["a"])


def test_resolve_clears_error_and_marks_completed() -> None:
    failed = ResourceRecord(loading=True, error=RuntimeError("old"))

    record = reduce_record(failed, QuestCommand.resolve("posts", {"id": 1}))

    assert record == ResourceRecord(loading=False, completed=True, error=None, data={"id": 1})
    assert has_data(record)
    assert not has_error(record)


def test_rollback_restores_snapshot_fields() -> None:
    applied = ResourceRecord(completed=True, data="optimistic")
    failure = ValueError("rejected")

    record = reduce_record(
        applied,
        QuestCommand.rollback("posts", data=None, completed=False, error=failure),
    )

    assert record == ResourceRecord(loading=False, completed=False, error=failure, data=None)


def test_settle_only_clears_loading() -> None:
    loading = ResourceRecord(loading=True, completed=True, data=1)

    assert reduce_record(loading, QuestCommand.settle("posts")) == ResourceRecord(completed=True, data=1)


def test_command_key_is_kept_verbatim_and_required() -> None:
    assert QuestCommand.start("posts").key == "posts"
    assert QuestCommand.start(" posts").key == " posts"
    with pytest.raises(ValueError):
        QuestCommand.start("   ")


def test_dispatch_notifies_subscribers_until_unsubscribed() -> None:
    store = DataStore()
    seen: list[tuple[CommandKind, object]] = []

    def listener(command: QuestCommand, record: ResourceRecord) -> None:
        seen.append((command.kind, record.data))

    unsubscribe = store.subscribe(listener)
    store.dispatch(QuestCommand.start("posts"))
    store.dispatch(QuestCommand.resolve("posts", ["a"]))
    unsubscribe()
    store.dispatch(QuestCommand.resolve("posts", ["b"]))

    assert seen == [(CommandKind.START, None), (CommandKind.RESOLVE, ["a"])]
    assert store.get_record("posts").data == ["b"]


def test_failing_listener_does_not_break_dispatch() -> None:
    store = DataStore()
    calls: list[str] = []

    def broken(_command: QuestCommand, _record: ResourceRecord) -> None:
        raise RuntimeError("listener bug")

    def healthy(command: QuestCommand, _record: ResourceRecord) -> None:
        calls.append(command.key)

    store.subscribe(broken)
    store.subscribe(healthy)

    record = store.dispatch(QuestCommand.resolve("posts", 1))

    assert record.data == 1
    assert calls == ["posts"]


def test_records_are_replaced_not_mutated() -> None:
    store = DataStore()
    store.dispatch(QuestCommand.resolve("posts", ["a"]))
    before = store.get_record("posts")

    store.dispatch(QuestCommand.start("posts"))

    assert before.loading is False
    assert store.get_record("posts").loading is True


def test_reset_forgets_records() -> None:
    store = DataStore({"posts": ResourceRecord(completed=True, data=[1])})

    store.reset()

    assert store.get_record("posts") is DEFAULT_RECORD
