"""Tests for check() and CheckTally."""

from __future__ import annotations

from typing import TYPE_CHECKING

from topsload.dsl.checks import CheckTally, check

if TYPE_CHECKING:
    from topsload.metrics.recorder import InMemoryRecorder


def test_all_pass(recorder: InMemoryRecorder) -> None:
    assert check(5, {"positive": lambda v: v > 0, "small": lambda v: v < 10}, recorder)
    assert recorder.get_snapshot()["metrics"]["checks"]["values"]["passes"] == 2


def test_one_failure_fails_the_whole_check(recorder: InMemoryRecorder) -> None:
    assert not check(50, {"positive": lambda v: v > 0, "small": lambda v: v < 10}, recorder)
    values = recorder.get_snapshot()["metrics"]["checks"]["values"]
    assert values["passes"] == 1
    assert values["fails"] == 1


def test_every_predicate_runs_after_a_failure(recorder: InMemoryRecorder) -> None:
    calls: list[str] = []

    def _first(_v: int) -> bool:
        calls.append("first")
        return False

    def _second(_v: int) -> bool:
        calls.append("second")
        return True

    check(0, {"first": _first, "second": _second}, recorder)
    assert calls == ["first", "second"]


def test_tally_counts_per_name(recorder: InMemoryRecorder) -> None:
    tally = CheckTally()
    check(1, {"is one": lambda v: v == 1}, recorder, tally)
    check(2, {"is one": lambda v: v == 1}, recorder, tally)
    check(1, {"is one": lambda v: v == 1}, recorder, tally)
    assert tally.to_list() == [{"name": "is one", "passes": 2, "fails": 1}]


def test_tally_keeps_first_seen_order() -> None:
    tally = CheckTally()
    tally.add("b", True)
    tally.add("a", False)
    tally.add("b", False)
    assert [entry["name"] for entry in tally.to_list()] == ["b", "a"]
