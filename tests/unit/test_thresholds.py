"""Tests for threshold evaluation."""

from __future__ import annotations

import logging

from topsload.engine.thresholds import evaluate_thresholds
from topsload.metrics.recorder import InMemoryRecorder
from topsload.options import DEFAULT_OPTIONS, Threshold


def _snapshot(p95: float, error_rate: float) -> dict:
    return {
        "metrics": {
            "http_req_duration": {"type": "trend", "values": {"avg": 100.0, "p(95)": p95}},
            "errors": {"type": "rate", "values": {"rate": error_rate, "passes": 0, "fails": 0}},
        }
    }


def test_default_thresholds_pass():
    results = evaluate_thresholds(_snapshot(1500.0, 0.05), DEFAULT_OPTIONS.thresholds)
    assert [r.ok for r in results] == [True, True]
    assert results[0].observed == 1500.0


def test_p95_over_limit_fails():
    results = evaluate_thresholds(_snapshot(2000.0, 0.0), DEFAULT_OPTIONS.thresholds)
    assert not results[0].ok
    assert results[1].ok


def test_error_rate_at_limit_fails():
    results = evaluate_thresholds(_snapshot(10.0, 0.1), DEFAULT_OPTIONS.thresholds)
    assert not results[1].ok


def test_snapshot_is_annotated():
    snapshot = _snapshot(10.0, 0.5)
    evaluate_thresholds(snapshot, DEFAULT_OPTIONS.thresholds)
    metrics = snapshot["metrics"]
    assert metrics["http_req_duration"]["thresholds"] == {"p(95)<2000": {"ok": True}}
    assert metrics["errors"]["thresholds"] == {"rate<0.1": {"ok": False}}


def test_missing_metric_passes():
    results = evaluate_thresholds({"metrics": {}}, [Threshold("errors", "rate<0.1")])
    assert results[0].ok
    assert results[0].observed is None


def test_empty_snapshot_passes_default_thresholds(caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("topsload"), "propagate", True)
    snapshot = InMemoryRecorder().get_snapshot()
    with caplog.at_level(logging.INFO, logger="topsload.engine.thresholds"):
        results = evaluate_thresholds(snapshot, DEFAULT_OPTIONS.thresholds)
    assert all(r.ok for r in results)
    assert snapshot["metrics"] == {}
    assert caplog.records
    assert all(record.levelno == logging.INFO for record in caplog.records)


def test_missing_aggregation_fails():
    snapshot = _snapshot(10.0, 0.0)
    results = evaluate_thresholds(snapshot, [Threshold("http_req_duration", "p(99)<100")])
    assert not results[0].ok
    assert snapshot["metrics"]["http_req_duration"]["thresholds"]["p(99)<100"] == {"ok": False}


def test_no_thresholds():
    assert evaluate_thresholds(_snapshot(1.0, 0.0), []) == []
