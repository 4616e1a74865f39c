"""Tests for stages, thresholds and run options."""

from __future__ import annotations

import pytest

from topsload._internal.errors import ConfigError
from topsload.options import (
    DEFAULT_OPTIONS,
    Options,
    Stage,
    Threshold,
    parse_duration,
)


class TestParseDuration:
    @pytest.mark.parametrize(
        ("text", "seconds"),
        [
            ("30s", 30.0),
            ("2m", 120.0),
            ("1m30s", 90.0),
            ("500ms", 0.5),
            ("1h", 3600.0),
            ("45", 45.0),
            ("1.5s", 1.5),
        ],
    )
    def test_valid(self, text: str, seconds: float) -> None:
        assert parse_duration(text) == seconds

    def test_number_passthrough(self) -> None:
        assert parse_duration(12) == 12.0

    @pytest.mark.parametrize("text", ["", "30x", "s", "2m garbage", "-5"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(ConfigError):
            parse_duration(text)

    @pytest.mark.parametrize("value", ["nan", "inf", " -inf", float("nan"), float("inf")])
    def test_non_finite_rejected(self, value: str | float) -> None:
        with pytest.raises(ConfigError, match="finite"):
            parse_duration(value)

    def test_non_finite_stage_rejected(self) -> None:
        with pytest.raises(ConfigError, match="finite"):
            Stage.from_string("nan:5")


class TestStage:
    def test_from_string(self) -> None:
        assert Stage.from_string("30s:5") == Stage(duration=30.0, target=5)

    def test_from_string_minutes(self) -> None:
        assert Stage.from_string("2m:10") == Stage(duration=120.0, target=10)

    def test_from_string_missing_separator(self) -> None:
        with pytest.raises(ConfigError, match="<duration>:<target>"):
            Stage.from_string("30s")

    def test_from_string_bad_target(self) -> None:
        with pytest.raises(ConfigError, match="integer"):
            Stage.from_string("30s:five")

    def test_negative_target_rejected(self) -> None:
        with pytest.raises(ConfigError):
            Stage(duration=1.0, target=-1)

    def test_frozen(self) -> None:
        stage = Stage(duration=1.0, target=1)
        with pytest.raises(AttributeError):
            stage.target = 2  # type: ignore[misc]

    def test_to_dict(self) -> None:
        assert Stage(duration=120.0, target=5).to_dict() == {"duration": "2m", "target": 5}
        assert Stage(duration=30.0, target=5).to_dict() == {"duration": "30s", "target": 5}


class TestThreshold:
    def test_parse_percentile(self) -> None:
        parsed = Threshold("http_req_duration", "p(95)<2000").parse()
        assert parsed.aggregation == "p(95)"
        assert parsed.operator == "<"
        assert parsed.bound == 2000.0

    def test_parse_rate_with_spaces(self) -> None:
        parsed = Threshold("errors", "rate < 0.1").parse()
        assert parsed.aggregation == "rate"
        assert parsed.bound == 0.1

    def test_parse_two_char_operator(self) -> None:
        assert Threshold("http_reqs", "count>=10").parse().operator == ">="

    def test_holds(self) -> None:
        parsed = Threshold("errors", "rate<0.1").parse()
        assert parsed.holds(0.05)
        assert not parsed.holds(0.1)

    @pytest.mark.parametrize("expr", ["p(95)", "<2000", "rate<<1", "avg<abc"])
    def test_invalid(self, expr: str) -> None:
        with pytest.raises(ConfigError, match="Invalid threshold"):
            Threshold("m", expr).parse()


class TestOptions:
    def test_default_schedule(self) -> None:
        assert [(s.duration, s.target) for s in DEFAULT_OPTIONS.stages] == [
            (30.0, 5),
            (120.0, 5),
            (30.0, 10),
            (60.0, 10),
            (30.0, 0),
        ]
        assert DEFAULT_OPTIONS.total_duration == 270.0
        assert DEFAULT_OPTIONS.max_vus == 10

    def test_default_thresholds(self) -> None:
        assert DEFAULT_OPTIONS.to_dict()["thresholds"] == {
            "http_req_duration": ["p(95)<2000"],
            "errors": ["rate<0.1"],
        }

    def test_empty_stages_rejected(self) -> None:
        with pytest.raises(ConfigError, match="At least one stage"):
            Options(stages=())

    def test_bad_threshold_rejected_at_construction(self) -> None:
        with pytest.raises(ConfigError):
            Options(stages=(Stage(1.0, 1),), thresholds=(Threshold("errors", "nope"),))
