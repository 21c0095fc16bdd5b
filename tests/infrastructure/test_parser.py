"""Tests for the output parser."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from timewsync.domain.state import TimerState
from timewsync.infrastructure.parser import ParseError, parse, parse_timestamp

START = datetime(2025, 1, 6, 9, 30, tzinfo=UTC)


class TestEmptyOutput:
    @pytest.mark.parametrize("stdout", ["", "   ", "\n\n", "[]", "[\n]\n"])
    def test_means_inactive(self, stdout: str) -> None:
        assert parse(stdout) == TimerState(active=False, tags=(), started_at=None)


class TestJsonExport:
    def test_open_interval_is_active(self) -> None:
        stdout = '[{"id":1,"start":"20250106T093000Z","tags":["work","client-a"]}]\n'
        state = parse(stdout)
        assert state.active is True
        assert state.tags == ("work", "client-a")
        assert state.started_at == START

    def test_tag_order_preserved(self) -> None:
        stdout = '[{"id":1,"start":"20250106T093000Z","tags":["zeta","alpha","mid"]}]'
        assert parse(stdout).tags == ("zeta", "alpha", "mid")

    def test_closed_intervals_only_is_inactive(self) -> None:
        stdout = (
            '[{"id":2,"start":"20250106T080000Z","end":"20250106T090000Z","tags":["a"]},'
            '{"id":1,"start":"20250106T090000Z","end":"20250106T093000Z","tags":["b"]}]'
        )
        assert parse(stdout) == TimerState.inactive()

    def test_picks_open_interval_among_closed(self) -> None:
        stdout = (
            '[{"id":2,"start":"20250106T080000Z","end":"20250106T090000Z","tags":["old"]},'
            '{"id":1,"start":"20250106T093000Z","tags":["new"]}]'
        )
        state = parse(stdout)
        assert state.tags == ("new",)
        assert state.started_at == START

    def test_single_object(self) -> None:
        state = parse('{"id":1,"start":"2025-01-06T09:30:00Z","tags":["x"]}')
        assert state.active is True
        assert state.started_at == START

    def test_missing_tags_means_untagged(self) -> None:
        state = parse('[{"id":1,"start":"20250106T093000Z"}]')
        assert state.active is True
        assert state.tags == ()

    def test_trailing_whitespace(self) -> None:
        stdout = '[{"id":1,"start":"20250106T093000Z","tags":["a"]}]   \n\n  '
        assert parse(stdout).tags == ("a",)

    def test_deterministic(self) -> None:
        stdout = '[{"id":1,"start":"20250106T093000Z","tags":["a","b"]}]'
        assert parse(stdout) == parse(stdout)


class TestMalformed:
    @pytest.mark.parametrize(
        "stdout",
        [
            '[{"id":1,"tags":["a"]}]',
            '[{"id":1,"start":"","tags":["a"]}]',
            '[{"id":1,"start":"yesterday","tags":["a"]}]',
            '[{"id":1,"start":"20250106T093000Z","tags":"a"}]',
            '[{"id":1,"start":"20250106T093000Z","tags":[1, 2]}]',
            "[1, 2]",
            "[{",
            '"just a string"',
        ],
    )
    def test_json_rejected(self, stdout: str) -> None:
        with pytest.raises(ParseError):
            parse(stdout)

    def test_missing_start_detail(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse('[{"id":1,"tags":["a"]}]')
        assert "start" in exc_info.value.detail

    def test_unrecognised_text(self) -> None:
        with pytest.raises(ParseError):
            parse("Segmentation fault (core dumped)")


class TestSummaryText:
    def test_no_active_tracking(self) -> None:
        assert parse("There is no active time tracking.\n") == TimerState.inactive()

    def test_tracking(self) -> None:
        stdout = (
            'Tracking "client work" review\n'
            "  Started 2025-01-06T09:30:00\n"
            "  Current                  10:05:12\n"
            "  Total               0:35:12\n"
        )
        state = parse(stdout)
        assert state.active is True
        assert state.tags == ("client work", "review")
        assert state.started_at == datetime(2025, 1, 6, 9, 30).astimezone().astimezone(UTC)

    def test_started_with_offset_is_not_shifted(self) -> None:
        state = parse("Tracking work\n  Started 2025-01-06T10:30:00+01:00\n")
        assert state.started_at == START

    def test_tracking_untagged(self) -> None:
        state = parse("Tracking\n  Started 2025-01-06T09:30:00\n")
        assert state.active is True
        assert state.tags == ()

    def test_tracking_without_started_is_malformed(self) -> None:
        with pytest.raises(ParseError):
            parse("Tracking work\n  Total 0:00:10\n")

    def test_unbalanced_quotes(self) -> None:
        with pytest.raises(ParseError):
            parse('Tracking "oops\n  Started 2025-01-06T09:30:00\n')


class TestParseTimestamp:
    def test_compact(self) -> None:
        assert parse_timestamp("20250106T093000Z") == START

    def test_iso_with_offset(self) -> None:
        assert parse_timestamp("2025-01-06T10:30:00+01:00") == START

    def test_naive_iso_is_utc(self) -> None:
        assert parse_timestamp("2025-01-06T09:30:00") == START

    def test_naive_iso_as_local(self) -> None:
        parsed = parse_timestamp("2025-01-06T09:30:00", naive_is_local=True)
        assert parsed.tzinfo is UTC
        assert parsed == datetime(2025, 1, 6, 9, 30).astimezone()

    def test_compact_ignores_local_flag(self) -> None:
        assert parse_timestamp("20250106T093000Z", naive_is_local=True) == START

    def test_garbage(self) -> None:
        with pytest.raises(ParseError):
            parse_timestamp("soon")
