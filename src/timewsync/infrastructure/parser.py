"""Convert external-tool output into a TimerState.

Two formats are understood:

- JSON from ``timew export``: an array of intervals (or a single interval
  object). The interval without an ``end`` is the open one.
- The plain ``timew`` summary, as printed with no arguments::

      Tracking "client work" review
        Started 2025-01-06T09:30:00
        Current                  10:05:12
        Total               0:35:12

Parsing is pure. Output-format changes in the external tool should only
require changes in this module.
"""

from __future__ import annotations

import json
import re
import shlex
from datetime import UTC, datetime
from typing import Any

from timewsync.domain.state import TimerState

_COMPACT_FORMAT = "%Y%m%dT%H%M%SZ"
_NO_TRACKING = "There is no active time tracking"
_TRACKING_RE = re.compile(r"^Tracking\b(?P<tags>.*)$")
_STARTED_RE = re.compile(r"^Started\s+(?P<ts>\S+)")


class ParseError(Exception):
    """Output was not a recognisable timer export."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Malformed output: {detail}")
        self.detail = detail


def parse(stdout: str) -> TimerState:
    """Parse *stdout* from the external tool into a TimerState.

    Empty (or whitespace-only) output means no active timer.

    Raises:
        ParseError: The output signals an active session but lacks
            required fields, or is not in a known format.
    """
    text = stdout.strip()
    if not text:
        return TimerState.inactive()
    if text[0] in "[{":
        return _parse_json(text)
    return _parse_summary(text)


def parse_timestamp(raw: str, *, naive_is_local: bool = False) -> datetime:
    """Parse a compact (``20250106T093000Z``) or ISO 8601 timestamp as UTC.

    Naive ISO timestamps are taken to be UTC, or local time when
    *naive_is_local* is set (the plain summary prints local time).

    Examples:
        >>> parse_timestamp("20250106T093000Z").isoformat()
        '2025-01-06T09:30:00+00:00'
    """
    try:
        return datetime.strptime(raw, _COMPACT_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ParseError(f"unparsable timestamp {raw!r}") from exc
    if parsed.tzinfo is None:
        if naive_is_local:
            return parsed.astimezone().astimezone(UTC)
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


# ---------------------------------------------------------------------------
# JSON export
# ---------------------------------------------------------------------------


def _parse_json(text: str) -> TimerState:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc

    if isinstance(data, dict):
        intervals = [data]
    elif isinstance(data, list):
        intervals = data
    else:
        raise ParseError(f"expected an interval array, got {type(data).__name__}")

    for interval in intervals:
        if not isinstance(interval, dict):
            raise ParseError(f"interval is not an object: {interval!r}")

    # Export is ordered oldest first; the open interval, if any, is last.
    open_intervals = [i for i in intervals if not i.get("end")]
    if not open_intervals:
        return TimerState.inactive()
    return _state_from_interval(open_intervals[-1])


def _state_from_interval(interval: dict[str, Any]) -> TimerState:
    raw_start = interval.get("start")
    if not isinstance(raw_start, str) or not raw_start:
        raise ParseError("active interval has no start time")

    raw_tags = interval.get("tags", [])
    if not isinstance(raw_tags, list) or not all(isinstance(t, str) for t in raw_tags):
        raise ParseError(f"tags must be a list of strings, got {raw_tags!r}")

    return TimerState(active=True, tags=tuple(raw_tags), started_at=parse_timestamp(raw_start))


# ---------------------------------------------------------------------------
# Plain summary
# ---------------------------------------------------------------------------


def _parse_summary(text: str) -> TimerState:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if lines[0].startswith(_NO_TRACKING):
        return TimerState.inactive()

    tracking = _TRACKING_RE.match(lines[0])
    if tracking is None:
        raise ParseError(f"unrecognised output: {lines[0]!r}")

    try:
        tags = tuple(shlex.split(tracking.group("tags")))
    except ValueError as exc:
        raise ParseError(f"unbalanced quotes in tags: {tracking.group('tags')!r}") from exc

    for line in lines[1:]:
        started = _STARTED_RE.match(line)
        if started is not None:
            return TimerState(
                active=True,
                tags=tags,
                started_at=parse_timestamp(started["ts"], naive_is_local=True),
            )

    raise ParseError("active timer has no Started line")
