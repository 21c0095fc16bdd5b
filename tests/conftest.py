"""Shared pytest fixtures and test helpers for timewsync tests."""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Generator, Sequence
from datetime import UTC, datetime

import pytest
from click.testing import CliRunner

from timewsync.config.models import SyncConfig
from timewsync.infrastructure.runner import NonZeroExitError, RunError, RunResult
from timewsync.plugins.publisher import EventPublisher, Subscription
from timewsync.services.engine import SyncEngine

STARTED_AT = datetime(2025, 1, 6, 9, 30, tzinfo=UTC)


class FakeTimew:
    """In-memory stand-in for the ``timew`` executable.

    Records every invocation and the highest number of overlapping
    invocations seen, so tests can assert the single-writer guarantee.
    """

    def __init__(self) -> None:
        self.active = False
        self.tags: tuple[str, ...] = ()
        self.started_at: datetime | None = None
        self.calls: list[tuple[str, ...]] = []
        self.errors: dict[str, RunError] = {}
        self.export_output: str | None = None
        self.delay = 0.0
        self.max_in_flight = 0
        self._in_flight = 0
        self._lock = threading.Lock()

    def run(self, args: Sequence[str], timeout: float) -> RunResult:
        with self._lock:
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            args = tuple(args)
            self.calls.append(args)
            error = self.errors.get(args[0])
            if error is not None:
                raise error
            return RunResult(args=args, stdout=self._apply(args), stderr="", exit_code=0)
        finally:
            with self._lock:
                self._in_flight -= 1

    def _apply(self, args: tuple[str, ...]) -> str:
        op = args[0]
        if op == "export":
            if self.export_output is not None:
                return self.export_output
            return self.export_json()
        if op == "start":
            self.active = True
            self.tags = args[1:]
            self.started_at = STARTED_AT
        elif op == "stop":
            if not self.active:
                raise NonZeroExitError(255, "There is no active time tracking.\n")
            self.active = False
            self.tags = ()
            self.started_at = None
        elif op == "retag":
            self.tags = args[2:]
        return ""

    def export_json(self) -> str:
        if not self.active:
            return "[\n]\n"
        assert self.started_at is not None
        interval = {
            "id": 1,
            "start": self.started_at.strftime("%Y%m%dT%H%M%SZ"),
            "tags": list(self.tags),
        }
        return json.dumps([interval]) + "\n"

    def mutations(self) -> list[tuple[str, ...]]:
        """Invocations other than export."""
        return [call for call in self.calls if call[0] != "export"]


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def fake_timew() -> FakeTimew:
    return FakeTimew()


@pytest.fixture
def sync_config() -> SyncConfig:
    """Fast polling so loop tests finish quickly."""
    return SyncConfig(poll_interval_ms=20, command_timeout_ms=1000)


@pytest.fixture
def publisher() -> EventPublisher:
    return EventPublisher(sync=True)


@pytest.fixture
def events(publisher: EventPublisher) -> Subscription:
    return publisher.subscribe()


@pytest.fixture
def engine(
    fake_timew: FakeTimew,
    publisher: EventPublisher,
    sync_config: SyncConfig,
) -> Generator[SyncEngine]:
    """Engine wired to the fake tool. Not polling until ``start()``."""
    eng = SyncEngine(fake_timew, publisher, config=sync_config)  # type: ignore[arg-type]
    try:
        yield eng
    finally:
        eng.shutdown()


@pytest.fixture
def _fake_cli_engine(
    fake_timew: FakeTimew,
    sync_config: SyncConfig,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Make the CLI build its engine around ``fake_timew``.

    Use via ``@pytest.mark.usefixtures("_fake_cli_engine")``.
    """

    def _from_config(cls: type[SyncEngine], config: SyncConfig, **_: object) -> SyncEngine:
        return cls(fake_timew, EventPublisher(sync=True), config=sync_config)  # type: ignore[arg-type]

    monkeypatch.setattr(SyncEngine, "from_config", classmethod(_from_config))
