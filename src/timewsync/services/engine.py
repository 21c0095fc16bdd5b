"""SyncEngine: single-writer mirror of the external tool's timer state.

State machine::

    UNINITIALIZED --poll ok--> SYNCED <--poll ok-- DEGRADED
          |                      |                    ^
          +------poll failed-----+----poll failed-----+

Every operation that invokes the external tool (polls and the four
commands) runs as a job on ONE worker thread, fed by a FIFO queue. At most
one invocation is therefore in flight, commands are served in arrival
order, and the poll that follows a command runs inside the same job so it
always observes that command's effect.

The engine is the only writer of the current snapshot and the tag
history. Readers get frozen snapshots; runner and parser errors are
translated into CommandOutcome errors or a DEGRADED transition here and
never escape.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future
from dataclasses import dataclass
from types import TracebackType
from typing import Any, TypeVar

from timewsync.config.models import SyncConfig
from timewsync.domain.events import Event
from timewsync.domain.state import (
    CommandError,
    CommandOutcome,
    CommandRequest,
    EngineSnapshot,
    TagHistoryEntry,
    TimerState,
)
from timewsync.domain.tags import InvalidTagError, dedupe_tags, validate_tags
from timewsync.domain.types import CommandKind, EngineStatus, ErrorKind
from timewsync.infrastructure.parser import ParseError, parse
from timewsync.infrastructure.runner import (
    EXPORT_ARGS,
    STOP_ARGS,
    CommandRunner,
    NonZeroExitError,
    RunError,
    TimedOutError,
    ToolNotFoundError,
    retag_args,
    start_args,
)
from timewsync.plugins.publisher import EventPublisher
from timewsync.services.history import TagHistoryStore

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass
class _Job:
    """One unit of work for the single writer."""

    op: str
    run: Callable[[], Any]
    on_cancel: Callable[[], Any]
    on_error: Callable[[Exception], Any]
    future: Future[Any]


def translate_run_error(exc: RunError) -> CommandError:
    """Map a process-level failure onto a user-facing error."""
    if isinstance(exc, ToolNotFoundError):
        return CommandError(
            kind=ErrorKind.EXTERNAL_TOOL_UNAVAILABLE,
            message=str(exc),
            detail={"executable": exc.executable},
        )
    if isinstance(exc, NonZeroExitError):
        return CommandError(
            kind=ErrorKind.COMMAND_FAILED,
            message=str(exc),
            detail={"exit_code": exc.exit_code, "stderr": exc.stderr.strip()},
        )
    if isinstance(exc, TimedOutError):
        return CommandError(
            kind=ErrorKind.COMMAND_FAILED,
            message=str(exc),
            detail={"timeout": exc.timeout},
        )
    return CommandError(kind=ErrorKind.COMMAND_FAILED, message=str(exc))


class SyncEngine:
    """Owns the live TimerState and serializes all access to the external tool.

    Parameters:
        runner: Invokes the external tool.
        publisher: Receives StateChanged / TagsHistoryUpdated / CommandFailed.
        config: Poll interval, invocation timeout, history capacity.
        history: Tag history store (built from *config* when omitted).
        parser: Converts export output to a TimerState.

    Usage::

        with SyncEngine(CommandRunner(), EventPublisher()) as engine:
            engine.start()
            outcome = engine.start_timer(["work", "review"])
    """

    def __init__(
        self,
        runner: CommandRunner,
        publisher: EventPublisher,
        *,
        config: SyncConfig | None = None,
        history: TagHistoryStore | None = None,
        parser: Callable[[str], TimerState] = parse,
    ) -> None:
        self._runner = runner
        self._publisher = publisher
        self._config = config or SyncConfig()
        self._history = history or TagHistoryStore(self._config.history_capacity)
        self._history_lock = threading.Lock()
        self._parser = parser

        self._snapshot = EngineSnapshot()
        self._queue: queue.Queue[_Job | None] = queue.Queue()
        self._submit_lock = threading.Lock()
        self._shutting_down = False
        self._stop_polling = threading.Event()
        self._poll_thread: threading.Thread | None = None
        self._worker = threading.Thread(
            target=self._work, name="timewsync-writer", daemon=True
        )
        self._worker.start()

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        *,
        sync_hooks: bool = False,
        load_plugins: bool = True,
    ) -> SyncEngine:
        """Build an engine with the default runner, publisher, and plugins."""
        from timewsync.plugins.builtins.logging_plugin import LoggingPlugin
        from timewsync.plugins.manager import PluginManager

        pm = PluginManager()
        pm.register_plugin(LoggingPlugin(), name="logging")
        if load_plugins:
            pm.discover_and_load()
        publisher = EventPublisher(pm, buffer_size=config.event_buffer_size, sync=sync_hooks)
        return cls(CommandRunner(config.executable), publisher, config=config)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def snapshot(self) -> EngineSnapshot:
        """Current status, last known state, and degradation reason."""
        return self._snapshot

    @property
    def status(self) -> EngineStatus:
        return self._snapshot.status

    @property
    def state(self) -> TimerState | None:
        """Last successfully observed state (possibly stale when degraded)."""
        return self._snapshot.state

    @property
    def publisher(self) -> EventPublisher:
        return self._publisher

    def history(self) -> list[TagHistoryEntry]:
        """Recorded tag sets, most recently used first."""
        with self._history_lock:
            return self._history.list()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin the background polling loop. Idempotent."""
        with self._submit_lock:
            if self._shutting_down:
                msg = "engine has been shut down"
                raise RuntimeError(msg)
            if self._poll_thread is not None:
                return
            self._poll_thread = threading.Thread(
                target=self._poll_loop, name="timewsync-poller", daemon=True
            )
            self._poll_thread.start()
        logger.debug("Polling every %sms", self._config.poll_interval_ms)

    def shutdown(self) -> None:
        """Stop polling, fail queued commands, and release threads.

        The job already in flight is allowed to finish (bounded by the
        runner timeout) so the in-memory state matches the external tool.
        """
        with self._submit_lock:
            if self._shutting_down:
                return
            self._shutting_down = True
        self._stop_polling.set()

        cancelled = 0
        while True:
            try:
                job = self._queue.get_nowait()
            except queue.Empty:
                break
            if job is not None:
                job.future.set_result(job.on_cancel())
                cancelled += 1
        self._queue.put(None)

        self._worker.join()
        if self._poll_thread is not None:
            self._poll_thread.join()
        self._publisher.shutdown()
        logger.debug("Engine shut down (%d queued jobs cancelled)", cancelled)

    def __enter__(self) -> SyncEngine:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def poll_now(self) -> EngineSnapshot:
        """Run one poll through the serialized path and return the result."""
        return self._call(
            "poll",
            self._poll,
            on_cancel=self.snapshot,
            on_error=self._poll_crashed,
        )

    def start_timer(self, tags: Sequence[str]) -> CommandOutcome:
        """Start a timer with *tags*. Fails if one is already running."""
        op = CommandKind.START_TIMER.value
        payload = tuple(tags)
        return self._command(op, lambda: self._do_start(op, payload))

    def stop_timer(self) -> CommandOutcome:
        """Stop the running timer. Fails if none is running."""
        op = CommandKind.STOP_TIMER.value
        return self._command(op, lambda: self._do_stop(op))

    def start_or_stop(self) -> CommandOutcome:
        """Stop if running, otherwise start with the most recent tag set."""
        op = CommandKind.START_OR_STOP.value
        return self._command(op, lambda: self._do_start_or_stop(op))

    def edit_tags(self, tags: Sequence[str]) -> CommandOutcome:
        """Replace the running timer's tags, keeping its start time."""
        op = CommandKind.EDIT_TAGS.value
        payload = tuple(tags)
        return self._command(op, lambda: self._do_edit(op, payload))

    def request(self, req: CommandRequest) -> CommandOutcome:
        """Route a CommandRequest to the matching operation."""
        tags = req.payload_tags or ()
        if req.kind == CommandKind.START_TIMER:
            return self.start_timer(tags)
        if req.kind == CommandKind.STOP_TIMER:
            return self.stop_timer()
        if req.kind == CommandKind.EDIT_TAGS:
            return self.edit_tags(tags)
        return self.start_or_stop()

    # ------------------------------------------------------------------
    # Single-writer plumbing
    # ------------------------------------------------------------------

    def _call(
        self,
        op: str,
        run: Callable[[], _T],
        *,
        on_cancel: Callable[[], _T],
        on_error: Callable[[Exception], _T],
    ) -> _T:
        future: Future[_T] = Future()
        job = _Job(op=op, run=run, on_cancel=on_cancel, on_error=on_error, future=future)
        with self._submit_lock:
            if self._shutting_down:
                return on_cancel()
            self._queue.put(job)
        return future.result()

    def _command(self, op: str, run: Callable[[], CommandOutcome]) -> CommandOutcome:
        return self._call(
            op,
            run,
            on_cancel=lambda: self._fail(op, ErrorKind.SHUTTING_DOWN, "engine is shutting down"),
            on_error=lambda exc: self._fail(op, ErrorKind.COMMAND_FAILED, f"internal error: {exc}"),
        )

    def _work(self) -> None:
        while True:
            job = self._queue.get()
            if job is None:
                return
            if not job.future.set_running_or_notify_cancel():
                continue
            try:
                result = job.run()
            except Exception as exc:
                logger.exception("Unexpected error in %s", job.op)
                result = job.on_error(exc)
            job.future.set_result(result)

    def _poll_loop(self) -> None:
        # Fixed delay between the end of one poll and the start of the next.
        while not self._stop_polling.is_set():
            self.poll_now()
            if self._stop_polling.wait(self._config.poll_interval):
                return

    # ------------------------------------------------------------------
    # Jobs (worker thread only)
    # ------------------------------------------------------------------

    def _poll(self) -> EngineSnapshot:
        previous = self._snapshot
        try:
            result = self._runner.run(EXPORT_ARGS, self._config.command_timeout)
            state = self._parser(result.stdout)
        except RunError as exc:
            return self._degrade(translate_run_error(exc))
        except ParseError as exc:
            return self._degrade(
                CommandError(
                    kind=ErrorKind.COMMAND_FAILED,
                    message=str(exc),
                    detail={"detail": exc.detail},
                )
            )

        self._snapshot = EngineSnapshot(status=EngineStatus.SYNCED, state=state)
        if previous.status == EngineStatus.DEGRADED:
            logger.info("External tool reachable again; state synced")
        if state != previous.state:
            logger.debug("Timer state changed: active=%s tags=%s", state.active, list(state.tags))
            self._publisher.publish(Event.state_changed(state))
        return self._snapshot

    def _degrade(self, reason: CommandError) -> EngineSnapshot:
        if self._snapshot.status != EngineStatus.DEGRADED:
            logger.warning("Poll failed, keeping last known state: %s", reason.message)
        else:
            logger.debug("Poll failed again: %s", reason.message)
        self._snapshot = EngineSnapshot(
            status=EngineStatus.DEGRADED,
            state=self._snapshot.state,
            reason=reason,
        )
        return self._snapshot

    def _poll_crashed(self, exc: Exception) -> EngineSnapshot:
        return self._degrade(
            CommandError(kind=ErrorKind.COMMAND_FAILED, message=f"internal error: {exc}")
        )

    def _fail(
        self,
        op: str,
        kind: ErrorKind,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> CommandOutcome:
        error = CommandError(kind=kind, message=message, detail=detail or {})
        return self._failed(op, error)

    def _failed(self, op: str, error: CommandError) -> CommandOutcome:
        logger.info("%s failed: %s (%s)", op, error.message, error.kind)
        self._publisher.publish(Event.command_failed(error))
        return CommandOutcome(
            success=False,
            op=op,
            resulting_state=self._snapshot.state,
            error=error,
        )

    def _known_state(self) -> TimerState | CommandError:
        """Current state, polling first if nothing has been observed yet."""
        if self._snapshot.state is None:
            self._poll()
        state = self._snapshot.state
        if state is not None:
            return state
        assert self._snapshot.reason is not None
        return self._snapshot.reason

    def _invoke(self, args: Sequence[str]) -> CommandError | None:
        try:
            self._runner.run(args, self._config.command_timeout)
        except RunError as exc:
            return translate_run_error(exc)
        except Exception as exc:
            # The tool may have applied the change; resync before reporting.
            logger.exception("Unexpected error running %s", " ".join(args))
            self._poll()
            return CommandError(kind=ErrorKind.COMMAND_FAILED, message=f"internal error: {exc}")
        return None

    def _refresh(self, op: str) -> CommandOutcome:
        snapshot = self._poll()
        if snapshot.status == EngineStatus.DEGRADED:
            logger.warning("%s applied but the follow-up poll failed; state may be stale", op)
        return CommandOutcome(success=True, op=op, resulting_state=snapshot.state)

    def _record(self, tags: tuple[str, ...]) -> None:
        with self._history_lock:
            changed = self._history.record(tags)
            entries = self._history.list()
        if changed:
            self._publisher.publish(Event.tags_history_updated(entries))

    def _do_start(self, op: str, tags: tuple[str, ...]) -> CommandOutcome:
        try:
            tags = dedupe_tags(validate_tags(tags))
        except InvalidTagError as exc:
            return self._fail(op, ErrorKind.INVALID_TAG, str(exc), {"tag": exc.tag})

        known = self._known_state()
        if isinstance(known, CommandError):
            return self._failed(op, known)
        if known.active:
            return self._fail(op, ErrorKind.ALREADY_ACTIVE, "a timer is already running")

        error = self._invoke(start_args(tags))
        if error is not None:
            return self._failed(op, error)
        self._record(tags)
        return self._refresh(op)

    def _do_stop(self, op: str) -> CommandOutcome:
        known = self._known_state()
        if isinstance(known, CommandError):
            return self._failed(op, known)
        if not known.active:
            return self._fail(op, ErrorKind.NOT_ACTIVE, "no timer is running")

        error = self._invoke(STOP_ARGS)
        if error is not None:
            return self._failed(op, error)
        return self._refresh(op)

    def _do_start_or_stop(self, op: str) -> CommandOutcome:
        known = self._known_state()
        if isinstance(known, CommandError):
            return self._failed(op, known)
        if known.active:
            return self._do_stop(op)
        with self._history_lock:
            recent = self._history.most_recent()
        return self._do_start(op, recent.raw_tags if recent else ())

    def _do_edit(self, op: str, tags: tuple[str, ...]) -> CommandOutcome:
        try:
            tags = dedupe_tags(validate_tags(tags))
        except InvalidTagError as exc:
            return self._fail(op, ErrorKind.INVALID_TAG, str(exc), {"tag": exc.tag})
        if not tags:
            return self._fail(op, ErrorKind.INVALID_TAG, "at least one tag is required")

        known = self._known_state()
        if isinstance(known, CommandError):
            return self._failed(op, known)
        if not known.active:
            return self._fail(op, ErrorKind.NOT_ACTIVE, "no timer is running")

        error = self._invoke(retag_args(tags))
        if error is not None:
            return self._failed(op, error)
        self._record(tags)
        return self._refresh(op)
