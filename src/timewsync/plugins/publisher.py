"""Event fan-out to in-process subscribers and pluggy hooks.

Each subscriber owns a bounded buffer. When a subscriber falls behind and
its buffer is full, the OLDEST buffered event is dropped to make room and
the subscription's ``dropped`` counter is incremented. Publication never
waits on a subscriber, so a stalled consumer cannot block others or the
engine's polling loop.

Hook dispatch runs on a single-worker ThreadPoolExecutor (publish order is
kept), or inline when ``sync=True`` (useful for testing / ``--sync``).

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from types import TracebackType
from typing import TYPE_CHECKING

from timewsync.domain.events import Event
from timewsync.domain.types import EventKind

if TYPE_CHECKING:
    from timewsync.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 256


class Subscription:
    """One subscriber's ordered, lazily consumed event stream.

    Iterating blocks until the next event arrives and stops once the
    subscription is closed and its buffer is empty.
    """

    def __init__(self, publisher: EventPublisher, buffer_size: int) -> None:
        if buffer_size <= 0:
            msg = f"buffer_size must be positive, got {buffer_size}"
            raise ValueError(msg)
        self._publisher = publisher
        self._buffer: deque[Event] = deque(maxlen=buffer_size)
        self._cond = threading.Condition()
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, event: Event) -> None:
        with self._cond:
            if self._closed:
                return
            if len(self._buffer) == self._buffer.maxlen:
                self.dropped += 1
            self._buffer.append(event)
            self._cond.notify_all()

    def get(self, timeout: float | None = None) -> Event | None:
        """Next event, waiting up to *timeout* seconds (forever if None).

        Returns None on timeout, or when closed with nothing left to read.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._buffer or self._closed, timeout):
                return None
            if self._buffer:
                return self._buffer.popleft()
            return None

    def drain(self) -> list[Event]:
        """All buffered events, without waiting."""
        with self._cond:
            events = list(self._buffer)
            self._buffer.clear()
            return events

    def close(self) -> None:
        """Stop receiving events and wake any blocked reader."""
        self._publisher._unsubscribe(self)
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[Event]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    def __enter__(self) -> Subscription:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


_HOOK_FOR_KIND = {
    EventKind.STATE_CHANGED: "on_state_changed",
    EventKind.TAGS_HISTORY_UPDATED: "on_tags_history_updated",
    EventKind.COMMAND_FAILED: "on_command_failed",
}


class EventPublisher:
    """Deliver events to every current subscriber and registered plugin.

    Parameters:
        plugin_manager: Loaded PluginManager for hook dispatch (optional).
        buffer_size: Default per-subscriber buffer bound.
        sync: Dispatch hooks inline instead of on a worker thread.
    """

    def __init__(
        self,
        plugin_manager: PluginManager | None = None,
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        sync: bool = False,
    ) -> None:
        self._pm = plugin_manager
        self._buffer_size = buffer_size
        self._sync = sync
        self._lock = threading.Lock()
        self._subscribers: list[Subscription] = []
        self._executor: ThreadPoolExecutor | None = (
            None
            if sync or plugin_manager is None
            else ThreadPoolExecutor(max_workers=1, thread_name_prefix="timewsync-hooks")
        )
        self._closed = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def subscribe(self, buffer_size: int | None = None) -> Subscription:
        """Open a new, independent event stream starting at the next publish."""
        if buffer_size is None:
            buffer_size = self._buffer_size
        subscription = Subscription(self, buffer_size)
        with self._lock:
            if self._closed:
                subscription._closed = True
            else:
                self._subscribers.append(subscription)
        return subscription

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: Event) -> None:
        """Deliver *event* to all current subscribers, then to plugin hooks."""
        with self._lock:
            if self._closed:
                logger.debug("Dropping %s event published after shutdown", event.kind)
                return
            subscribers = list(self._subscribers)

        for subscription in subscribers:
            subscription._deliver(event)

        if self._pm is None:
            return
        if self._executor is None:
            self._execute_hook(event)
        else:
            self._executor.submit(self._execute_hook, event)

    def shutdown(self) -> None:
        """Close all subscriptions and wait for pending hook calls."""
        with self._lock:
            self._closed = True
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription.close()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    def _execute_hook(self, event: Event) -> None:
        """Call the plugin hook matching *event*. Failures are only logged."""
        assert self._pm is not None
        hook_name = _HOOK_FOR_KIND[event.kind]
        hook_fn = getattr(self._pm.hook, hook_name)
        try:
            if event.kind == EventKind.STATE_CHANGED:
                hook_fn(state=event.state)
            elif event.kind == EventKind.TAGS_HISTORY_UPDATED:
                hook_fn(history=event.history)
            else:
                hook_fn(error=event.error)
        except Exception:
            logger.warning("Hook %s failed", hook_name, exc_info=True)
