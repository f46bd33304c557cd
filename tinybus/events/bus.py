"""
Event bus for process-local pub/sub.

Provides:
- Registration-ordered (FIFO) dispatch per event name
- Handles that identify one registration for later removal
- Snapshot dispatch, unaffected by reentrant subscribe/unsubscribe
- Per-subscriber failure isolation with a pluggable error sink
- One-shot subscriptions
"""

from __future__ import annotations

import inspect
import itertools
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from tinybus.config import DEFAULT_MAX_DEAD_LETTERS
from tinybus.events.errors import InvalidArgument, SubscriberFailure
from tinybus.logging_config import get_logger

if TYPE_CHECKING:
    from tinybus.config import BusSettings

logger = get_logger(__name__)


# =============================================================================
# Types
# =============================================================================

Callback = Callable[..., Any]
ErrorSink = Callable[[SubscriberFailure], Any]


@dataclass(frozen=True, eq=False)
class SubscriptionHandle:
    """
    A single registration on an event bus.

    Handles compare by identity: registering the same callback twice
    yields two handles that never match each other.

    Attributes:
        id: Sequence number, unique per bus
        event_name: Event the callback is registered for
        callback: The registered callable
        once: Whether the registration is dropped after its first emit
    """

    id: int
    event_name: str
    callback: Callback = field(repr=False)
    once: bool = False

    @property
    def name(self) -> str:
        """Readable callback name for logs and error messages."""
        return getattr(self.callback, "__qualname__", None) or repr(self.callback)


def _require_event_name(event_name: Any, *, allow_empty: bool = True) -> None:
    if not isinstance(event_name, str):
        raise InvalidArgument(
            f"event name must be a string, got {type(event_name).__name__}"
        )
    if not allow_empty and not event_name:
        raise InvalidArgument("event name must be a non-empty string")


def _same_callback(registered: Callback, target: Any) -> bool:
    if registered is target:
        return True
    # Bound methods are rebuilt on each attribute access; match on the
    # underlying instance and function instead.
    return (
        inspect.ismethod(registered)
        and inspect.ismethod(target)
        and registered.__self__ is target.__self__
        and registered.__func__ is target.__func__
    )


# =============================================================================
# Event Bus
# =============================================================================


class EventBus:
    """
    Process-local publish/subscribe registry.

    Subscribers for an event name run synchronously, in the order they
    were registered, each receiving the arguments passed to ``emit``.

    Dispatch works on a snapshot of the subscriber list taken when
    ``emit`` starts. Subscribing or unsubscribing from inside a callback
    only affects later emits.

    A subscriber that raises does not stop the others. The exception is
    wrapped in a :class:`SubscriberFailure` and passed to the error sink.
    The default sink logs it and keeps it in a bounded dead-letter list.

    The registry is guarded by a lock that is never held while callbacks
    run, so callbacks may call back into the bus from any thread.
    """

    def __init__(
        self,
        *,
        error_sink: ErrorSink | None = None,
        max_dead_letters: int = DEFAULT_MAX_DEAD_LETTERS,
    ):
        """
        Initialize event bus.

        Args:
            error_sink: Called with a SubscriberFailure whenever a subscriber
                raises; replaces the default log-and-record sink
            max_dead_letters: Maximum failures kept by the default sink
        """
        if max_dead_letters < 0:
            raise ValueError("max_dead_letters must be >= 0")

        self._registry: dict[str, list[SubscriptionHandle]] = {}
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._error_sink: ErrorSink = error_sink or self._record_failure
        self._dead_letters: deque[SubscriberFailure] = deque(maxlen=max_dead_letters)
        self._emit_count = 0
        self._delivered_count = 0
        self._failure_count = 0

    @classmethod
    def from_settings(
        cls,
        settings: BusSettings,
        *,
        error_sink: ErrorSink | None = None,
    ) -> EventBus:
        """Create a bus using limits from ``settings``."""
        return cls(error_sink=error_sink, max_dead_letters=settings.max_dead_letters)

    def __repr__(self) -> str:
        return (
            f"<EventBus events={len(self.event_names())} "
            f"subscriptions={self.subscriber_count()}>"
        )

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def subscribe(
        self,
        event_name: str,
        callback: Callback,
        *,
        once: bool = False,
    ) -> SubscriptionHandle:
        """
        Register ``callback`` for ``event_name``.

        Args:
            event_name: Non-empty event name
            callback: Any callable; receives the arguments given to emit
            once: Drop the registration after the first emit that reaches it

        Returns:
            Handle identifying this registration

        Raises:
            InvalidArgument: If the name is empty or not a string, or the
                callback is not callable
        """
        _require_event_name(event_name, allow_empty=False)
        if not callable(callback):
            raise InvalidArgument(
                f"callback must be callable, got {type(callback).__name__}"
            )

        with self._lock:
            handle = SubscriptionHandle(
                id=next(self._ids),
                event_name=event_name,
                callback=callback,
                once=once,
            )
            self._registry.setdefault(event_name, []).append(handle)

        logger.debug(
            "event_subscribed",
            event_name=event_name,
            handler=handle.name,
            subscription_id=handle.id,
            once=once,
        )
        return handle

    on = subscribe

    def once(self, event_name: str, callback: Callback) -> SubscriptionHandle:
        """Register ``callback`` to run on the next emit of ``event_name`` only."""
        return self.subscribe(event_name, callback, once=True)

    def listener(self, event_name: str, *, once: bool = False):
        """
        Subscribe the decorated function.

        Usage:
            @bus.listener("user.created")
            def on_user_created(user):
                ...
        """

        def decorator(fn: Callback) -> Callback:
            self.subscribe(event_name, fn, once=once)
            return fn

        return decorator

    def unsubscribe(
        self,
        event_name: str,
        handle_or_callback: SubscriptionHandle | Callback,
    ) -> bool:
        """
        Remove one registration from ``event_name``.

        A handle removes exactly the registration it was issued for. A
        callback removes its oldest registration under ``event_name``.

        Returns:
            True if a registration was removed
        """
        _require_event_name(event_name)

        with self._lock:
            entries = self._registry.get(event_name)
            if not entries:
                return False

            index = self._find(entries, handle_or_callback)
            if index is None:
                return False

            removed = entries.pop(index)
            if not entries:
                del self._registry[event_name]

        logger.debug(
            "event_unsubscribed",
            event_name=event_name,
            handler=removed.name,
            subscription_id=removed.id,
        )
        return True

    off = unsubscribe

    def unsubscribe_all(self, event_name: str | None = None) -> int:
        """
        Remove every registration.

        Args:
            event_name: Only clear this event, or None for all events

        Returns:
            Number of registrations removed
        """
        with self._lock:
            if event_name is None:
                removed = sum(len(entries) for entries in self._registry.values())
                self._registry.clear()
            else:
                _require_event_name(event_name)
                removed = len(self._registry.pop(event_name, ()))

        if removed:
            logger.debug("event_unsubscribed_all", event_name=event_name, count=removed)
        return removed

    @staticmethod
    def _find(
        entries: list[SubscriptionHandle],
        target: SubscriptionHandle | Callback,
    ) -> int | None:
        if isinstance(target, SubscriptionHandle):
            for index, entry in enumerate(entries):
                if entry is target:
                    return index
            return None

        for index, entry in enumerate(entries):
            if _same_callback(entry.callback, target):
                return index
        return None

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def emit(self, event_name: str, *args: Any, **kwargs: Any) -> None:
        """
        Call every subscriber of ``event_name`` with the given arguments.

        Emitting an event nobody subscribed to does nothing.

        Raises:
            InvalidArgument: If ``event_name`` is not a string
        """
        _require_event_name(event_name)

        with self._lock:
            self._emit_count += 1
            entries = self._registry.get(event_name)
            if not entries:
                return
            snapshot = tuple(entries)
            if any(handle.once for handle in snapshot):
                entries[:] = [handle for handle in entries if not handle.once]
                if not entries:
                    del self._registry[event_name]

        delivered = 0
        failed = 0
        for handle in snapshot:
            try:
                handle.callback(*args, **kwargs)
            except Exception as exc:
                failed += 1
                self._report(SubscriberFailure(event_name, handle, args, kwargs, exc))
            else:
                delivered += 1

        with self._lock:
            self._delivered_count += delivered
            self._failure_count += failed

        logger.debug(
            "event_emitted",
            event_name=event_name,
            subscribers=len(snapshot),
            failures=failed,
        )

    def _report(self, failure: SubscriberFailure) -> None:
        """Hand a failure to the error sink; a failing sink is only logged."""
        try:
            self._error_sink(failure)
        except Exception:
            logger.exception(
                "error_sink_failed",
                event_name=failure.event_name,
                handler=failure.handle.name,
            )

    # -------------------------------------------------------------------------
    # Dead Letters
    # -------------------------------------------------------------------------

    def _record_failure(self, failure: SubscriberFailure) -> None:
        """Default error sink: log and keep the failure."""
        logger.error(
            "subscriber_failed",
            event_name=failure.event_name,
            handler=failure.handle.name,
            subscription_id=failure.handle.id,
            exc_info=failure.error,
        )
        with self._lock:
            self._dead_letters.append(failure)

    def get_dead_letters(self, limit: int = 100) -> list[SubscriberFailure]:
        """Most recent failures recorded by the default sink, oldest first."""
        if limit <= 0:
            return []
        with self._lock:
            return list(self._dead_letters)[-limit:]

    def clear_dead_letters(self) -> int:
        with self._lock:
            count = len(self._dead_letters)
            self._dead_letters.clear()
        return count

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def event_names(self) -> list[str]:
        """Names with at least one registration, in first-subscribed order."""
        with self._lock:
            return list(self._registry)

    def subscribers(self, event_name: str) -> tuple[Callback, ...]:
        """Callbacks registered for ``event_name``, in dispatch order."""
        _require_event_name(event_name)
        with self._lock:
            return tuple(handle.callback for handle in self._registry.get(event_name, ()))

    def subscriber_count(self, event_name: str | None = None) -> int:
        if event_name is not None:
            _require_event_name(event_name)
        with self._lock:
            if event_name is not None:
                return len(self._registry.get(event_name, ()))
            return sum(len(entries) for entries in self._registry.values())

    def has_subscribers(self, event_name: str) -> bool:
        _require_event_name(event_name)
        return self.subscriber_count(event_name) > 0

    def get_stats(self) -> dict[str, Any]:
        """Get event bus statistics."""
        with self._lock:
            return {
                "event_names": len(self._registry),
                "total_subscriptions": sum(len(s) for s in self._registry.values()),
                "emits": self._emit_count,
                "delivered": self._delivered_count,
                "failures": self._failure_count,
                "dead_letters": len(self._dead_letters),
            }
