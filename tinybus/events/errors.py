"""Error types raised and reported by the event bus."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tinybus.events.bus import SubscriptionHandle


class EventBusError(Exception):
    """Base class for event bus errors."""


class InvalidArgument(EventBusError, ValueError):
    """Raised when an event name or callback is unusable."""


class SubscriberFailure(EventBusError):
    """
    Report for a subscriber that raised during emit.

    Never raised by ``emit`` itself; instances are handed to the bus's
    error sink so the remaining subscribers still run.

    Attributes:
        event_name: Event being emitted
        handle: Subscription whose callback failed
        call_args: Positional arguments passed to the callback
        call_kwargs: Keyword arguments passed to the callback
        error: The original exception
    """

    def __init__(
        self,
        event_name: str,
        handle: SubscriptionHandle,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        error: Exception,
    ):
        self.event_name = event_name
        self.handle = handle
        self.call_args = args
        self.call_kwargs = kwargs
        self.error = error
        self.message = (
            f"Subscriber {handle.name} for '{event_name}' failed: "
            f"{type(error).__name__}: {error}"
        )
        super().__init__(self.message)
        self.__cause__ = error

    @property
    def callback(self):
        return self.handle.callback
