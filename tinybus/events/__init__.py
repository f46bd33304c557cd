"""
Event-driven architecture module.

Provides a pub/sub event bus for decoupled communication between components.
"""

from tinybus.events.bus import (
    Callback,
    ErrorSink,
    EventBus,
    SubscriptionHandle,
)
from tinybus.events.errors import (
    EventBusError,
    InvalidArgument,
    SubscriberFailure,
)

__all__ = [
    "Callback",
    "ErrorSink",
    "EventBus",
    "EventBusError",
    "InvalidArgument",
    "SubscriberFailure",
    "SubscriptionHandle",
]
