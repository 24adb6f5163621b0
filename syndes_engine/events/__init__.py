"""Event streaming — output and lifecycle events."""

from syndes_engine.events.bus import (
    TOPIC_INTERACTIONS,
    TOPIC_OUTPUT,
    TOPIC_SESSIONS,
    EventBus,
    FanoutEventBus,
    LogEventBus,
    MemoryEventBus,
    NullEventBus,
)

__all__ = [
    "EventBus",
    "NullEventBus",
    "LogEventBus",
    "MemoryEventBus",
    "FanoutEventBus",
    "TOPIC_OUTPUT",
    "TOPIC_SESSIONS",
    "TOPIC_INTERACTIONS",
]
