"""Live Updates Package

Change-event sources and the reducer that folds their events into metrics.
"""

from .reducer import LiveUpdateReducer, ReducerState
from .sources import ChangeEventSource, QueueEventSource
from .redis_source import RedisEventSource

__all__ = [
    "LiveUpdateReducer",
    "ReducerState",
    "ChangeEventSource",
    "QueueEventSource",
    "RedisEventSource",
]
