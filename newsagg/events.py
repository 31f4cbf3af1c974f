"""
Typed event channels for the maintenance core.

Each event kind gets its own channel carrying a single payload dataclass, so a
subscriber registers against exactly the payload shape it will receive.
Delivery is in-process, synchronous and at most once per emission.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Generic, List, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class EventChannel(Generic[T]):
    """A single named event stream with callback subscribers."""

    def __init__(self, name: str):
        self.name = name
        self._subscribers: List[Callable[[T], Any]] = []

    def subscribe(self, callback: Callable[[T], Any]) -> Callable[[T], Any]:
        """Register a callback; returns it so it can be used as a decorator."""
        self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: Callable[[T], Any]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, payload: T) -> None:
        """Deliver payload to every subscriber in registration order."""
        for callback in list(self._subscribers):
            try:
                callback(payload)
            except Exception as e:
                # One broken listener must not starve the others
                logger.error("Event subscriber failed",
                             channel=self.name,
                             subscriber=getattr(callback, "__name__", repr(callback)),
                             error=str(e))

    def __len__(self) -> int:
        return len(self._subscribers)


def _now() -> datetime:
    return datetime.now()


@dataclass
class ErrorEvent:
    """Generic failure notification shared by both components."""
    source: str
    operation: str
    error: str
    rule: str = ""
    timestamp: datetime = field(default_factory=_now)


@dataclass
class ConfigChangedEvent:
    key: str
    value: Any
    timestamp: datetime = field(default_factory=_now)


@dataclass
class ConfigResetEvent:
    key: str
    timestamp: datetime = field(default_factory=_now)


@dataclass
class ConfigFileChangedEvent:
    file: str
    timestamp: datetime = field(default_factory=_now)


@dataclass
class ConfigValidationErrorsEvent:
    errors: List[str]
    timestamp: datetime = field(default_factory=_now)


@dataclass
class CleanupCompletedEvent:
    operation: str
    result: Any
    cleaned_count: int
    timestamp: datetime = field(default_factory=_now)


@dataclass
class CleanupErrorEvent:
    rule: str
    error: str
    timestamp: datetime = field(default_factory=_now)


@dataclass
class RuleExecutedEvent:
    rule: str
    result: Any
    timestamp: datetime = field(default_factory=_now)


class ConfigEvents:
    """Event channels published by the config manager."""

    def __init__(self):
        self.config_changed: EventChannel[ConfigChangedEvent] = EventChannel("configChanged")
        self.config_reset: EventChannel[ConfigResetEvent] = EventChannel("configReset")
        self.config_file_changed: EventChannel[ConfigFileChangedEvent] = EventChannel("configFileChanged")
        self.config_validation_errors: EventChannel[ConfigValidationErrorsEvent] = EventChannel("configValidationErrors")
        self.error: EventChannel[ErrorEvent] = EventChannel("error")


class CleanupEvents:
    """Event channels published by the cleanup service."""

    def __init__(self):
        self.cleanup_completed: EventChannel[CleanupCompletedEvent] = EventChannel("cleanupCompleted")
        self.cleanup_error: EventChannel[CleanupErrorEvent] = EventChannel("cleanupError")
        self.rule_executed: EventChannel[RuleExecutedEvent] = EventChannel("ruleExecuted")
        self.error: EventChannel[ErrorEvent] = EventChannel("error")
