"""
Structured stage events.

Each stage keeps an EventLog. Events are emitted through ``logging`` as they
happen and are also kept on the stage result, so callers can inspect
warnings and errors without scraping log output.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum
import logging


class EventLevel(Enum):
    """Severity of a stage event."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    EventLevel.INFO: logging.INFO,
    EventLevel.WARNING: logging.WARNING,
    EventLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class StageEvent:
    """
    One event emitted by a stage.

    Attributes:
        stage: Stage name (e.g. "index", "inference", "split")
        level: Event severity
        message: Human-readable message
        context: Extra structured fields (paths, counts)
    """
    stage: str
    level: EventLevel
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return {
            'stage': self.stage,
            'level': self.level.value,
            'message': self.message,
            'context': {k: str(v) for k, v in self.context.items()},
        }


class EventLog:
    """Append-only list of StageEvents for one stage."""

    def __init__(self, stage: str, logger: Optional[logging.Logger] = None):
        self.stage = stage
        self.logger = logger or logging.getLogger(__name__)
        self.events: List[StageEvent] = []

    def emit(self, level: EventLevel, message: str, **context: Any) -> StageEvent:
        event = StageEvent(stage=self.stage, level=level, message=message, context=context)
        self.events.append(event)
        self.logger.log(_LOG_LEVELS[level], message)
        return event

    def info(self, message: str, **context: Any) -> StageEvent:
        return self.emit(EventLevel.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> StageEvent:
        return self.emit(EventLevel.WARNING, message, **context)

    def error(self, message: str, **context: Any) -> StageEvent:
        return self.emit(EventLevel.ERROR, message, **context)

    def count(self, level: EventLevel) -> int:
        return sum(1 for e in self.events if e.level == level)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)
