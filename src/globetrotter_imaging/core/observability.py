"""Correlation-aware logging and timing metrics for the upload service."""

import logging
import time
import uuid
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterator, List, Optional

from .logging_config import get_logger


@dataclass
class LogContext:
    """Context attached to every log line of one upload."""

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        """Create new context with operation set."""
        return LogContext(
            correlation_id=self.correlation_id,
            operation=operation,
            component=self.component,
            metadata=self.metadata.copy(),
        )

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        """Create new context with additional metadata."""
        return LogContext(
            correlation_id=self.correlation_id,
            operation=self.operation,
            component=self.component,
            metadata={**self.metadata, **kwargs},
        )


class StructuredLogger:
    """Logger that renders a LogContext into the message."""

    def __init__(self, name: str = "service", logger: Optional[logging.Logger] = None):
        self._logger = logger or get_logger(name)

    @staticmethod
    def format_message(
        message: str, context: Optional[LogContext] = None, **kwargs: Any
    ) -> str:
        if context is None:
            return message

        formatted = f"[{context.correlation_id}] {message}"
        if context.operation:
            formatted = f"[{context.operation}] {formatted}"

        fields = {**context.metadata, **kwargs}
        if fields:
            formatted += " (" + ", ".join(f"{k}={v}" for k, v in fields.items()) + ")"
        return formatted

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.debug(self.format_message(message, context, **kwargs))

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.info(self.format_message(message, context, **kwargs))

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.warning(self.format_message(message, context, **kwargs))

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.error(self.format_message(message, context, **kwargs))


@dataclass
class OperationTiming:
    """Timing of one named operation."""

    operation: str
    start_time: float
    end_time: float
    success: bool
    error_message: Optional[str] = None

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def duration_ms(self) -> float:
        return self.duration * 1000


DEFAULT_MAX_RECORDS = 10000


class MetricsCollector:
    """
    In-memory collector for operation timings.

    Only the most recent ``max_records`` timings are kept; older ones are
    dropped as new ones arrive.
    """

    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS) -> None:
        if max_records < 1:
            raise ValueError("max_records must be at least 1")
        self._timings: Deque[OperationTiming] = deque(maxlen=max_records)

    @property
    def max_records(self) -> int:
        return self._timings.maxlen

    def record(self, timing: OperationTiming) -> None:
        self._timings.append(timing)

    def get_timings(self, operation: Optional[str] = None) -> List[OperationTiming]:
        """Get recorded timings, optionally filtered by operation."""
        if operation:
            return [t for t in self._timings if t.operation == operation]
        return list(self._timings)

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Summary statistics for the recorded timings."""
        timings = self.get_timings(operation)
        if not timings:
            return {}

        durations = [t.duration for t in timings]
        successful = sum(1 for t in timings if t.success)
        return {
            "total_operations": len(timings),
            "successful_operations": successful,
            "failed_operations": len(timings) - successful,
            "success_rate": successful / len(timings),
            "avg_duration": sum(durations) / len(durations),
            "min_duration": min(durations),
            "max_duration": max(durations),
        }

    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        """Record the duration and outcome of the wrapped block."""
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            self.record(OperationTiming(operation, start, time.perf_counter(), False, str(e)))
            raise
        self.record(OperationTiming(operation, start, time.perf_counter(), True))

    def clear(self) -> None:
        self._timings.clear()
