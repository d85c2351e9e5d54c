"""
Event tracing and logging for auto-discovery runs.

A Tracer records what a run looked at (pointer counts, every scanned
candidate, each found array and anchor) so a surprising placement can be
explained after the fact. Traces are saved as JSON.
"""

from __future__ import annotations

import json
import logging
import time
from collections import Counter, deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterator

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class EventType(Enum):
    """Types of traced events."""
    POINTERS_DISCOVERED = "pointers_discovered"
    SEARCH_STARTED = "search_started"
    CANDIDATE_SCANNED = "candidate_scanned"
    ARRAY_FOUND = "array_found"
    SEARCH_EXHAUSTED = "search_exhausted"
    ANCHOR_WRITTEN = "anchor_written"


@dataclass
class TraceEvent:
    """One recorded event, tagged with the step it happened in."""
    timestamp: float
    event_type: EventType
    data: dict[str, Any]
    context: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "event_type": self.event_type.value,
            "context": self.context,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TraceEvent:
        return cls(
            timestamp=raw["timestamp"],
            event_type=EventType(raw["event_type"]),
            data=raw.get("data", {}),
            context=raw.get("context", ""),
        )


@dataclass
class Tracer:
    """
    Bounded event recorder.

    Only the newest ``max_events`` events are kept. A disabled tracer
    accepts every call and records nothing, so callers never need to
    check ``enabled`` themselves.

    Usage:
        tracer = Tracer()
        tracer.start()
        with tracer.step("movenames"):
            tracer.trace_search('[name""13]')
        tracer.save("trace.json")
    """
    enabled: bool = True
    max_events: int = 100000

    _events: deque = field(init=False, repr=False)
    _start_time: float = field(default=0.0, init=False)
    _context: str = field(default="", init=False)

    def __post_init__(self):
        self._events = deque(maxlen=self.max_events)

    def start(self) -> None:
        """Reset the clock and drop recorded events."""
        self._start_time = time.perf_counter()
        self._events.clear()
        self._context = ""

    @contextmanager
    def step(self, context: str) -> Iterator[Tracer]:
        """Tag events recorded inside the block with ``context``."""
        previous = self._context
        self._context = context
        try:
            yield self
        finally:
            self._context = previous

    def trace(self, event_type: EventType, data: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        self._events.append(TraceEvent(
            timestamp=time.perf_counter() - self._start_time,
            event_type=event_type,
            data=dict(data or {}),
            context=self._context,
        ))

    # ─── Typed helpers ─────────────────────────────────────────

    def trace_pointers(self, count: int) -> None:
        self.trace(EventType.POINTERS_DISCOVERED, {"count": count})

    def trace_search(self, schema: str) -> None:
        self.trace(EventType.SEARCH_STARTED, {"schema": schema})

    def trace_candidate(self, address: int, count: int) -> None:
        """Progress callback for search(): one call per candidate."""
        self.trace(EventType.CANDIDATE_SCANNED, {"address": address, "count": count})

    def trace_result(self, schema: str, address: int | None, count: int = 0) -> None:
        if address is None:
            self.trace(EventType.SEARCH_EXHAUSTED, {"schema": schema})
            return
        self.trace(EventType.ARRAY_FOUND, {"schema": schema, "address": address, "count": count})

    def trace_anchor(self, name: str, address: int, kind: str) -> None:
        self.trace(EventType.ANCHOR_WRITTEN, {"name": name, "address": address, "kind": kind})

    # ─── Queries ───────────────────────────────────────────────

    def get_events(
        self,
        event_type: EventType | None = None,
        context: str | None = None,
    ) -> list[TraceEvent]:
        """Recorded events, oldest first, optionally narrowed by type and step."""
        return [
            event for event in self._events
            if (event_type is None or event.event_type == event_type)
            and (context is None or event.context == context)
        ]

    def get_summary(self) -> dict[str, Any]:
        counts = Counter(event.event_type.value for event in self._events)
        contexts: list[str] = []
        for event in self._events:
            if event.context and event.context not in contexts:
                contexts.append(event.context)
        return {
            "total_events": len(self._events),
            "duration": self._events[-1].timestamp if self._events else 0,
            "event_counts": dict(counts),
            "contexts": contexts,
        }

    # ─── Persistence ───────────────────────────────────────────

    def save(self, path: str | Path) -> None:
        """Write the trace and its summary as JSON."""
        payload = {
            "start_time": self._start_time,
            "event_count": len(self._events),
            "summary": self.get_summary(),
            "events": [event.to_dict() for event in self._events],
        }
        Path(path).write_text(json.dumps(payload, indent=2))

    @classmethod
    def load(cls, path: str | Path) -> Tracer:
        payload = json.loads(Path(path).read_text())
        events = [TraceEvent.from_dict(raw) for raw in payload.get("events", [])]
        tracer = cls(max_events=max(len(events), cls.max_events))
        tracer._start_time = payload.get("start_time", 0.0)
        tracer._events.extend(events)
        return tracer


def setup_logging(
    level: int = logging.INFO,
    log_file: str | Path | None = None,
) -> None:
    """
    Configure the ``romlayout`` logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Logging level.
        log_file: Optional file that receives the same records as the console.
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    package_logger = logging.getLogger("romlayout")
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
