"""Bounded, time-ordered log of analysis events for one session."""

from __future__ import annotations

import bisect
import logging
import threading
import time
from collections import Counter
from collections.abc import Callable, Iterable

from polisynth.emergence.events import AnalysisEvent, EventCategory, Severity
from polisynth.errors import EventValidationError

logger = logging.getLogger(__name__)


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


def validate_event(event: AnalysisEvent, now: int, session_start: int) -> None:
    """Raise EventValidationError if the event cannot belong to this session."""
    if not isinstance(event.category, EventCategory):
        raise EventValidationError(event.event_id, f"unknown category {event.category!r}")
    if event.timestamp > now:
        raise EventValidationError(event.event_id, f"timestamp {event.timestamp} is in the future")
    if event.timestamp < session_start:
        raise EventValidationError(
            event.event_id, f"timestamp {event.timestamp} precedes session start {session_start}"
        )


class AnalysisEventLog:
    """Holds at most `capacity` events sorted by timestamp.

    Events outside [session_start, now] are rejected and counted, where `now`
    is the reference time passed to `record` (the log clock by default). A
    log without a session start opens one at the first submission. When the
    log is full the oldest events are evicted. `version` changes on every
    mutation so readers can detect staleness cheaply.
    """

    def __init__(
        self,
        capacity: int = 500,
        session_start: int | None = None,
        clock: Callable[[], int] = wall_clock_ms,
    ):
        self.capacity = capacity
        self.clock = clock
        self.session_start = session_start
        self._events: list[AnalysisEvent] = []
        self._lock = threading.Lock()
        self.version = 0
        self.accepted_count = 0
        self.rejected_count = 0
        self.evicted_count = 0

    def __len__(self) -> int:
        return len(self._events)

    @property
    def submitted_count(self) -> int:
        return self.accepted_count + self.rejected_count

    def record(self, event: AnalysisEvent, now: int | None = None) -> bool:
        """Validate and insert an event. Returns False if it was rejected.

        Args:
            event: Event to insert
            now: Reference time for validation; defaults to the log's clock
        """
        with self._lock:
            reference = self.clock() if now is None else now
            if self.session_start is None:
                self.session_start = reference
            try:
                validate_event(event, reference, self.session_start)
            except EventValidationError as e:
                self.rejected_count += 1
                self.version += 1
                logger.warning(str(e))
                return False

            bisect.insort(self._events, event, key=lambda e: e.timestamp)
            self.accepted_count += 1
            overflow = len(self._events) - self.capacity
            if overflow > 0:
                del self._events[:overflow]
                self.evicted_count += overflow
            self.version += 1
            return True

    def record_all(self, events: Iterable[AnalysisEvent], now: int | None = None) -> int:
        """Record several events. Returns how many were accepted."""
        return sum(1 for event in events if self.record(event, now))

    def query(
        self,
        category: EventCategory | None = None,
        severity: Severity | None = None,
        since: int | None = None,
        until: int | None = None,
        limit: int | None = None,
    ) -> list[AnalysisEvent]:
        """Filtered events, newest first."""
        with self._lock:
            events = list(self._events)

        matches = []
        for event in reversed(events):
            if category is not None and event.category != category:
                continue
            if severity is not None and event.severity != severity:
                continue
            if since is not None and event.timestamp < since:
                continue
            if until is not None and event.timestamp > until:
                continue
            matches.append(event)
            if limit is not None and len(matches) >= limit:
                break
        return matches

    def recent(self, limit: int = 10) -> list[AnalysisEvent]:
        return self.query(limit=limit)

    def critical(self) -> list[AnalysisEvent]:
        """High and critical events, newest first."""
        return [
            e for e in self.query() if e.severity in (Severity.HIGH, Severity.CRITICAL)
        ]

    def all(self) -> list[AnalysisEvent]:
        """Every retained event, oldest first."""
        with self._lock:
            return list(self._events)

    def counts_by_category(self) -> dict[str, int]:
        with self._lock:
            return dict(Counter(e.category.value for e in self._events))

    def counts_by_severity(self) -> dict[str, int]:
        with self._lock:
            return dict(Counter(e.severity.value for e in self._events))

    def clear(self) -> None:
        """Drop all events; counters and session start are kept."""
        with self._lock:
            self._events.clear()
            self.version += 1

    def reset(self, session_start: int | None = None) -> None:
        """Start a new session: drop events and zero the counters.

        Without `session_start` the new session opens at the next submission.
        """
        with self._lock:
            self._events.clear()
            self.session_start = session_start
            self.accepted_count = 0
            self.rejected_count = 0
            self.evicted_count = 0
            self.version += 1
