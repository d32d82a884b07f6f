"""
In-memory event log of pipeline stages per address.
It doubles as the set of addresses the crawler has already considered.
"""

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


class EventType(Enum):
    """Pipeline stages recorded in the log."""
    DISCOVERY = "discovery"
    FETCH = "fetch"
    PARSE = "parse"
    PERSIST = "persist"
    DISPATCH = "dispatch"


@dataclass(frozen=True)
class EventInstance:
    """A single recorded pipeline event."""
    event_type: EventType
    success: bool
    value: int = 0
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'event_type': self.event_type.value,
            'success': self.success,
            'value': self.value,
            'timestamp': self.timestamp
        }


class EventLog:
    """
    Append-only history of pipeline events, guarded by a single lock.

    An address counts as discovered as soon as any discovery event was
    logged for it, successful or not.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._events: Dict[str, List[EventInstance]] = {}
        self._lock = threading.Lock()

    def _append(self, address: str, event_type: EventType, success: bool, value: int = 0):
        with self._lock:
            self._events.setdefault(address, []).append(
                EventInstance(event_type=event_type, success=success, value=value)
            )

    def log_discovery(self, address: str, success: bool, value: int = 0):
        self._append(address, EventType.DISCOVERY, success, value)

    def log_fetch(self, address: str, success: bool, value: int = 0):
        self._append(address, EventType.FETCH, success, value)

    def log_parse(self, address: str, success: bool, value: int = 0):
        self._append(address, EventType.PARSE, success, value)

    def log_persist(self, address: str, success: bool, value: int = 0):
        self._append(address, EventType.PERSIST, success, value)

    def log_dispatch(self, address: str, success: bool, value: int = 0):
        self._append(address, EventType.DISPATCH, success, value)

    def should_download(self, address: str) -> bool:
        """Return True if no discovery event exists yet for the address."""
        with self._lock:
            return not any(
                event.event_type is EventType.DISCOVERY
                for event in self._events.get(address, ())
            )

    def get_report(self) -> Dict[str, List[EventInstance]]:
        """Return every logged event, grouped by address."""
        with self._lock:
            return {address: list(events) for address, events in self._events.items()}

    def get_stats(self) -> Dict[str, int]:
        """Count events per stage and outcome."""
        counts: Counter = Counter()
        with self._lock:
            for events in self._events.values():
                for event in events:
                    outcome = 'ok' if event.success else 'failed'
                    counts[f"{event.event_type.value}_{outcome}"] += 1
            counts['addresses'] = len(self._events)
        return dict(counts)
