"""
In-memory shared state for the web crawler system.
"""

from .database import ContentStore
from .events import EventLog, EventInstance, EventType

__all__ = ['ContentStore', 'EventLog', 'EventInstance', 'EventType']
