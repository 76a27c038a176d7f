"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies (database, event bus).
"""

from .event_bus_mock import MockEventBus

__all__ = [
    'MockEventBus',
]
