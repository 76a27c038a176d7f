"""
Event Bus Mock for Component Testing

Records published events so tests can assert on them.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class MockEventBus:
    """Mock for the service event bus (EventBusProtocol)"""

    def __init__(self):
        self.published_events: List[Dict[str, Any]] = []
        self._should_raise: Optional[Exception] = None

    async def publish(self, subject: str, data: Dict[str, Any]):
        """Record a published event"""
        if self._should_raise:
            raise self._should_raise

        self.published_events.append({
            "subject": subject,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    async def close(self):
        """Mock close"""
        pass

    # Test helper methods

    def get_published_by_subject(self, subject: str) -> List[Dict[str, Any]]:
        """Get published events by subject"""
        return [e for e in self.published_events if e.get("subject") == subject]

    def get_last_event(self) -> Optional[Dict[str, Any]]:
        """Get the last published event"""
        return self.published_events[-1] if self.published_events else None

    def clear(self):
        """Clear published events"""
        self.published_events.clear()

    def set_error(self, error: Exception):
        """Set an error to be raised on publish"""
        self._should_raise = error

    def clear_error(self):
        """Clear any pending error"""
        self._should_raise = None

    def assert_event_published(self, subject: str, data_match: Optional[Dict] = None):
        """Assert that an event was published"""
        events = self.get_published_by_subject(subject)
        assert len(events) > 0, f"No '{subject}' events were published. Published: {self.published_events}"

        if data_match:
            for event in events:
                if all(event.get("data", {}).get(k) == v for k, v in data_match.items()):
                    return event
            raise AssertionError(
                f"No '{subject}' event matched data {data_match}. Events: {events}"
            )
        return events[0]

    def assert_no_events_published(self, subject: Optional[str] = None):
        """Assert that no events were published"""
        if subject:
            events = self.get_published_by_subject(subject)
            assert len(events) == 0, f"Expected no '{subject}' events, but got: {events}"
        else:
            assert len(self.published_events) == 0, f"Expected no events, but got: {self.published_events}"
