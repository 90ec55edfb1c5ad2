from abc import ABC, abstractmethod
from typing import List, Optional
from debit_gate.schemas.events import EventType, Notification
import logging

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """Fire-and-forget outlet for state changes. The gate never reads it back."""

    @abstractmethod
    def emit(self, notification: Notification):
        pass


class InMemoryNotificationSink(NotificationSink):
    def __init__(self):
        self._storage: List[Notification] = []

    def emit(self, notification: Notification):
        self._storage.append(notification)
        logger.info(f"Notification: {notification.model_dump_json()}")

    def get_all(self, event_type: Optional[EventType] = None) -> List[Notification]:
        if event_type is None:
            return list(self._storage)
        return [n for n in self._storage if n.event_type == event_type]

    def clear(self):
        self._storage.clear()
