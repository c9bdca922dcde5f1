'''
Observer is a listener and also a reactor to events. It is an object that waits for
messages and then reacts based on delivered information.
LoggingObserver -> writes every event to the log
EventRecorder   -> keeps events in memory (status endpoint, tests)
'''

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import List, Optional

from monitoring.events import EventKind, FailoverEvent

logger = logging.getLogger(__name__)


class Observer(ABC):
    @abstractmethod
    def update(self, event: FailoverEvent):
        """
        event example:
        FailoverEvent(kind=EventKind.SWITCHED_TO_FAILOVER, connection="failover", previous="primary")
        """
        pass


class LoggingObserver(Observer):
    _WARNING_KINDS = {
        EventKind.PRIMARY_DOWN,
        EventKind.FAILOVER_DOWN,
        EventKind.LIMITED_FUNCTIONALITY_ACTIVATED,
        EventKind.CACHE_UNAVAILABLE,
    }

    def update(self, event: FailoverEvent):
        level = logging.WARNING if event.kind in self._WARNING_KINDS else logging.INFO
        logger.log(level, f"[Event] {event.kind.value}: {event.to_dict()}")


class EventRecorder(Observer):
    def __init__(self, maxlen: Optional[int] = None):
        self.events = deque(maxlen=maxlen)

    def update(self, event: FailoverEvent):
        self.events.append(event)

    def kinds(self) -> List[EventKind]:
        return [e.kind for e in self.events]

    def of_kind(self, kind: EventKind) -> List[FailoverEvent]:
        return [e for e in self.events if e.kind == kind]

    def clear(self):
        self.events.clear()
