'''
Subject dispatches events. It holds the list of observers and informs all of them
whenever something happens. The ConnectionStateStore, the FailoverCoordinator and the
HealthCheckRunner share one Subject, so a single observer sees every health, switch and
lifecycle notification in the order they were emitted.
'''

import logging

from monitoring.events import FailoverEvent

logger = logging.getLogger(__name__)


class Subject:
    def __init__(self):
        self._observers = [] # list of all observers

    def add_observer(self, observer):
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer):
        if observer in self._observers:
            self._observers.remove(observer)

    def notify(self, event: FailoverEvent):
        logger.debug(f"[Subject] dispatching {event.kind.value} for {event.connection}")
        for observer in list(self._observers):
            observer.update(event)
