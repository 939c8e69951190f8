"""Status publisher for pub/sub delivery of session lifecycle events."""

import logging
from typing import Callable, List
from pubsub import pub
from ..models.events import StatusChangeEvent

logger = logging.getLogger(__name__)

StatusListener = Callable[[StatusChangeEvent], None]


class ListenerErrorLogger(pub.IListenerExcHandler):
    """Logs a listener's exception so pubsub carries on with the remaining listeners."""

    def __call__(self, listenerID: str, topicObj) -> None:
        logger.error(f"Status listener {listenerID} failed on topic {topicObj.getName()}", exc_info=True)


class StatusPublisher:
    """Publishes StatusChangeEvent values on a pubsub topic.

    Listeners must accept a single `event` keyword argument. A listener that
    raises is logged and skipped; the others still receive the event.
    """

    def __init__(self, topic: str):
        """Initialize status publisher.

        Args:
            topic: Pub/sub topic name for status events
        """
        self.topic = topic
        # pubsub holds listeners weakly
        self._listeners: List[StatusListener] = []
        if pub.getListenerExcHandler() is None:
            pub.setListenerExcHandler(ListenerErrorLogger())
        logger.info(f"StatusPublisher initialized with topic: {topic}")

    def subscribe(self, listener: StatusListener) -> None:
        pub.subscribe(listener, self.topic)
        self._listeners.append(listener)

    def unsubscribe(self, listener: StatusListener) -> None:
        try:
            pub.unsubscribe(listener, self.topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        if listener in self._listeners:
            self._listeners.remove(listener)

    def unsubscribe_all(self) -> None:
        for listener in list(self._listeners):
            self.unsubscribe(listener)

    def publish(self, event: StatusChangeEvent) -> None:
        """Publish an event. Listener failures are logged, never raised.

        Args:
            event: Event to publish
        """
        logger.debug(f"Publishing {event.type} event on {self.topic}")
        try:
            pub.sendMessage(self.topic, event=event)
        except Exception as e:
            logger.error(f"Publishing {event.type} event on {self.topic} failed: {e}", exc_info=True)
