"""In-process change notifications for live chat views.

Services publish a topic after every commit that touched the matching table;
subscribers re-read whatever snapshot they care about. Delivery is synchronous
on the publishing thread.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from threading import Lock

logger = logging.getLogger(__name__)

TOPIC_CHAT_MESSAGES = "chat_message"
TOPIC_CHAT_SESSIONS = "chat_session"

Listener = Callable[[], None]


class Subscription:
    """Handle returned by ``ChangeFeed.subscribe``; cancel it to stop delivery."""

    def __init__(self, feed: ChangeFeed, topics: tuple[str, ...], listener: Listener) -> None:
        self._feed = feed
        self.topics = topics
        self.listener = listener
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed._remove(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


class ChangeFeed:
    """Topic -> subscriber registry."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, listener: Listener, *topics: str) -> Subscription:
        if not topics:
            raise ValueError("At least one topic is required")
        subscription = Subscription(self, topics, listener)
        with self._lock:
            for topic in topics:
                self._subscribers[topic].append(subscription)
        return subscription

    def publish(self, *topics: str) -> None:
        """Notify every active subscriber of ``topics`` once."""
        with self._lock:
            targets: list[Subscription] = []
            for topic in topics:
                for subscription in self._subscribers.get(topic, ()):
                    if subscription not in targets:
                        targets.append(subscription)

        for subscription in targets:
            if not subscription.active:
                continue
            try:
                subscription.listener()
            except Exception:
                logger.error("Change listener for %s failed", subscription.topics, exc_info=True)

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, ()))

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            for topic in subscription.topics:
                listeners = self._subscribers.get(topic)
                if listeners and subscription in listeners:
                    listeners.remove(subscription)
                if not listeners:
                    self._subscribers.pop(topic, None)


_change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """Return the process-wide change feed."""
    return _change_feed
