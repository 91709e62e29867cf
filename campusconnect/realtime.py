"""In-process change feed: push-style subscriptions over the relational store.

A subscription pairs a topic with a *loader* (a query run against a session)
and a callback. The callback receives the loader's full result immediately on
subscribe and again every time a writer publishes the topic after a commit.
Subscribers always get a replacement snapshot, never an incremental patch.
"""
import logging
import threading
import uuid
from typing import Any, Callable

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

Loader = Callable[[Session], Any]
Callback = Callable[[Any], None]


def user_conversations_topic(user_id: str) -> str:
    return f"user-conversations:{user_id}"


def conversation_messages_topic(conversation_id: str) -> str:
    return f"conversation-messages:{conversation_id}"


class ChangeFeed:
    """Registry of live subscriptions keyed by topic."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, dict[str, tuple[Loader, Callback]]] = {}

    def subscribe(self, db: Session, topic: str, loader: Loader, callback: Callback) -> Callable[[], None]:
        """Register a listener, deliver the current snapshot, and return its unsubscribe handle."""
        token = uuid.uuid4().hex
        with self._lock:
            self._subscriptions.setdefault(topic, {})[token] = (loader, callback)
        logger.debug("Subscribed %s to %s", token, topic)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._subscriptions.get(topic)
                if listeners is None or listeners.pop(token, None) is None:
                    return
                if not listeners:
                    del self._subscriptions[topic]
            logger.debug("Unsubscribed %s from %s", token, topic)

        # Registered before the first load so a publish in between is not missed
        try:
            callback(loader(db))
        except Exception:
            unsubscribe()
            raise
        return unsubscribe

    def publish(self, db: Session, *topics: str) -> None:
        """Re-run every loader on the given topics and push the fresh snapshots."""
        for topic in topics:
            with self._lock:
                listeners = list(self._subscriptions.get(topic, {}).values())
            for loader, callback in listeners:
                try:
                    callback(loader(db))
                except Exception:
                    # One broken listener must not fail the writer or starve the others
                    logger.exception("Listener on %s failed", topic)

    def listener_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(topic, {}))


change_feed = ChangeFeed()
