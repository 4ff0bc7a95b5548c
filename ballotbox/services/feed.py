"""
Live aggregation feed.

An in-process publish/subscribe channel with one version counter per topic.
Publishing bumps the topic version and wakes every subscriber; subscribers
never receive data through the channel, only the fact that something
changed. Whoever wakes up re-reads the latest committed snapshot, so a
dropped or coalesced notification still converges on the current state.

The feed has no write authority. Nothing on the vote path reads from it.
"""
import queue
import threading
from typing import Dict, Optional, Set

CANDIDATES = "candidates"
TOKENS = "tokens"
TOPICS = (CANDIDATES, TOKENS)


class Subscription:
    def __init__(self, feed: "LiveFeed", topic: str, maxsize: int):
        self.feed = feed
        self.topic = topic
        self._queue: "queue.Queue[int]" = queue.Queue(maxsize=maxsize)
        self.closed = False

    def notify(self, version: int) -> None:
        try:
            self._queue.put_nowait(version)
        except queue.Full:
            # Subscriber is behind; it re-reads the latest snapshot anyway
            pass

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """
        Block until the topic changes. Returns the newest pending version,
        draining older ones, or None on timeout.
        """
        try:
            version = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        while True:
            try:
                version = self._queue.get_nowait()
            except queue.Empty:
                return version

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.feed.unsubscribe(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class LiveFeed:
    def __init__(self, queue_size: int = 16):
        self.queue_size = queue_size
        self._lock = threading.Lock()
        self._versions: Dict[str, int] = {t: 0 for t in TOPICS}
        self._subscribers: Dict[str, Set[Subscription]] = {t: set() for t in TOPICS}

    def init_app(self, app) -> None:
        self.queue_size = app.config.get("FEED_QUEUE_SIZE", self.queue_size)
        app.extensions["live_feed"] = self

    def _check_topic(self, topic: str) -> None:
        if topic not in self._versions:
            raise ValueError(f"Unknown feed topic: {topic}")

    def subscribe(self, topic: str) -> Subscription:
        self._check_topic(topic)
        sub = Subscription(self, topic, self.queue_size)
        with self._lock:
            self._subscribers[topic].add(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._subscribers[sub.topic].discard(sub)

    def publish(self, *topics: str) -> None:
        for topic in topics:
            self._check_topic(topic)
            with self._lock:
                self._versions[topic] += 1
                version = self._versions[topic]
                subscribers = list(self._subscribers[topic])
            for sub in subscribers:
                sub.notify(version)

    def version(self, topic: str) -> int:
        self._check_topic(topic)
        with self._lock:
            return self._versions[topic]

    def subscriber_count(self, topic: str) -> int:
        self._check_topic(topic)
        with self._lock:
            return len(self._subscribers[topic])
