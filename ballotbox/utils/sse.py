import json
from typing import Callable, Iterator, Optional

from flask import Response, current_app, stream_with_context

from ..extensions import db, feed
from ..services.ballot_store import candidates_fingerprint
from ..services.feed import CANDIDATES, TOKENS
from ..services.token_authority import tokens_fingerprint

FINGERPRINTS = {
    CANDIDATES: candidates_fingerprint,
    TOKENS: tokens_fingerprint,
}


def format_event(topic: str, version: int, data) -> str:
    return f"event: {topic}\nid: {version}\ndata: {json.dumps(data, separators=(',', ':'))}\n\n"


def _read_committed(read: Callable):
    try:
        return read()
    finally:
        # Don't sit on a pooled connection between events
        db.session.close()


def event_stream(
    topic: str,
    snapshot: Callable[[], list],
    keepalive: float,
    limit: Optional[int] = None,
    poll: Optional[float] = None,
    fingerprint: Optional[Callable[[], tuple]] = None,
) -> Iterator[str]:
    """
    Yield the current snapshot, then a fresh one every time the topic
    changes. Subscribes before the first read so no change is missed.

    Writers in this process wake the stream through the feed. Writers in
    other processes (another worker, ``flask issue-tokens``) only show up in
    the database, so every ``poll`` seconds an idle stream compares the
    topic's fingerprint with the one taken at the last send.
    """
    fingerprint = fingerprint or FINGERPRINTS[topic]
    poll = min(poll or keepalive, keepalive)

    sub = feed.subscribe(topic)
    try:
        sent = 0
        version = feed.version(topic)
        while True:
            # Taken before the snapshot: a write in between is seen on the next poll
            marker = _read_committed(fingerprint)
            yield format_event(topic, version, _read_committed(snapshot))
            sent += 1
            if limit and sent >= limit:
                return

            idle = 0.0
            while True:
                changed = sub.wait(timeout=poll)
                if changed is not None:
                    version = changed
                    break
                if _read_committed(fingerprint) != marker:
                    version = feed.version(topic)
                    break
                idle += poll
                if idle >= keepalive:
                    idle = 0.0
                    yield ": keepalive\n\n"
    finally:
        sub.close()


def sse_response(topic: str, snapshot: Callable[[], list], limit: Optional[int] = None) -> Response:
    keepalive = current_app.config.get("FEED_KEEPALIVE_SECONDS", 15)
    poll = current_app.config.get("FEED_POLL_SECONDS", 2)
    stream = event_stream(topic, snapshot, keepalive=keepalive, limit=limit, poll=poll)
    return Response(
        stream_with_context(stream),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
