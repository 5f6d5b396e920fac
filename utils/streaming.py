import json
import logging
import time
from datetime import datetime
from typing import Callable, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError

from models import db, Match
from utils.messaging import fetch_messages
from utils.notifier import MatchSubscription

logger = logging.getLogger(__name__)


def format_event(event: str, data) -> str:
    """One server-sent event frame."""
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


class MessageStream:
    """
    Server-sent events for one match and one participant.

    Emits `connected`, then a `messages` batch whenever new rows exist, an
    `error` frame when a fetch fails, and a `heartbeat` every
    `heartbeat_interval` seconds. A pub/sub notification triggers an
    immediate fetch; with or without one the match is re-queried every
    `poll_interval` seconds, so a lost notification only delays delivery.

    The subscription is opened by `subscribe(match_id)` when iteration starts
    and closed when the client disconnects, which closes the generator.
    """

    def __init__(
        self,
        match_id,
        user_id: str,
        subscribe: Callable[..., MatchSubscription],
        since: Optional[datetime] = None,
        poll_interval: float = 3,
        heartbeat_interval: float = 30,
        clock=time.monotonic,
    ):
        self.match_id = match_id
        self.user_id = user_id
        self.subscribe = subscribe
        self.subscription: Optional[MatchSubscription] = None
        self.last_time = since
        self.poll_interval = poll_interval
        self.heartbeat_interval = heartbeat_interval
        self.clock = clock
        self.match_gone = False

    def _match_exists(self) -> bool:
        return db.session.query(Match.id).filter(Match.id == self.match_id).first() is not None

    def poll(self) -> Optional[str]:
        """Fetch messages newer than the last one delivered; None when there is nothing to send."""
        try:
            if not self._match_exists():
                self.match_gone = True
                return format_event('error', {'error': 'Match no longer exists'})

            messages, _ = fetch_messages(self.match_id, self.user_id, self.last_time)
            if not messages:
                db.session.commit()
                return None

            payload = [msg.to_json(self.user_id) for msg in messages]
            self.last_time = max(msg.created_at for msg in messages)
            db.session.commit()
            return format_event('messages', payload)

        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error fetching messages for stream on match {self.match_id}: {str(e)}")
            return format_event('error', {'error': 'Failed to fetch messages'})

    def _next_timeout(self, last_heartbeat: float, last_poll: float) -> float:
        now = self.clock()
        until_heartbeat = self.heartbeat_interval - (now - last_heartbeat)
        until_poll = self.poll_interval - (now - last_poll)
        return max(0.0, min(until_heartbeat, until_poll))

    def __iter__(self) -> Iterator[str]:
        self.subscription = self.subscribe(self.match_id)
        try:
            yield format_event('connected', {})

            event = self.poll()
            if event:
                yield event
            if self.match_gone:
                return

            last_heartbeat = last_poll = self.clock()

            while True:
                notified = self.subscription.wait(self._next_timeout(last_heartbeat, last_poll))

                if notified or self.clock() - last_poll >= self.poll_interval:
                    event = self.poll()
                    last_poll = self.clock()
                    if event:
                        yield event
                    if self.match_gone:
                        return

                if self.clock() - last_heartbeat >= self.heartbeat_interval:
                    yield format_event('heartbeat', {})
                    last_heartbeat = self.clock()
        finally:
            self.subscription.close()
            logger.info(f"Message stream closed for user {self.user_id} on match {self.match_id}")
