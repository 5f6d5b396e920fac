import logging
import time
from typing import Optional

import redis

logger = logging.getLogger(__name__)


def build_channel(match_id) -> str:
    return f"matches:{match_id}:messages"


class MatchSubscription:
    """
    A subscription to one match's message notifications.

    Without redis every wait simply sleeps for the timeout and reports a
    (possible) change, which turns the consumer into a poller.
    """

    def __init__(self, pubsub: Optional["redis.client.PubSub"], channel: str):
        self.pubsub = pubsub
        self.channel = channel

    @property
    def is_live(self) -> bool:
        return self.pubsub is not None

    def wait(self, timeout: float) -> bool:
        """Block up to `timeout` seconds; True when new messages may exist."""
        if self.pubsub is None:
            if timeout > 0:
                time.sleep(timeout)
            return True

        try:
            message = self.pubsub.get_message(ignore_subscribe_messages=True, timeout=timeout)
        except redis.RedisError as e:
            logger.error(f"Redis subscription error on '{self.channel}': {str(e)}. Falling back to polling.")
            self.close()
            return True

        if message is None:
            return False

        # Collapse a burst of notifications into one fetch
        while self.pubsub.get_message(ignore_subscribe_messages=True, timeout=0) is not None:
            pass
        return True

    def close(self):
        if self.pubsub is None:
            return
        try:
            self.pubsub.unsubscribe(self.channel)
            self.pubsub.close()
        except redis.RedisError as e:
            logger.warning(f"Error closing subscription '{self.channel}': {str(e)}")
        finally:
            self.pubsub = None


class MessageNotifier:
    """Redis pub/sub keyed by match id, announcing new messages to open streams."""

    def __init__(self):
        self.client: Optional[redis.Redis] = None

    def init_app(self, app):
        self.client = None
        redis_url = app.config.get('REDIS_URL')

        if redis_url:
            try:
                client = redis.Redis.from_url(
                    redis_url,
                    decode_responses=True,
                    socket_connect_timeout=5
                )
                client.ping()
                self.client = client
                logger.info("✓ Redis connected for message notifications")
            except redis.RedisError as e:
                logger.warning(f"⚠ Redis connection failed: {str(e)}. Message streams will poll.")
        else:
            logger.info("REDIS_URL not set; message streams will poll")

        app.extensions['message_notifier'] = self

    def is_available(self) -> bool:
        return self.client is not None

    def publish(self, match_id, message_id) -> bool:
        """Best effort: a failed publish only delays delivery until the stream's next poll."""
        if not self.is_available():
            return False

        try:
            self.client.publish(build_channel(match_id), str(message_id))
            return True
        except redis.RedisError as e:
            logger.error(f"Publish error for match {match_id}: {str(e)}")
            return False

    def subscribe(self, match_id) -> MatchSubscription:
        channel = build_channel(match_id)

        if not self.is_available():
            return MatchSubscription(None, channel)

        try:
            pubsub = self.client.pubsub()
            pubsub.subscribe(channel)
            return MatchSubscription(pubsub, channel)
        except redis.RedisError as e:
            logger.error(f"Subscribe error for '{channel}': {str(e)}. Falling back to polling.")
            return MatchSubscription(None, channel)


notifier = MessageNotifier()
