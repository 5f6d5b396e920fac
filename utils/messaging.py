import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select

from models import db, Match, Message
from utils.errors import ValidationError
from utils.matching import get_user_match

logger = logging.getLogger(__name__)


def parse_since(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into naive UTC.

    Returns None for a missing or unparseable value; callers then ignore the
    filter rather than failing the request.
    """
    if not value:
        return None

    try:
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        logger.warning(f"Ignoring invalid since parameter: {value!r}")
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def send_message(user_id: str, match_id, content) -> Message:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Message content is required")

    match = get_user_match(user_id, match_id)

    message = Message(
        match_id=match.id,
        sender_id=user_id,
        content=content.strip(),
        is_read=False
    )
    db.session.add(message)
    db.session.commit()

    logger.info(f"Message sent by {user_id} in match {match.id}")
    return message


def mark_read(match_id, user_id: str, message_ids: Optional[List] = None) -> int:
    """
    Mark the counterpart's unread messages in this match as read, all of them
    or only those in `message_ids`.
    """
    query = Message.query.filter(
        Message.match_id == match_id,
        Message.sender_id != user_id,
        Message.is_read == False
    )
    if message_ids is not None:
        if not message_ids:
            return 0
        query = query.filter(Message.id.in_(message_ids))

    unread = query.all()

    for msg in unread:
        msg.is_read = True

    if unread:
        db.session.commit()
        logger.info(f"Marked {len(unread)} messages as read for user {user_id}")

    return len(unread)


def fetch_messages(match_id, user_id: str, since: Optional[datetime] = None) -> Tuple[List[Message], int]:
    """
    Messages of a match, oldest first, optionally only those after `since`.

    Only the returned messages from the counterpart are marked as read.
    Returns the messages and how many were marked.
    """
    query = Message.query.filter(Message.match_id == match_id)
    if since is not None:
        query = query.filter(Message.created_at > since)

    messages = query.order_by(Message.created_at.asc(), Message.id.asc()).all()
    marked = mark_read(match_id, user_id, [msg.id for msg in messages])

    return messages, marked


def read_messages(user_id: str, match_id, since: Optional[datetime] = None) -> Tuple[List[Message], int]:
    match = get_user_match(user_id, match_id)
    return fetch_messages(match.id, user_id, since)


def unread_count(user_id: str, match_id=None) -> int:
    """Unread messages sent to the user, across all their matches or in one."""
    query = Message.query.filter(
        Message.sender_id != user_id,
        Message.is_read == False
    )

    if match_id is not None:
        match = get_user_match(user_id, match_id)
        return query.filter(Message.match_id == match.id).count()

    user_matches = select(Match.id).where(
        db.or_(
            Match.user1_id == user_id,
            Match.user2_id == user_id
        )
    )
    return query.filter(Message.match_id.in_(user_matches)).count()
