import logging
from typing import List, Optional, Tuple

from sqlalchemy import select

from models import db, unit_of_work, User, Snack, Swipe, Match, Message
from models.base import parse_uuid, utcnow
from utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def get_feed(user_id: str, limit: int) -> List[Snack]:
    """
    Snacks the user can still swipe on.

    Excludes the user's own snacks and every snack they already decided on
    (anti-join against swipes). Newest first, no cursor: a repeated call only
    skips what has been recorded as decided since.
    """
    decided = select(Swipe.swiped_snack_id).where(Swipe.swiper_user_id == user_id)

    return Snack.query.filter(
        Snack.user_id != user_id,
        Snack.id.not_in(decided)
    ).order_by(Snack.created_at.desc()).limit(limit).all()


def get_snack(snack_id) -> Snack:
    snack_uuid = parse_uuid(snack_id)
    snack = db.session.get(Snack, snack_uuid) if snack_uuid else None
    if not snack:
        raise NotFoundError("Snack not found")
    return snack


def get_owned_snack(user_id: str, snack_id) -> Snack:
    """Absent and not-yours both read as not found."""
    snack = get_snack(snack_id)
    if snack.user_id != user_id:
        raise NotFoundError("Snack not found")
    return snack


def record_decision(user_id: str, snack_id, liked: bool) -> Tuple[Swipe, Optional[Match], bool]:
    """
    Record a like/dislike on another user's snack and run match detection.

    A second decision on the same snack updates the existing row. Turning a
    like into a dislike removes any match that depended on it.

    Returns (swipe, match or None, created).
    """
    snack = get_snack(snack_id)

    if snack.user_id == user_id:
        raise ValidationError("Cannot swipe on your own snack")

    with unit_of_work():
        swipe = Swipe.query.filter_by(
            swiper_user_id=user_id,
            swiped_snack_id=snack.id
        ).first()

        created = swipe is None
        if created:
            swipe = Swipe(swiper_user_id=user_id, swiped_snack_id=snack.id, liked=liked)
            db.session.add(swipe)
        else:
            was_liked = swipe.liked
            swipe.liked = liked
            swipe.updated_at = utcnow()
            if was_liked and not liked:
                removed = _delete_matches(_matches_over_snack(user_id, snack))
                if removed:
                    logger.info(f"Removed {removed} match(es) after {user_id} disliked snack {snack.id}")

        db.session.flush()

        match = detect_match(user_id, snack) if liked else None

    logger.info(f"Decision recorded: {user_id} {'liked' if liked else 'passed on'} snack {snack.id}")
    return swipe, match, created


def detect_match(user_id: str, snack: Snack) -> Optional[Match]:
    """
    Create a match if the snack's owner already liked one of the user's snacks.

    When the owner liked several of them, the earliest like wins. An existing
    match over the same snack pair (either side ordering) is returned as is.
    Runs inside the caller's transaction.
    """
    owner_id = snack.user_id

    reciprocal = Swipe.query.join(Snack, Swipe.swiped_snack_id == Snack.id).filter(
        Swipe.swiper_user_id == owner_id,
        Swipe.liked.is_(True),
        Snack.user_id == user_id
    ).order_by(Swipe.created_at.asc(), Swipe.id.asc()).first()

    if not reciprocal:
        return None

    my_snack_id = reciprocal.swiped_snack_id

    existing = Match.query.filter(
        db.or_(
            db.and_(
                Match.user1_id == user_id,
                Match.user2_id == owner_id,
                Match.snack1_id == my_snack_id,
                Match.snack2_id == snack.id
            ),
            db.and_(
                Match.user1_id == owner_id,
                Match.user2_id == user_id,
                Match.snack1_id == snack.id,
                Match.snack2_id == my_snack_id
            )
        )
    ).first()

    if existing:
        return existing

    match = Match(
        user1_id=user_id,
        user2_id=owner_id,
        snack1_id=my_snack_id,
        snack2_id=snack.id
    )
    db.session.add(match)
    db.session.flush()

    logger.info(f"Match created between {user_id} and {owner_id} over snacks {my_snack_id} / {snack.id}")
    return match


def _matches_over_snack(user_id: str, snack: Snack):
    """Matches linking the user and the snack's owner over that snack."""
    owner_id = snack.user_id
    return Match.query.filter(
        db.or_(
            db.and_(
                Match.user1_id == user_id,
                Match.user2_id == owner_id,
                Match.snack2_id == snack.id
            ),
            db.and_(
                Match.user2_id == user_id,
                Match.user1_id == owner_id,
                Match.snack1_id == snack.id
            )
        )
    )


def _matches_between(user_a: str, user_b: str):
    return Match.query.filter(
        db.or_(
            db.and_(Match.user1_id == user_a, Match.user2_id == user_b),
            db.and_(Match.user1_id == user_b, Match.user2_id == user_a)
        )
    )


def _delete_matches(match_query) -> int:
    """Delete the matched rows and their messages; returns the match count."""
    match_ids = [row.id for row in match_query.with_entities(Match.id).all()]
    if not match_ids:
        return 0

    Message.query.filter(Message.match_id.in_(match_ids)).delete(synchronize_session=False)
    return Match.query.filter(Match.id.in_(match_ids)).delete(synchronize_session=False)


def undo_decision(user_id: str, swipe_id) -> None:
    """
    Delete one of the user's decisions and any match that depended on it.
    """
    swipe_uuid = parse_uuid(swipe_id)
    swipe = Swipe.query.filter_by(id=swipe_uuid, swiper_user_id=user_id).first() if swipe_uuid else None

    if not swipe:
        raise NotFoundError("Swipe not found or you do not have access to it")

    snack = db.session.get(Snack, swipe.swiped_snack_id)

    with unit_of_work():
        removed = 0
        if snack:
            removed = _delete_matches(_matches_over_snack(user_id, snack))

        Swipe.query.filter_by(id=swipe.id).delete(synchronize_session=False)

    db.session.expunge_all()
    logger.info(f"Undid swipe {swipe_uuid} for user {user_id} ({removed} match(es) removed)")


def get_user_match(user_id: str, match_id) -> Match:
    match_uuid = parse_uuid(match_id)
    match = db.session.get(Match, match_uuid) if match_uuid else None

    if not match or not match.involves(user_id):
        raise NotFoundError("Match not found or you do not have access to it")

    return match


def unmatch(user_id: str, match_id) -> None:
    """
    Reset the relationship between the caller and the match counterpart.

    Removes every match between the two users with its messages, and every
    decision either of them made on the other's snacks, so the pair can match
    again later.
    """
    match = get_user_match(user_id, match_id)
    other_user_id = match.other_user_id(user_id)

    with unit_of_work():
        removed = _delete_matches(_matches_between(user_id, other_user_id))

        other_snacks = select(Snack.id).where(Snack.user_id == other_user_id)
        my_snacks = select(Snack.id).where(Snack.user_id == user_id)

        mine = Swipe.query.filter(
            Swipe.swiper_user_id == user_id,
            Swipe.swiped_snack_id.in_(other_snacks)
        ).delete(synchronize_session=False)

        theirs = Swipe.query.filter(
            Swipe.swiper_user_id == other_user_id,
            Swipe.swiped_snack_id.in_(my_snacks)
        ).delete(synchronize_session=False)

    db.session.expunge_all()
    logger.info(
        f"Unmatched {user_id} and {other_user_id}: "
        f"{removed} match(es), {mine + theirs} swipe(s) removed"
    )


def _purge_snacks(snack_ids: list) -> None:
    """Delete snacks with their swipes, matches and messages. Caller owns the transaction."""
    if not snack_ids:
        return

    _delete_matches(Match.query.filter(
        db.or_(Match.snack1_id.in_(snack_ids), Match.snack2_id.in_(snack_ids))
    ))
    Swipe.query.filter(Swipe.swiped_snack_id.in_(snack_ids)).delete(synchronize_session=False)
    Snack.query.filter(Snack.id.in_(snack_ids)).delete(synchronize_session=False)


def _unreferenced_images(image_urls: list) -> List[str]:
    """Image urls that no snack references any more."""
    image_urls = [url for url in dict.fromkeys(image_urls) if url]
    if not image_urls:
        return []

    in_use = {
        row.image_url for row in
        Snack.query.with_entities(Snack.image_url).filter(Snack.image_url.in_(image_urls)).all()
    }
    return [url for url in image_urls if url not in in_use]


def delete_snack(user_id: str, snack_id) -> Optional[str]:
    """
    Delete one of the user's snacks and everything hanging off it.

    Returns its image url when no other snack still uses it, else None.
    """
    snack = get_owned_snack(user_id, snack_id)
    image_url = snack.image_url

    with unit_of_work():
        _purge_snacks([snack.id])

    db.session.expunge_all()
    logger.info(f"Deleted snack {snack_id} for user {user_id}")
    released = _unreferenced_images([image_url])
    return released[0] if released else None


def purge_user(user_id: str) -> List[str]:
    """
    Delete a user and everything they own or took part in.

    Returns the image urls of the deleted snacks that no remaining snack uses.
    """
    snacks = Snack.query.filter_by(user_id=user_id).all()
    snack_ids = [snack.id for snack in snacks]
    image_urls = [snack.image_url for snack in snacks if snack.image_url]

    with unit_of_work():
        _purge_snacks(snack_ids)

        # Every match involves one of the user's snacks, but clear stragglers too
        _delete_matches(Match.query.filter(
            db.or_(Match.user1_id == user_id, Match.user2_id == user_id)
        ))
        Swipe.query.filter_by(swiper_user_id=user_id).delete(synchronize_session=False)
        Message.query.filter_by(sender_id=user_id).delete(synchronize_session=False)
        User.query.filter_by(id=user_id).delete(synchronize_session=False)

    db.session.expunge_all()
    logger.info(f"Purged user {user_id} ({len(snack_ids)} snack(s))")
    return _unreferenced_images(image_urls)


def format_match(match: Match, user_id: str) -> dict:
    """Match as seen by one of its participants."""
    other_user_id = match.other_user_id(user_id)
    user_snack_id, other_snack_id = match.snack_ids_for(user_id)

    other_user = db.session.get(User, other_user_id)
    user_snack = db.session.get(Snack, user_snack_id)
    other_snack = db.session.get(Snack, other_snack_id)

    return {
        'id': str(match.id),
        'created_at': match.created_at.isoformat() if match.created_at else None,
        'other_user': other_user.public_dict() if other_user else {'id': other_user_id, 'name': '', 'image': None},
        'user_snack': user_snack.summary_dict() if user_snack else None,
        'other_user_snack': other_snack.summary_dict() if other_snack else None,
    }


def list_matches(user_id: str) -> List[Match]:
    return Match.query.filter(
        db.or_(
            Match.user1_id == user_id,
            Match.user2_id == user_id
        )
    ).order_by(Match.created_at.asc()).all()


def decision_history(user_id: str) -> List[dict]:
    """The user's decisions, newest first, with the snack and its owner."""
    rows = db.session.query(Swipe, Snack, User).join(
        Snack, Swipe.swiped_snack_id == Snack.id
    ).join(
        User, Snack.user_id == User.id
    ).filter(
        Swipe.swiper_user_id == user_id
    ).order_by(Swipe.created_at.desc()).all()

    return [
        {
            'swipe': swipe.to_dict(),
            'snack': snack.to_dict(),
            'owner': owner.public_dict(),
        }
        for swipe, snack, owner in rows
    ]
