import uuid
from sqlalchemy import Uuid
from .base import db, utcnow, BaseSerializer


class Swipe(db.Model, BaseSerializer):
    """One user's like/dislike decision on another user's snack."""
    __tablename__ = "swipes"

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    swiper_user_id = db.Column(db.String, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    swiped_snack_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('snacks.id', ondelete='CASCADE'), nullable=False)
    liked = db.Column(db.Boolean, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, server_default=db.func.now(), onupdate=utcnow, nullable=False)

    snack = db.relationship('Snack')

    # One decision per user and snack
    __table_args__ = (
        db.UniqueConstraint('swiper_user_id', 'swiped_snack_id', name='uq_swipe_user_snack'),
        db.Index('idx_swiper_created', 'swiper_user_id', 'created_at'),
    )

    serialize_only = ('id', 'swiper_user_id', 'swiped_snack_id', 'liked', 'created_at', 'updated_at')
