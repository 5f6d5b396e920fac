import uuid
from sqlalchemy import Uuid
from .base import db, utcnow, BaseSerializer


class Match(db.Model, BaseSerializer):
    __tablename__ = "matches"

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Side 1 is the user whose like completed the pair; snack1 belongs to user1
    user1_id = db.Column(db.String, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    user2_id = db.Column(db.String, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    snack1_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('snacks.id', ondelete='CASCADE'), nullable=False)
    snack2_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('snacks.id', ondelete='CASCADE'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, server_default=db.func.now(), onupdate=utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint('user1_id != user2_id', name='check_no_self_match'),
        db.Index('idx_match_user1', 'user1_id'),
        db.Index('idx_match_user2', 'user2_id'),
    )

    serialize_only = ('id', 'user1_id', 'user2_id', 'snack1_id', 'snack2_id', 'created_at', 'updated_at')

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_user_id(self, user_id: str) -> str:
        return self.user2_id if self.user1_id == user_id else self.user1_id

    def snack_ids_for(self, user_id: str):
        """(caller's snack id, counterpart's snack id)"""
        if self.user1_id == user_id:
            return self.snack1_id, self.snack2_id
        return self.snack2_id, self.snack1_id
