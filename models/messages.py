import uuid
from sqlalchemy import Uuid
from .base import db, utcnow, BaseSerializer


class Message(db.Model, BaseSerializer):
    __tablename__ = "messages"

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    match_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('matches.id', ondelete='CASCADE'), nullable=False)
    sender_id = db.Column(db.String, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, server_default=db.func.now(), nullable=False)

    __table_args__ = (
        db.Index('idx_match_created', 'match_id', 'created_at'),
        db.Index('idx_sender_created', 'sender_id', 'created_at'),
    )

    serialize_only = ('id', 'match_id', 'sender_id', 'content', 'is_read', 'created_at')

    def to_json(self, viewer_id: str):
        data = self.to_dict()
        data['is_mine'] = self.sender_id == viewer_id
        return data
