import uuid
from sqlalchemy import Uuid
from .base import db, utcnow, BaseSerializer


class Snack(db.Model, BaseSerializer):
    __tablename__ = "snacks"

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(db.String, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=False)
    location = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, server_default=db.func.now(), onupdate=utcnow, nullable=False)

    owner = db.relationship('User', back_populates='snacks')

    __table_args__ = (
        db.Index('idx_snack_owner_created', 'user_id', 'created_at'),
    )

    serialize_only = (
        'id', 'user_id', 'name', 'description', 'location', 'image_url',
        'created_at', 'updated_at',
    )

    def summary_dict(self):
        return {
            'id': str(self.id),
            'name': self.name,
            'image_url': self.image_url,
        }

    def __repr__(self):
        return f'<Snack {self.id} {self.name!r}>'
