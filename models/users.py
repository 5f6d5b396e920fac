# models/users.py
from sqlalchemy import Column, String, DateTime, Index, func
from .base import db, utcnow, BaseSerializer


class User(db.Model, BaseSerializer):
    __tablename__ = "users"

    # Primary Key (Clerk user_id comes as a string)
    id = Column(String, primary_key=True)

    # Basic Info
    name = Column(String(150), nullable=False, index=True)
    email = Column(String(150), unique=True, nullable=True)
    avatar_url = Column(String(500), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    snacks = db.relationship('Snack', back_populates='owner', lazy='dynamic')

    __table_args__ = (
        Index("ix_users_created_at", "created_at"),
    )

    serialize_only = ('id', 'name', 'avatar_url')

    def public_dict(self):
        """Shape used wherever another user is shown (matches, history)."""
        return {
            'id': self.id,
            'name': self.name,
            'image': self.avatar_url,
        }

    def __repr__(self):
        return f'<User {self.id}>'
