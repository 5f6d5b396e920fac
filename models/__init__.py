from .base import db, metadata, unit_of_work
from .users import User
from .snacks import Snack
from .swipes import Swipe
from .matches import Match
from .messages import Message

__all__ = [
    'db',
    'metadata',
    'unit_of_work',
    'User',
    'Snack',
    'Swipe',
    'Match',
    'Message',
]
