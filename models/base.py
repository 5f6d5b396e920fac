import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData
from sqlalchemy_serializer import SerializerMixin

metadata = MetaData(naming_convention={
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
})

db = SQLAlchemy(metadata=metadata)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_uuid(value) -> Optional[uuid.UUID]:
    """Parse a path or body id; returns None for anything that is not a UUID."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


class BaseSerializer(SerializerMixin):
    serialize_types = (
        (uuid.UUID, lambda value: str(value)),
    )
    datetime_format = '%Y-%m-%dT%H:%M:%S.%f'


@contextmanager
def unit_of_work():
    """
    Run a multi-statement mutation as one transaction.

    Commits when the block exits cleanly; on any exception the session is
    rolled back and the exception propagates.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
