import uuid

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def to_uuid(value) -> uuid.UUID:
    """Coerce a domain id (str) to the UUID the columns bind; raises ValueError."""
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))
