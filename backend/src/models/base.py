"""Base SQLAlchemy declarative base for all models"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.orm import declarative_base


def generate_id() -> str:
    """Primary key default: UUID4 rendered as string."""
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


Base = declarative_base()
