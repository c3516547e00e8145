"""Provider model definitions."""

from sqlalchemy import JSON, Column, ForeignKey, Integer, String
from backend.database import Base


class Provider(Base):
    """Provider profile. ``id`` is shared with the owning user row."""
    __tablename__ = "providers"

    id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    bio = Column(String)
    location = Column(String)
    # {"days": [0..6], "startTime": "9:00 AM", "endTime": "6:00 PM"}, or NULL for default hours.
    availability = Column(JSON, nullable=True)
