"""Service model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String
from backend.database import Base


class Service(Base):
    """A bookable service offered by a provider."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), index=True)
    name = Column(String)
    description = Column(String)
    price = Column(Numeric(10, 2))
