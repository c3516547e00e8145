"""Appointment model definitions."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from backend.database import Base, SLOT_UNIQUE_INDEX_NAME


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


_NOT_CANCELLED = text("status <> 'cancelled'")


class Appointment(Base):
    """Represents a scheduled appointment.

    ``scheduled_at`` is the provider's local wall-clock time, stored naive.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            SLOT_UNIQUE_INDEX_NAME,
            "provider_id",
            "scheduled_at",
            unique=True,
            postgresql_where=_NOT_CANCELLED,
            sqlite_where=_NOT_CANCELLED,
        ),
        Index("idx_appointments_consumer_scheduled", "consumer_id", "scheduled_at"),
    )

    id = Column(Integer, primary_key=True)
    consumer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.PENDING.value)
    scheduled_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
