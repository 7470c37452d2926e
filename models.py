"""
Check-in tracking - SQLAlchemy 2.x models.

One TravelRecord per flight leg of an opted-in itinerary. Timestamps are
stored as naive UTC.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models using SQLAlchemy 2.0 declarative style."""
    pass


# ==================== UTILITY FUNCTIONS ====================

def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ==================== TRAVEL RECORD MODEL ====================

class TravelRecord(Base):
    """A single tracked flight leg with its check-in reminder state."""
    __tablename__ = "travel_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    passenger_name: Mapped[str] = mapped_column(String(500), nullable=False)
    pnr: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    airline_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    flight_number: Mapped[str] = mapped_column(String(20), nullable=False)
    cabin_class_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Display strings exactly as normalized ("October 17, 2025", "2:10 PM")
    departure_date: Mapped[str] = mapped_column(String(40), nullable=False)
    departure_time: Mapped[str] = mapped_column(String(20), nullable=False)
    departure_airport: Mapped[str] = mapped_column(String(3), nullable=False)
    arrival_airport: Mapped[str] = mapped_column(String(3), nullable=False)
    arrival_date: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    arrival_time: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    duration: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Reminder state; flags only ever move false -> true
    checkin_24h_alert: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    checkin_3h_alert: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    checkin_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    remind_24h_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    remind_3h_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    raw_itinerary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_info: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_travel_records_user_created", "user_id", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "passenger_name": self.passenger_name,
            "pnr": self.pnr,
            "airline_name": self.airline_name,
            "flight_number": self.flight_number,
            "cabin_class_name": self.cabin_class_name,
            "departure_date": self.departure_date,
            "departure_time": self.departure_time,
            "departure_airport": self.departure_airport,
            "arrival_airport": self.arrival_airport,
            "arrival_date": self.arrival_date,
            "arrival_time": self.arrival_time,
            "duration": self.duration,
            "checkin_24h_alert": self.checkin_24h_alert,
            "checkin_3h_alert": self.checkin_3h_alert,
            "checkin_completed": self.checkin_completed,
            "remind_24h_at": _iso(self.remind_24h_at),
            "remind_3h_at": _iso(self.remind_3h_at),
            "raw_itinerary": self.raw_itinerary,
            "contact_info": self.contact_info,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<TravelRecord {self.flight_number} {self.departure_airport}->{self.arrival_airport} {self.departure_date}>"
