"""
Record persistence gateway: one TravelRecord row per flight leg.

All reads and writes are scoped by the owning user id. The only
unscoped query is `list_pending_reminders`, used by the scheduler when
the process starts.
"""

import logging
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from errors import PersistenceFailure, RecordNotFound
from itinerary import FlightLeg, ItineraryParseResult
from models import TravelRecord, utcnow
from status import REMINDER_OFFSETS, reminder_instants

logger = logging.getLogger(__name__)


def record_from_leg(
    leg: FlightLeg,
    itinerary: ItineraryParseResult,
    user_id: str,
    raw_text: Optional[str] = None,
    contact_info: Optional[str] = None,
) -> TravelRecord:
    record = TravelRecord(
        user_id=user_id,
        passenger_name=itinerary.passenger_name,
        pnr=itinerary.pnr,
        airline_name=leg.airline_name or leg.airline_code,
        flight_number=leg.flight_number,
        cabin_class_name=leg.cabin_class_name or None,
        departure_date=leg.departure_date,
        departure_time=leg.departure_time,
        departure_airport=leg.departure_airport,
        arrival_airport=leg.arrival_airport,
        arrival_date=leg.arrival_date or None,
        arrival_time=leg.arrival_time or None,
        duration=leg.duration or None,
        checkin_24h_alert=False,
        checkin_3h_alert=False,
        checkin_completed=False,
        raw_itinerary=raw_text,
        contact_info=contact_info or None,
        created_at=utcnow(),
    )
    instants = reminder_instants(record)
    record.remind_24h_at = instants["24h"]
    record.remind_3h_at = instants["3h"]
    return record


class TravelRecordGateway:
    """CRUD for travel records on an injected SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    # ── Writes ────────────────────────────────────────────────────────────────

    def create_from_itinerary(
        self,
        user_id: str,
        itinerary: ItineraryParseResult,
        raw_text: Optional[str] = None,
        contact_info: Optional[str] = None,
    ) -> List[TravelRecord]:
        """Batch insert, all legs or nothing."""
        records = [
            record_from_leg(leg, itinerary, user_id, raw_text, contact_info)
            for leg in itinerary.flights
        ]
        session = self.session_factory()
        try:
            session.add_all(records)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Failed to insert %d travel record(s): %s", len(records), e)
            raise PersistenceFailure(f"Could not save travel records: {e}") from e
        finally:
            session.close()

        logger.info("Saved %d travel record(s) for PNR %s", len(records), itinerary.pnr)
        return records

    def mark_alert_fired(self, user_id: str, record_id: str, offset: str) -> bool:
        """
        Flip the reminder flag for `offset` to true. Returns False when the
        flag was already set (or the record is gone); never resets a flag.
        """
        _lead, flag = REMINDER_OFFSETS[offset]
        column = getattr(TravelRecord, flag)
        session = self.session_factory()
        try:
            result = session.execute(
                update(TravelRecord)
                .where(
                    TravelRecord.id == record_id,
                    TravelRecord.user_id == user_id,
                    column.is_(False),
                )
                .values({flag: True})
            )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceFailure(f"Could not update {flag} on {record_id}: {e}") from e
        finally:
            session.close()
        return result.rowcount == 1

    def mark_checked_in(self, user_id: str, record_id: str) -> TravelRecord:
        session = self.session_factory()
        try:
            record = self._get(session, user_id, record_id)
            record.checkin_completed = True
            session.commit()
            return record
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceFailure(f"Could not mark {record_id} as checked in: {e}") from e
        finally:
            session.close()

    def delete(self, user_id: str, record_id: str) -> None:
        session = self.session_factory()
        try:
            record = self._get(session, user_id, record_id)
            session.delete(record)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceFailure(f"Could not delete {record_id}: {e}") from e
        finally:
            session.close()
        logger.info("Deleted travel record %s", record_id)

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get(self, user_id: str, record_id: str) -> TravelRecord:
        session = self.session_factory()
        try:
            return self._get(session, user_id, record_id)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not load {record_id}: {e}") from e
        finally:
            session.close()

    def list_for_user(self, user_id: str) -> List[TravelRecord]:
        session = self.session_factory()
        try:
            stmt = (
                select(TravelRecord)
                .where(TravelRecord.user_id == user_id)
                .order_by(TravelRecord.created_at.desc())
            )
            return list(session.scalars(stmt))
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not list travel records: {e}") from e
        finally:
            session.close()

    def list_pending_reminders(self) -> List[TravelRecord]:
        """Records, across all users, with at least one reminder not yet fired."""
        session = self.session_factory()
        try:
            stmt = select(TravelRecord).where(
                TravelRecord.checkin_completed.is_(False),
                or_(
                    TravelRecord.checkin_24h_alert.is_(False),
                    TravelRecord.checkin_3h_alert.is_(False),
                ),
            )
            return list(session.scalars(stmt))
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not list pending reminders: {e}") from e
        finally:
            session.close()

    @staticmethod
    def _get(session, user_id: str, record_id: str) -> TravelRecord:
        record = session.scalars(
            select(TravelRecord).where(
                TravelRecord.id == record_id,
                TravelRecord.user_id == user_id,
            )
        ).first()
        if record is None:
            raise RecordNotFound(f"Travel record {record_id} not found")
        return record
