"""
Check-in status of a travel record, and the list view built on it.

    completed     user marked the check-in done
    past          departure instant already passed
    urgent        less than 3 hours to departure
    checkin_open  less than 24 hours to departure
    upcoming      anything further out
"""

import logging
from datetime import datetime, timedelta
from math import ceil
from typing import Dict, Iterable, List, Optional

import pytz

from normalizer import ClockTime, FlightDate, TimezoneHandler

logger = logging.getLogger(__name__)

COMPLETED = "completed"
PAST = "past"
URGENT = "urgent"
CHECKIN_OPEN = "checkin_open"
UPCOMING = "upcoming"

STATUS_PRIORITY = {
    URGENT: 1,
    CHECKIN_OPEN: 2,
    UPCOMING: 3,
    COMPLETED: 4,
    PAST: 5,
}

STATUS_LABELS = {
    URGENT: "Check-in Now!",
    CHECKIN_OPEN: "Check-in Open",
    UPCOMING: "Upcoming",
    COMPLETED: "Checked In",
    PAST: "Departed",
}

# offset name -> (lead time before departure, flag column)
REMINDER_OFFSETS = {
    "24h": (timedelta(hours=24), "checkin_24h_alert"),
    "3h": (timedelta(hours=3), "checkin_3h_alert"),
}

STATUS_FILTERS = {
    "all": None,
    "upcoming": {UPCOMING, CHECKIN_OPEN},
    "past": {PAST},
    "needs_checkin": {URGENT, CHECKIN_OPEN},
    "completed": {COMPLETED},
}

SORT_FIELDS = ("departure_date", "passenger_name", "airline_name", "checkin_completed")
PER_PAGE = 10


# ==================== TIME HELPERS ====================

def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if moment.tzinfo is None:
        return pytz.utc.localize(moment)
    return moment.astimezone(pytz.utc)


def departure_instant(departure_date: str, departure_time: str, airport: str,
                      now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Aware UTC instant for a leg's local departure wall-clock time, or None
    when the stored date/time strings cannot be read.
    """
    day, _ = FlightDate.parse(departure_date, now or utc_now())
    clock = ClockTime.parse(departure_time)
    if day is None or clock is None:
        return None
    local = TimezoneHandler.localize(datetime.combine(day, clock), airport)
    return local.astimezone(pytz.utc)


def record_departure(record) -> Optional[datetime]:
    return departure_instant(record.departure_date, record.departure_time, record.departure_airport)


def reminder_instants(record) -> Dict[str, Optional[datetime]]:
    """Trigger instant (naive UTC, as stored) per offset name."""
    departure = record_departure(record)
    instants = {}
    for name, (lead, _flag) in REMINDER_OFFSETS.items():
        instants[name] = (departure - lead).replace(tzinfo=None) if departure else None
    return instants


# ==================== CLASSIFIER ====================

def classify(record, now: datetime) -> str:
    """Pure and total: a record whose departure cannot be read is 'upcoming'."""
    if record.checkin_completed:
        return COMPLETED

    departure = record_departure(record)
    if departure is None:
        logger.warning("Unreadable departure for record %s: %r %r",
                       getattr(record, "id", None), record.departure_date, record.departure_time)
        return UPCOMING

    now = as_utc(now)
    if departure < now:
        return PAST
    if now >= departure - REMINDER_OFFSETS["3h"][0]:
        return URGENT
    if now >= departure - REMINDER_OFFSETS["24h"][0]:
        return CHECKIN_OPEN
    return UPCOMING


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


# ==================== LIST VIEW ====================

def _secondary_key(record, field: str):
    if field == "departure_date":
        departure = record_departure(record)
        return departure.timestamp() if departure else float("inf")
    if field == "checkin_completed":
        return int(bool(record.checkin_completed))
    return (getattr(record, field, "") or "").lower()


def sort_records(records: Iterable, now: datetime,
                 sort: str = "departure_date", direction: str = "asc") -> List:
    """Most actionable status first; ties broken by `sort` in `direction`."""
    if sort not in SORT_FIELDS:
        sort = "departure_date"
    reverse = direction == "desc"

    # stable sorts: secondary field first, then status rank
    ordered = sorted(records, key=lambda r: _secondary_key(r, sort), reverse=reverse)
    return sorted(ordered, key=lambda r: STATUS_PRIORITY[classify(r, now)])


def matches_search(record, query: str) -> bool:
    query = (query or "").strip().lower()
    if not query:
        return True
    haystack = (record.passenger_name, record.pnr, record.flight_number, record.airline_name)
    return any(query in (value or "").lower() for value in haystack)


def summary_counts(records: Iterable, now: datetime) -> Dict[str, int]:
    stats = {"total": 0, "upcoming": 0, "urgent": 0, "completed": 0}
    for record in records:
        status = classify(record, now)
        stats["total"] += 1
        if status in (UPCOMING, CHECKIN_OPEN):
            stats["upcoming"] += 1
        elif status == URGENT:
            stats["urgent"] += 1
        elif status == COMPLETED:
            stats["completed"] += 1
    return stats


def build_listing(
    records: List,
    now: datetime,
    status_filter: str = "all",
    query: str = "",
    sort: str = "departure_date",
    direction: str = "asc",
    page: int = 1,
    per_page: int = PER_PAGE,
) -> Dict:
    """Filtered, searched, sorted and paginated records plus summary counts."""
    wanted = STATUS_FILTERS.get(status_filter)
    selected = [
        r for r in records
        if matches_search(r, query) and (wanted is None or classify(r, now) in wanted)
    ]
    selected = sort_records(selected, now, sort, direction)

    pages = max(1, ceil(len(selected) / per_page))
    page = min(max(1, page), pages)
    window = selected[(page - 1) * per_page: page * per_page]

    items = []
    for record in window:
        status = classify(record, now)
        data = record.to_dict()
        data["status"] = status
        data["status_label"] = status_label(status)
        items.append(data)

    return {
        "records": items,
        "stats": summary_counts(records, now),
        "page": page,
        "pages": pages,
        "total": len(selected),
    }
