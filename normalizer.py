"""
normalizer.py
=============
Post-processing that guarantees the normalization rules on every
itinerary, whichever path produced it (GDS regex or language model):

  - dates  → "Month Day, Year", missing years resolved to the soonest
             future occurrence relative to the supplied "now"
  - times  → 12-hour "h:mm AM/PM"
  - codes  → airline / airport names from mappings.py (bare code if unknown)
  - cabin  → booking-class letter mapped to First / Business /
             Premium Economy / Economy
  - overnight, arrival date and timezone-aware duration
  - PNR, passenger names and totals re-extracted from the raw text, which
    wins over whatever the model returned
"""

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

import pytz

import config
from itinerary import FlightLeg, ItineraryParseResult
from mappings import (
    AIRLINE_CODES,
    AIRPORT_CODES,
    SEGMENT_STATUS,
    get_airline_name,
    get_airport_name,
    get_airport_timezone,
    get_cabin_name,
)

logger = logging.getLogger(__name__)

_MON = r"JAN|FEB|MAR|APR|MAY|JUN|JUL|AUG|SEP|OCT|NOV|DEC"


# ==================== DATE HANDLER ====================
class FlightDate:
    """Centralized date parsing, year inference and formatting"""

    FORMATS_WITH_YEAR = [
        "%B %d, %Y", "%B %d %Y",
        "%b %d, %Y", "%b %d %Y",
        "%d %B %Y", "%d %b %Y",
        "%d %b %y", "%d%b%y", "%d%b%Y",
        "%Y-%m-%d",
        "%d/%m/%Y",
    ]

    _MONTH_MAP = {
        'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
        'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
    }

    _RE_WEEKDAY = re.compile(
        r"^(?:mon|tue|wed|thu|fri|sat|sun)[a-z]*,?\s+", re.IGNORECASE
    )
    _RE_DAY_MONTH = re.compile(r"^(\d{1,2})\s*([A-Za-z]{3,9})\.?$")
    _RE_MONTH_DAY = re.compile(r"^([A-Za-z]{3,9})\.?\s*(\d{1,2})$")

    @staticmethod
    def clean_date_string(date_str: str) -> str:
        if not date_str or date_str in ['N/A', 'None']:
            return ''
        date_str = FlightDate._RE_WEEKDAY.sub('', date_str.strip())
        date_str = re.sub(r'(\d+)(st|nd|rd|th)\b', r'\1', date_str, flags=re.IGNORECASE)
        return re.sub(r'\s+', ' ', date_str).strip()

    @staticmethod
    def infer_year(month: int, day: int, today: date) -> Optional[date]:
        """Soonest occurrence of month/day on or after `today`."""
        for year in range(today.year, today.year + 5):
            try:
                candidate = date(year, month, day)
            except ValueError:
                continue   # Feb 29 in a non-leap year
            if candidate >= today:
                return candidate
        return None

    @staticmethod
    def parse(date_str: str, now: datetime) -> Tuple[Optional[date], bool]:
        """
        Returns (date, year_was_inferred). (None, False) when the string is
        not a recognisable date.
        """
        cleaned = FlightDate.clean_date_string(date_str)
        if not cleaned:
            return None, False

        for fmt in FlightDate.FORMATS_WITH_YEAR:
            try:
                return datetime.strptime(cleaned, fmt).date(), False
            except ValueError:
                continue

        day = month = None
        m = FlightDate._RE_DAY_MONTH.match(cleaned)
        if m:
            day, month = m.group(1), m.group(2)
        else:
            m = FlightDate._RE_MONTH_DAY.match(cleaned)
            if m:
                month, day = m.group(1), m.group(2)

        if day and month:
            month_num = FlightDate._MONTH_MAP.get(month[:3].lower())
            if month_num:
                inferred = FlightDate.infer_year(month_num, int(day), _as_date(now))
                if inferred:
                    return inferred, True

        logger.warning("Could not parse date: '%s'", date_str)
        return None, False

    @staticmethod
    def format(d: date) -> str:
        return f"{d:%B} {d.day}, {d.year}"


def _as_date(now: datetime) -> date:
    return now.date() if isinstance(now, datetime) else now


# ==================== TIME HANDLER ====================
class ClockTime:
    """12/24-hour clock parsing; output is always 'h:mm AM'"""

    FORMATS = ["%H:%M", "%I:%M %p", "%I:%M%p", "%I %p", "%I%p"]

    @staticmethod
    def parse(time_str: str) -> Optional[time]:
        if not time_str or time_str == 'N/A':
            return None
        time_str = time_str.strip().upper().replace(".", "")
        if re.fullmatch(r"\d{4}", time_str):
            try:
                return datetime.strptime(time_str, "%H%M").time()
            except ValueError:
                return None
        for fmt in ClockTime.FORMATS:
            try:
                return datetime.strptime(time_str, fmt).time()
            except ValueError:
                continue
        return None

    @staticmethod
    def format(t: time) -> str:
        return t.strftime("%I:%M %p").lstrip("0")

    @staticmethod
    def to_12h(time_str: str) -> Optional[str]:
        parsed = ClockTime.parse(time_str)
        return ClockTime.format(parsed) if parsed else None


def is_overnight(departure_time: str, arrival_time: str) -> bool:
    """Arrival clock time earlier than departure clock time."""
    dep = ClockTime.parse(departure_time)
    arr = ClockTime.parse(arrival_time)
    if dep is None or arr is None:
        return False
    return arr < dep


# ==================== TIMEZONE HANDLER ====================
class TimezoneHandler:
    """Airport-local wall-clock times → aware datetimes via AIRPORT_TZ_MAP"""

    @staticmethod
    def zone(airport_code: str, fallback: bool = True):
        tz_name = get_airport_timezone(airport_code)
        if not tz_name:
            if not fallback:
                return None
            logger.debug("Missing timezone for '%s'. Using %s.", airport_code, config.DEFAULT_TIMEZONE)
            tz_name = config.DEFAULT_TIMEZONE
        return pytz.timezone(tz_name)

    @staticmethod
    def localize(naive: datetime, airport_code: str) -> datetime:
        return TimezoneHandler.zone(airport_code).localize(naive)


# ==================== DURATION CALCULATOR ====================
def format_minutes(total_minutes: int) -> str:
    return f"{total_minutes // 60}h {total_minutes % 60}m"


def compute_duration(
    dep_date: date, dep_time: time, dep_airport: str,
    arr_date: date, arr_time: time, arr_airport: str,
) -> str:
    """
    Elapsed flight time. Timezone-aware when both airports are mapped,
    plain wall-clock difference otherwise. Empty string when nonsensical.
    """
    dep = datetime.combine(dep_date, dep_time)
    arr = datetime.combine(arr_date, arr_time)
    dep_tz = TimezoneHandler.zone(dep_airport, fallback=False)
    arr_tz = TimezoneHandler.zone(arr_airport, fallback=False)
    if dep_tz and arr_tz:
        dep = dep_tz.localize(dep)
        arr = arr_tz.localize(arr)
    minutes = int((arr - dep).total_seconds() // 60)
    if minutes <= 0:
        logger.debug("Non-positive duration %s->%s (%d min)", dep_airport, arr_airport, minutes)
        return ""
    return format_minutes(minutes)


# ==================== PNR EXTRACTOR ====================
class PnrExtractor:
    """
    Precedence:
      1. token before the FIRST '/' at the very start of the text
      2. explicit 'RLOC' label
      3. first 6-character token that is not an agent code (… AG),
         a date, a jammed airport pair or a known code

    Locators are upper-case in every GDS display, so rules 1 and 3 are
    case-sensitive; prose such as "Flight/hotel" never yields a PNR.
    """

    _RE_LEADING = re.compile(r"\A\s*([A-Z0-9]+)/")
    _RE_LABEL = re.compile(
        r"\b(?:RLOC|PNR|RECORD LOCATOR)\s*[:\-]?\s*([A-Z0-9]{5,8})\b", re.IGNORECASE
    )
    _RE_TOKEN = re.compile(r"\b([A-Z0-9]{6})\b(?!\s+AG\b)")
    _RE_DATE_TOKEN = re.compile(rf"^\d{{1,2}}(?:{_MON})\d{{0,2}}$")

    @staticmethod
    def explicit(raw_text: str) -> str:
        """Rules 1 and 2 only."""
        text = raw_text or ""
        m = PnrExtractor._RE_LEADING.match(text)
        if m:
            return m.group(1)
        m = PnrExtractor._RE_LABEL.search(text)
        if m:
            return m.group(1).upper()
        return ""

    @staticmethod
    def fallback(raw_text: str) -> str:
        for m in PnrExtractor._RE_TOKEN.finditer(raw_text or ""):
            token = m.group(1)
            if not re.search(r"[A-Z]", token):
                continue
            if PnrExtractor._RE_DATE_TOKEN.match(token):
                continue
            if token[:3] in AIRPORT_CODES and token[3:] in AIRPORT_CODES:
                continue
            if token in AIRLINE_CODES:
                continue
            return token
        return ""

    @staticmethod
    def extract(raw_text: str) -> str:
        return PnrExtractor.explicit(raw_text) or PnrExtractor.fallback(raw_text)


# ==================== PASSENGER EXTRACTOR ====================
class PassengerExtractor:
    """
    GDS name elements:
        1.1AYII/AWAK TEREZA GHEW
        2.I/1LUAL/DENG ABIGAIL AMOL MS*11JUL25     (I/ prefix → infant)
        3.1DENG/PETER MSTR*C05                      (*Cnn → child)
    """

    _RE_NAME = re.compile(
        rf"""
        (?:^|\s)\d{{1,2}}\.(?P<infant>I/)?\d{{1,2}}
        (?P<name>[A-Z][A-Z'\-]*/[A-Z][A-Z'\- ]*?)
        (?:\s+(?P<title>MRS|MR|MS|MISS|MSTR|DR|CHD|INF))?
        (?P<marker>\*(?:C\d{{2}}|\d{{1,2}}(?:{_MON})\d{{2}}))?
        (?=\s+\d{{1,2}}\.|\s*$)
        """,
        re.VERBOSE | re.MULTILINE,
    )

    @staticmethod
    def designation(match: re.Match) -> Optional[str]:
        title = match.group("title") or ""
        marker = match.group("marker") or ""
        if match.group("infant") or title == "INF":
            return "Infant"
        if title == "CHD" or marker.startswith("*C"):
            return "Child"
        if marker:
            # a bare date-of-birth marker is only carried for infants
            return "Infant"
        return None

    @staticmethod
    def extract(raw_text: str) -> List[Tuple[str, Optional[str]]]:
        text = (raw_text or "").upper()
        travellers = []
        seen = set()
        for m in PassengerExtractor._RE_NAME.finditer(text):
            name = re.sub(r"\s+", " ", m.group("name")).strip()
            if name in seen:
                continue
            seen.add(name)
            travellers.append((name, PassengerExtractor.designation(m)))
        return travellers

    @staticmethod
    def join(travellers: List[Tuple[str, Optional[str]]]) -> str:
        parts = []
        for name, designation in travellers:
            parts.append(f"{name} ({designation})" if designation else name)
        return " & ".join(parts)


# ==================== PRICE EXTRACTOR ====================
_RE_TOTAL = re.compile(r"\bTOTAL\s+([A-Z]{3})\s*([\d,]+(?:\.\d{1,2})?)")


def extract_total(raw_text: str) -> Tuple[float, Optional[str]]:
    """Sum of every 'TOTAL USD783.00' line; currency of the first one."""
    total = 0.0
    currency = None
    for m in _RE_TOTAL.finditer((raw_text or "").upper()):
        try:
            total += float(m.group(2).replace(",", ""))
        except ValueError:
            continue
        currency = currency or m.group(1)
    return round(total, 2), currency


# ==================== SUMMARIES ====================
def _short_city(leg_city: str, code: str) -> str:
    city = leg_city or code
    return city.split(",")[0].strip() or code


def trip_type(flights: List[FlightLeg]) -> str:
    if len(flights) == 1:
        return "One way"
    if flights[0].departure_airport == flights[-1].arrival_airport:
        return "Round trip"
    connected = all(
        prev.arrival_airport == nxt.departure_airport
        for prev, nxt in zip(flights, flights[1:])
    )
    return "One way" if connected and len(flights) == 2 else "Multi-city"


def _passenger_mix(passenger_name: str) -> Tuple[int, int, int]:
    names = [n for n in (passenger_name or "").split(" & ") if n.strip()]
    infants = sum(1 for n in names if n.endswith("(Infant)"))
    children = sum(1 for n in names if n.endswith("(Child)"))
    adults = max(len(names) - infants - children, 0)
    return adults, children, infants


def build_summaries(result: ItineraryParseResult) -> Tuple[str, str]:
    flights = result.flights
    first, last = flights[0], flights[-1]
    origin = _short_city(first.departure_city, first.departure_airport)
    kind = trip_type(flights)
    if kind == "Round trip":
        turn = flights[(len(flights) - 1) // 2]
        destination = _short_city(turn.arrival_city, turn.arrival_airport)
    else:
        destination = _short_city(last.arrival_city, last.arrival_airport)

    adults, children, infants = _passenger_mix(result.passenger_name)
    count = adults + children + infants
    if count <= 1:
        pax = "1 passenger"
    else:
        mix = [f"{adults} adult{'s' if adults != 1 else ''}"]
        if children:
            mix.append(f"{children} child{'ren' if children != 1 else ''}")
        if infants:
            mix.append(f"{infants} infant{'s' if infants != 1 else ''}")
        pax = f"{count} passengers ({', '.join(mix)})"

    if kind == "Round trip":
        summary = f"Round trip between {origin} and {destination} with {pax}"
    elif kind == "Multi-city":
        stops = [origin] + [_short_city(f.arrival_city, f.arrival_airport) for f in flights]
        summary = f"Multi-city trip {' → '.join(stops)} with {pax}"
    else:
        summary = f"One way from {origin} to {destination} with {pax}"

    friendly = f"{kind} to {destination}"
    if infants:
        friendly += " with infant passenger"
    elif children:
        friendly += " with child passenger"
    return summary, friendly


# ==================== NORMALIZER ====================
class ItineraryNormalizer:
    """Enforce the normalization rules on a validated itinerary"""

    _RE_FLIGHT_NO = re.compile(r"^([A-Z0-9]{2})\s*-?\s*(\d{1,4}[A-Z]?)$")
    _RE_STATUS_CODE = re.compile(r"^([A-Z]{2})\d{0,2}$")

    def normalize(
        self,
        result: ItineraryParseResult,
        raw_text: str,
        now: Optional[datetime] = None,
    ) -> ItineraryParseResult:
        now = now or datetime.now()

        pnr = PnrExtractor.explicit(raw_text)
        if pnr and pnr != result.pnr:
            if result.pnr:
                logger.warning("PNR overridden: '%s' → '%s' (raw text wins)", result.pnr, pnr)
            result.pnr = pnr
        elif not result.pnr:
            result.pnr = PnrExtractor.fallback(raw_text)

        travellers = PassengerExtractor.extract(raw_text)
        if travellers:
            result.passenger_name = PassengerExtractor.join(travellers)

        total, currency = extract_total(raw_text)
        if total > 0 and not result.total_amount:
            result.total_amount = total
            result.currency = currency or result.currency

        previous: Optional[date] = None
        for leg in result.flights:
            previous = self.normalize_leg(leg, now, previous, result.warnings)

        result.summary, result.friendly_summary = build_summaries(result)
        return result

    def normalize_leg(
        self,
        leg: FlightLeg,
        now: datetime,
        previous: Optional[date] = None,
        warnings: Optional[List[str]] = None,
    ) -> Optional[date]:
        """Normalize one leg in place; returns its departure date."""
        warnings = warnings if warnings is not None else []

        # ── Airline + flight number ─────────────────────────────────────────
        m = self._RE_FLIGHT_NO.match(leg.flight_number.replace(" ", ""))
        if m:
            leg.airline_code = leg.airline_code or m.group(1)
            leg.flight_number = f"{m.group(1)}{m.group(2)}"
        elif leg.flight_number.isdigit() and leg.airline_code:
            leg.flight_number = f"{leg.airline_code}{leg.flight_number}"
        leg.airline_name = get_airline_name(leg.airline_code) if leg.airline_code else leg.airline_name

        # ── Airports ────────────────────────────────────────────────────────
        leg.departure_city = get_airport_name(leg.departure_airport)
        leg.arrival_city = get_airport_name(leg.arrival_airport)

        # ── Cabin ───────────────────────────────────────────────────────────
        leg.cabin_class = leg.cabin_class[:1]
        leg.cabin_class_name = get_cabin_name(leg.cabin_class)

        # ── Status ──────────────────────────────────────────────────────────
        if leg.confirmation_status:
            code = self._RE_STATUS_CODE.match(leg.confirmation_status.upper())
            if code and code.group(1) in SEGMENT_STATUS:
                leg.confirmation_status = SEGMENT_STATUS[code.group(1)]

        # ── Times ───────────────────────────────────────────────────────────
        dep_time = ClockTime.parse(leg.departure_time)
        arr_time = ClockTime.parse(leg.arrival_time)
        if dep_time:
            leg.departure_time = ClockTime.format(dep_time)
        elif leg.departure_time:
            warnings.append(f"{leg.flight_number}: unrecognised departure time '{leg.departure_time}'")
        if arr_time:
            leg.arrival_time = ClockTime.format(arr_time)
        elif leg.arrival_time:
            warnings.append(f"{leg.flight_number}: unrecognised arrival time '{leg.arrival_time}'")

        explicit_offset = leg.days_offset
        leg.overnight = bool(dep_time and arr_time and arr_time < dep_time)
        if leg.overnight and leg.days_offset == 0:
            leg.days_offset = 1

        # ── Dates ───────────────────────────────────────────────────────────
        dep_date, inferred = FlightDate.parse(leg.departure_date, now)
        if dep_date is None:
            if leg.departure_date:
                warnings.append(f"{leg.flight_number}: unrecognised departure date '{leg.departure_date}'")
            return previous

        if inferred and previous and dep_date < previous:
            # return leg written without a year, after the outbound wrapped into next year
            bumped = FlightDate.infer_year(dep_date.month, dep_date.day, previous)
            dep_date = bumped or dep_date
        leg.departure_date = FlightDate.format(dep_date)

        if not explicit_offset and leg.arrival_date:
            # a full arrival date supplied by the caller outranks the overnight guess
            arrives, _ = FlightDate.parse(leg.arrival_date, dep_date)
            if arrives and arrives > dep_date:
                leg.days_offset = (arrives - dep_date).days

        arr_date = dep_date + timedelta(days=leg.days_offset)
        leg.arrival_date = FlightDate.format(arr_date)

        if dep_time and arr_time:
            duration = compute_duration(
                dep_date, dep_time, leg.departure_airport,
                arr_date, arr_time, leg.arrival_airport,
            )
            leg.duration = duration or leg.duration
        return dep_date
