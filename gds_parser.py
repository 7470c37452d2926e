"""
gds_parser.py
=============
Pure-regex GDS (Global Distribution System) itinerary parser.

Runs BEFORE the language model: when the pasted text carries at least
one recognisable segment line the booking is parsed deterministically
and no completion request is made.

Supports:
  - Amadeus / Sabre terminal segment lines
        UR 121 K 17OCT JUBEBB HK1 1410 1635
        2  ET 302 Y 20OCT 1*ADDNBO HK2 2350 0215+1
  - Galileo / Worldspan spaced airports
        1. KQ 410 M 05NOV NBO JUB HK1 0830 1045
  - Compact slash format
        QR007/Y/12MAR/CCUDOH/0055/0310+1
  - Explicit +1/+2 next-day markers and trailing arrival-date tokens

The parser only lifts raw tokens into FlightLeg objects (dates like
"17OCT", 24-hour "1410", status "HK1"). Year inference, 12-hour times,
code expansion, PNR / passenger / pricing extraction and summaries are
applied afterwards by normalizer.py, exactly as for the model path.
"""

import logging
import re
from datetime import date
from typing import Dict, List, Optional

from itinerary import FlightLeg, ItineraryParseResult
from mappings import AIRPORT_CODES

logger = logging.getLogger(__name__)

# ══════════════════════════════════════════════════════════════════════════════
#  STATIC LOOKUP TABLES
# ══════════════════════════════════════════════════════════════════════════════

GDS_MONTH_MAP: Dict[str, int] = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4,
    "MAY": 5, "JUN": 6, "JUL": 7, "AUG": 8,
    "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}

# Tokens that look like IATA codes but are NOT airports
_FP = {
    "THE", "AND", "FOR", "ALL", "VIA", "NON", "ONE", "TWO",
    "DAY", "SAT", "SUN", "MON", "TUE", "WED", "THU", "FRI",
    "AIR", "FLY", "JET", "BAG", "MAX", "MIN", "HRS",
    "PPC", "GDS", "SEE", "RTS", "SVC", "PNR", "DKT", "SKD",
    "OPT", "TKT", "PAX", "ADT", "CHD", "INF", "ETA", "ETD",
    "USD", "EUR", "GBP", "KES", "UGX",
}

_STATUS_CODES = "HK|KK|TK|RR|SS|DK|GK|HL|WL|KL|NN|HN|UC|UN|NO"


# ══════════════════════════════════════════════════════════════════════════════
#  REGEX PATTERNS
# ══════════════════════════════════════════════════════════════════════════════

_MON = r"JAN|FEB|MAR|APR|MAY|JUN|JUL|AUG|SEP|OCT|NOV|DEC"
_HHMM = r"[01]\d[0-5]\d|2[0-3][0-5]\d"

# ── GDS detection helpers ─────────────────────────────────────────────────────
_RE_GDS_DATE  = re.compile(rf"\b(\d{{1,2}})({_MON})\b")
_RE_GDS_TIME  = re.compile(r"\b([01]\d|2[0-3])([0-5]\d)\b")
_RE_STATUS    = re.compile(rf"\b(?:{_STATUS_CODES})\d{{1,2}}\b")
_RE_BKG_CLASS = re.compile(rf"\b([A-Z0-9]{{2}}\s*\d{{1,4}})\s+([A-Z])\s+\d{{1,2}}(?:{_MON})")

# ── Amadeus / Sabre / Galileo segment line ────────────────────────────────────
# UR 121 K 17OCT JUBEBB HK1 1410 1635
# 2  ET 302 Y 20OCT 1*ADDNBO HK2 2350 0215+1
# 1. KQ 410 M 05NOV NBO JUB HK1 0830 1045 05NOV
_RE_SEGMENT = re.compile(
    rf"""
    (?:^|\s)
    (?P<airline>[A-Z]{{2}}|\d[A-Z]|[A-Z]\d)\s?-?\s?
    (?P<flt_num>\d{{1,4}})[A-Z]?\s+
    (?P<bkg_cls>[A-Z])\s+
    (?P<dep_day>\d{{1,2}})(?P<dep_mon>{_MON})(?P<dep_yr>\d{{2}})?\s+
    (?:\d\*?\s*)?
    (?P<dep_ap>[A-Z]{{3}})\s?(?P<arr_ap>[A-Z]{{3}})\*?\s+
    (?:(?P<status>(?:{_STATUS_CODES})\d{{1,2}})\s+)?
    (?P<dep_time>{_HHMM})\s+
    (?P<arr_time>{_HHMM})
    (?P<next_day>\+\d)?
    (?:\s+(?P<arr_day>\d{{1,2}})(?P<arr_mon>{_MON})(?:\d{{2}})?\b)?
    """,
    re.VERBOSE | re.MULTILINE,
)

# ── Compact slash  QR007/Y/12MAR/CCUDOH/0055/0310+1 ──────────────────────────
_RE_SLASH = re.compile(
    rf"""
    (?P<airline>[A-Z]{{2}}|\d[A-Z]|[A-Z]\d)(?P<flt_num>\d{{1,4}})
    /(?P<bkg_cls>[A-Z])?
    /(?P<dep_day>\d{{1,2}})(?P<dep_mon>{_MON})(?P<dep_yr>\d{{2}})?
    /(?P<dep_ap>[A-Z]{{3}})(?P<arr_ap>[A-Z]{{3}})
    /(?P<dep_time>{_HHMM})
    /(?P<arr_time>{_HHMM})
    (?P<next_day>\+\d)?
    """,
    re.VERBOSE,
)


# ══════════════════════════════════════════════════════════════════════════════
#  HELPER FUNCTIONS
# ══════════════════════════════════════════════════════════════════════════════

def _nd_from_marker(marker: Optional[str]) -> int:
    """'+1' / '' → integer day offset from explicit GDS marker."""
    if not marker:
        return 0
    m = re.search(r"\d", marker)
    return int(m.group()) if m else 0


def _nd_from_dates(dep_day: str, dep_mon: str,
                   arr_day: Optional[str], arr_mon: Optional[str]) -> int:
    """Day offset implied by a trailing arrival-date token (20OCT → 21OCT = 1)."""
    if not arr_day or not arr_mon:
        return 0
    try:
        # 2000 is a leap year so 29FEB tokens stay valid
        dep = date(2000, GDS_MONTH_MAP[dep_mon], int(dep_day))
        arr = date(2000, GDS_MONTH_MAP[arr_mon], int(arr_day))
    except (KeyError, ValueError):
        return 0
    if arr < dep:
        arr = arr.replace(year=2001) if not (arr.month == 2 and arr.day == 29) else date(2001, 3, 1)
    return (arr - dep).days


def _valid_airport(code: str) -> bool:
    """True if code is a plausible IATA airport."""
    if code in _FP:
        return False
    if code in AIRPORT_CODES:
        return True
    # Heuristic for codes not yet in mappings: 3 uppercase letters, not a month
    return bool(re.match(r"^[A-Z]{3}$", code)) and code not in GDS_MONTH_MAP


def _build_leg(g: Dict[str, Optional[str]]) -> FlightLeg:
    airline = g["airline"]
    dep_date = f"{int(g['dep_day'])}{g['dep_mon']}{g.get('dep_yr') or ''}"
    days_offset = _nd_from_marker(g.get("next_day")) or _nd_from_dates(
        g["dep_day"], g["dep_mon"], g.get("arr_day"), g.get("arr_mon")
    )
    return FlightLeg(
        airline_code=airline,
        flight_number=f"{airline}{g['flt_num']}",
        cabin_class=g.get("bkg_cls") or "Y",
        departure_date=dep_date,
        departure_airport=g["dep_ap"],
        arrival_airport=g["arr_ap"],
        departure_time=g["dep_time"],
        arrival_time=g["arr_time"],
        confirmation_status=g.get("status"),
        days_offset=days_offset,
    )


# ══════════════════════════════════════════════════════════════════════════════
#  MAIN PARSER CLASS
# ══════════════════════════════════════════════════════════════════════════════

class GDSParser:
    """
    Detects and parses GDS terminal output using pure regex.

    Usage:
        parser = GDSParser()
        if parser.is_gds(raw_text):
            result = parser.parse(raw_text)   # ItineraryParseResult | None
    """

    # ── Public API ────────────────────────────────────────────────────────────

    def is_gds(self, text: str) -> bool:
        """
        Scoring heuristic, avoids false positives on prose itineraries.
        Returns True when score >= 4.
        """
        up = (text or "").upper()
        score = 0
        if _RE_GDS_TIME.search(up):  score += 2
        if _RE_GDS_DATE.search(up):  score += 2
        if _RE_STATUS.search(up):    score += 3
        if _RE_SEGMENT.search(up):   score += 4
        if _RE_SLASH.search(up):     score += 4
        if _RE_BKG_CLASS.search(up): score += 2
        logger.debug("GDS detection score: %d", score)
        return score >= 4

    def parse(self, text: str) -> Optional[ItineraryParseResult]:
        """
        Parse a GDS block into an un-normalized ItineraryParseResult, or
        None when no segment line is recognised.
        """
        up = (text or "").upper()
        legs = self._parse_segments(up) or self._parse_slash(up)
        if not legs:
            return None
        logger.info("GDS regex parser: %d segment(s)", len(legs))
        return ItineraryParseResult(flights=legs)

    # ── Segment extractors ────────────────────────────────────────────────────

    def _parse_segments(self, text: str) -> List[FlightLeg]:
        legs = []
        for m in _RE_SEGMENT.finditer(text):
            g = m.groupdict()
            if not _valid_airport(g["dep_ap"]) or not _valid_airport(g["arr_ap"]):
                continue
            leg = _build_leg(g)
            legs.append(leg)
            logger.debug("Segment: %s %s→%s", leg.flight_number, leg.departure_airport, leg.arrival_airport)
        return legs

    def _parse_slash(self, text: str) -> List[FlightLeg]:
        legs = []
        for m in _RE_SLASH.finditer(text):
            g = m.groupdict()
            if not _valid_airport(g["dep_ap"]) or not _valid_airport(g["arr_ap"]):
                continue
            leg = _build_leg(g)
            legs.append(leg)
            logger.debug("Slash: %s %s→%s", leg.flight_number, leg.departure_airport, leg.arrival_airport)
        return legs
