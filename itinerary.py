"""
Transient itinerary structures produced by the parsing pipeline.

Field names on the wire (JSON to/from the completion endpoint and the
HTTP API) are camelCase; attributes are snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _opt_str(value: Any) -> Optional[str]:
    text = _str(value)
    return text or None


def _amount(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        return max(0.0, float(str(value).replace(",", "")))
    except ValueError:
        return 0.0


@dataclass
class FlightLeg:
    airline_code: str = ""
    airline_name: str = ""
    flight_number: str = ""
    cabin_class: str = ""
    cabin_class_name: str = ""
    departure_date: str = ""
    departure_airport: str = ""
    departure_city: str = ""
    arrival_airport: str = ""
    arrival_city: str = ""
    departure_time: str = ""
    arrival_time: str = ""
    duration: str = ""
    overnight: bool = False
    confirmation_status: Optional[str] = None
    arrival_date: str = ""
    # +N marker or explicit arrival date seen in the source text
    days_offset: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlightLeg":
        try:
            days_offset = int(data.get("daysOffset") or 0)
        except (TypeError, ValueError):
            days_offset = 0
        return cls(
            airline_code=_str(data.get("airlineCode")).upper(),
            airline_name=_str(data.get("airlineName")),
            flight_number=_str(data.get("flightNumber")).upper(),
            cabin_class=_str(data.get("cabinClass")).upper(),
            cabin_class_name=_str(data.get("cabinClassName")),
            departure_date=_str(data.get("departureDate")),
            departure_airport=_str(data.get("departureAirport")).upper(),
            departure_city=_str(data.get("departureCity")),
            arrival_airport=_str(data.get("arrivalAirport")).upper(),
            arrival_city=_str(data.get("arrivalCity")),
            departure_time=_str(data.get("departureTime")),
            arrival_time=_str(data.get("arrivalTime")),
            duration=_str(data.get("duration")),
            overnight=bool(data.get("overnight", False)),
            confirmation_status=_opt_str(data.get("confirmationStatus")),
            arrival_date=_str(data.get("arrivalDate")),
            days_offset=max(0, days_offset),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "airlineCode": self.airline_code,
            "airlineName": self.airline_name,
            "flightNumber": self.flight_number,
            "cabinClass": self.cabin_class,
            "cabinClassName": self.cabin_class_name,
            "departureDate": self.departure_date,
            "departureAirport": self.departure_airport,
            "departureCity": self.departure_city,
            "arrivalAirport": self.arrival_airport,
            "arrivalCity": self.arrival_city,
            "departureTime": self.departure_time,
            "arrivalTime": self.arrival_time,
            "duration": self.duration,
            "overnight": self.overnight,
            "confirmationStatus": self.confirmation_status,
            "arrivalDate": self.arrival_date,
            "daysOffset": self.days_offset,
        }


@dataclass
class ItineraryParseResult:
    passenger_name: str = ""
    flights: List[FlightLeg] = field(default_factory=list)
    total_amount: float = 0.0
    currency: str = "USD"
    pnr: str = ""
    booking_reference: Optional[str] = None
    booking_date: Optional[str] = None
    summary: str = ""
    friendly_summary: str = ""
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ItineraryParseResult":
        flights = data.get("flights") or []
        return cls(
            passenger_name=_str(data.get("passengerName")),
            flights=[FlightLeg.from_dict(f) for f in flights if isinstance(f, dict)],
            total_amount=_amount(data.get("totalAmount")),
            currency=(_str(data.get("currency")) or "USD").upper()[:3],
            pnr=_str(data.get("pnr")).upper(),
            booking_reference=_opt_str(data.get("bookingReference")),
            booking_date=_opt_str(data.get("bookingDate")),
            summary=_str(data.get("summary")),
            friendly_summary=_str(data.get("friendlySummary")),
            warnings=[str(w) for w in data.get("warnings") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passengerName": self.passenger_name,
            "flights": [f.to_dict() for f in self.flights],
            "totalAmount": self.total_amount,
            "currency": self.currency,
            "pnr": self.pnr,
            "bookingReference": self.booking_reference,
            "bookingDate": self.booking_date,
            "summary": self.summary,
            "friendlySummary": self.friendly_summary,
            "warnings": list(self.warnings),
        }
