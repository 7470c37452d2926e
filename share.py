"""Outbound share text: WhatsApp reminder links and the copyable itinerary."""

from datetime import datetime
from typing import Dict
from urllib.parse import quote

import config
from itinerary import ItineraryParseResult
from status import URGENT, classify

WHATSAPP_URL = "https://wa.me/?text="


def reminder_message(record, status: str) -> str:
    details = (
        f"Passenger: {record.passenger_name}\n"
        f"Flight: {record.airline_name} {record.flight_number}\n"
        f"Route: {record.departure_airport} → {record.arrival_airport}\n"
        f"Departure: {record.departure_date} at {record.departure_time}"
    )
    if status == URGENT:
        return (
            "🛄 URGENT: Check-in closing soon!\n\n"
            f"{details}\n\n"
            "Check-in now to avoid missing your flight! ✈️"
        )
    return (
        "✈️ Check-in Reminder\n\n"
        f"{details}\n\n"
        "Check-in opens 24 hours before departure. Safe travels! 🛫"
    )


def whatsapp_link(message: str) -> str:
    return WHATSAPP_URL + quote(message, safe="")


def share_reminder(record, now: datetime) -> Dict[str, str]:
    status = classify(record, now)
    message = reminder_message(record, status)
    return {"status": status, "message": message, "url": whatsapp_link(message)}


def itinerary_text(itinerary: ItineraryParseResult) -> str:
    """Plain-text itinerary for the clipboard."""
    lines = [f"✈️ Travel Itinerary for {itinerary.passenger_name or 'Passenger'}", ""]
    if itinerary.friendly_summary:
        lines.append(itinerary.friendly_summary)
    if itinerary.summary:
        lines.append(itinerary.summary)
    lines += ["", "Flight Details:"]

    blocks = []
    for f in itinerary.flights:
        extras = [f.cabin_class_name]
        if f.duration:
            extras.append(f"⏱️ {f.duration}")
        if f.overnight:
            extras.append("🌙 Overnight Flight")
        blocks.append(
            f"• {f.airline_name} Flight {f.flight_number}\n"
            f"  🛫 {f.departure_city} at {f.departure_time} on {f.departure_date}\n"
            f"  🛬 {f.arrival_city} at {f.arrival_time}"
            + (f" on {f.arrival_date}" if f.arrival_date and f.arrival_date != f.departure_date else "")
            + "\n"
            f"  🪑 {' • '.join(e for e in extras if e)}"
        )
    lines.append("\n\n".join(blocks))

    if itinerary.total_amount > 0:
        lines += ["", f"Total Cost: {itinerary.currency} {itinerary.total_amount:.2f}"]
    if itinerary.pnr:
        lines += ["", f"PNR: {itinerary.pnr}"]
    lines += ["", f"Generated by {config.AGENCY_NAME}"]
    return "\n".join(lines)
