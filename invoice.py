"""
invoice.py
==========
Printable invoices for a parsed itinerary or a single stored travel record.

Both renderers (HTML via Jinja2, PDF via fpdf2) work from the same
InvoiceView, so the two outputs always carry the same figures.

Pricing policy, one rule for both sources:
  - a real extracted total is shown as the total amount, never split
    into invented fare/tax lines
  - a parsed itinerary without a total says "Fare not available"
  - a single stored record without a total gets a placeholder breakdown,
    titled as an estimate and never presented as an amount charged
"""

import logging
import re
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from fpdf import FPDF
from jinja2 import Environment, PackageLoader, select_autoescape

import config
from itinerary import ItineraryParseResult

logger = logging.getLogger(__name__)

PRICING_TOTAL = "total"
PRICING_UNAVAILABLE = "unavailable"
PRICING_ESTIMATE = "estimate"

ESTIMATE_TITLE = "ESTIMATE - placeholder fare, not an amount charged"
PLACEHOLDER_FARE = (("Flight Fare", 350.00), ("Taxes & Fees", 85.00))

TERMS = {
    PRICING_TOTAL: (
        "Amount includes all applicable taxes, fees, and surcharges as quoted "
        "in the booking. For accounting purposes only."
    ),
    PRICING_UNAVAILABLE: (
        "No fare was found in the booking text. The agency will confirm the "
        "amount due separately."
    ),
    PRICING_ESTIMATE: (
        "The figures above are a placeholder estimate for a single flight and "
        "do not reflect any amount charged. The agency will confirm the final fare."
    ),
}

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


# ==================== VIEW MODEL ====================

@dataclass
class InvoiceRow:
    airline: str
    flight_number: str
    route: str
    route_detail: str
    date: str
    time: str
    duration: str
    cabin: str
    status: str


@dataclass
class PricingBlock:
    kind: str
    currency: str = "USD"
    title: Optional[str] = None
    lines: List[Tuple[str, str]] = field(default_factory=list)
    total_label: str = "TOTAL AMOUNT"
    total: Optional[str] = None


@dataclass
class InvoiceView:
    invoice_number: str
    issue_date: str
    pnr: str
    passenger_name: str
    trip_summary: str
    trip_detail: str
    travel_date: str
    rows: List[InvoiceRow]
    pricing: PricingBlock
    terms: str
    agency_name: str = config.AGENCY_NAME
    agency_tagline: str = config.AGENCY_TAGLINE
    agency_email: str = config.AGENCY_EMAIL
    flight_number: str = ""


def generate_invoice_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"TT-INV-{now:%Y%m}-{suffix}"


def invoice_filename(passenger_name: str, flight_number: str, invoice_number: str) -> str:
    def slug(text: str) -> str:
        return re.sub(r"[^A-Za-z0-9]+", "-", text or "").strip("-")

    parts = [slug(config.AGENCY_NAME), "Invoice", slug(passenger_name) or "Travel"]
    if flight_number:
        parts.append(slug(flight_number))
    parts.append(invoice_number)
    return "-".join(parts) + ".pdf"


def _money(amount: float, currency: str) -> str:
    return f"{currency} {amount:,.2f}"


def _arrival_note(departure_date: str, arrival_date: Optional[str]) -> str:
    if arrival_date and arrival_date != departure_date:
        return f" (arrives {arrival_date})"
    return ""


def _view_from_itinerary(itinerary: ItineraryParseResult) -> Tuple[dict, List[InvoiceRow], PricingBlock]:
    rows = [
        InvoiceRow(
            airline=f.airline_name or f.airline_code,
            flight_number=f.flight_number,
            route=f"{f.departure_airport} → {f.arrival_airport}",
            route_detail=f"{f.departure_city} to {f.arrival_city}",
            date=f.departure_date,
            time=f"{f.departure_time} - {f.arrival_time}" + _arrival_note(f.departure_date, f.arrival_date),
            duration=f.duration or "N/A",
            cabin=f.cabin_class_name or "N/A",
            status=f.confirmation_status or "N/A",
        )
        for f in itinerary.flights
    ]
    first = itinerary.flights[0]
    header = {
        "pnr": itinerary.pnr,
        "passenger_name": itinerary.passenger_name,
        "trip_summary": itinerary.friendly_summary or itinerary.summary,
        "trip_detail": itinerary.summary,
        "travel_date": first.departure_date,
        "flight_number": first.flight_number,
    }

    if itinerary.total_amount > 0:
        pricing = PricingBlock(
            kind=PRICING_TOTAL,
            currency=itinerary.currency,
            total=_money(itinerary.total_amount, itinerary.currency),
        )
    else:
        pricing = PricingBlock(kind=PRICING_UNAVAILABLE, currency=itinerary.currency,
                               total="Fare not available")
    return header, rows, pricing


def _view_from_record(record) -> Tuple[dict, List[InvoiceRow], PricingBlock]:
    rows = [
        InvoiceRow(
            airline=record.airline_name,
            flight_number=record.flight_number,
            route=f"{record.departure_airport} → {record.arrival_airport}",
            route_detail=f"{record.departure_airport} to {record.arrival_airport}",
            date=record.departure_date,
            time=(
                f"{record.departure_time} - {record.arrival_time}" if record.arrival_time
                else record.departure_time
            ) + _arrival_note(record.departure_date, record.arrival_date),
            duration=record.duration or "N/A",
            cabin=record.cabin_class_name or "N/A",
            status="Checked In" if record.checkin_completed else "Booked",
        )
    ]
    header = {
        "pnr": record.pnr,
        "passenger_name": record.passenger_name,
        "trip_summary": f"Flight from {record.departure_airport} to {record.arrival_airport}",
        "trip_detail": (
            f"{record.airline_name} Flight {record.flight_number} • "
            f"Departing {record.departure_date} at {record.departure_time}"
        ),
        "travel_date": record.departure_date,
        "flight_number": record.flight_number,
    }
    subtotal = sum(amount for _label, amount in PLACEHOLDER_FARE)
    pricing = PricingBlock(
        kind=PRICING_ESTIMATE,
        title=ESTIMATE_TITLE,
        lines=[(label, _money(amount, "USD")) for label, amount in PLACEHOLDER_FARE],
        total_label="ESTIMATED TOTAL",
        total=_money(subtotal, "USD"),
    )
    return header, rows, pricing


def build_view(source, invoice_number: Optional[str] = None,
               issue_date: Optional[datetime] = None) -> InvoiceView:
    """InvoiceView for an ItineraryParseResult or a TravelRecord."""
    issue_date = issue_date or datetime.now()
    if isinstance(source, ItineraryParseResult):
        header, rows, pricing = _view_from_itinerary(source)
    else:
        header, rows, pricing = _view_from_record(source)

    return InvoiceView(
        invoice_number=invoice_number or generate_invoice_number(issue_date),
        issue_date=f"{issue_date:%B} {issue_date.day}, {issue_date.year}",
        rows=rows,
        pricing=pricing,
        terms=TERMS[pricing.kind],
        **header,
    )


# ==================== HTML ====================

_env = Environment(
    loader=PackageLoader("invoice_templates", "."),
    autoescape=select_autoescape(["html"]),
)


def render_html(source, invoice_number: Optional[str] = None,
                issue_date: Optional[datetime] = None) -> str:
    view = build_view(source, invoice_number, issue_date)
    return _env.get_template("invoice.html").render(invoice=view)


# ==================== PDF ====================

_PDF_REPLACEMENTS = {"→": "->", "•": "-", "—": "-", "–": "-", "✈️": "", "✈": ""}


def _pdf_text(text) -> str:
    """Core PDF fonts are latin-1 only."""
    text = str(text if text is not None else "")
    for src, dst in _PDF_REPLACEMENTS.items():
        text = text.replace(src, dst)
    return text.encode("latin-1", "replace").decode("latin-1")


class InvoicePDF(FPDF):

    def __init__(self, view: InvoiceView):
        super().__init__(format="A4")
        self.view = view
        self.set_auto_page_break(auto=True, margin=15)
        self.set_title(f"{view.agency_name} Invoice {view.invoice_number}")

    def footer(self):
        self.set_y(-12)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(120, 120, 120)
        self.cell(0, 6, _pdf_text(f"{self.view.invoice_number} - page {self.page_no()}"), align="C")

    def line_cell(self, h: float, text: str, style: str = "", size: int = 10, align: str = "L"):
        self.set_font("Helvetica", style, size)
        self.multi_cell(0, h, _pdf_text(text), align=align, new_x="LMARGIN", new_y="NEXT")

    def section_title(self, text: str):
        self.ln(4)
        self.set_text_color(30, 60, 110)
        self.line_cell(7, text, "B", 11)
        self.set_text_color(0, 0, 0)


_COLUMNS = (
    ("Flight Details", 38),
    ("Route", 44),
    ("Date & Time", 42),
    ("Duration", 22),
    ("Cabin / Status", 44),
)


def render_pdf(source, invoice_number: Optional[str] = None,
               issue_date: Optional[datetime] = None) -> bytes:
    view = build_view(source, invoice_number, issue_date)
    return pdf_from_view(view)


def pdf_from_view(view: InvoiceView) -> bytes:
    pdf = InvoicePDF(view)
    pdf.add_page()

    # ── Header ────────────────────────────────────────────────────────────────
    pdf.line_cell(10, view.agency_name.upper(), "B", 18)
    pdf.line_cell(6, view.agency_tagline, "I", 10)
    pdf.ln(2)
    pdf.line_cell(8, "TRAVEL INVOICE", "B", 14, align="R")
    pdf.line_cell(6, view.invoice_number, "B", 10, align="R")
    pdf.line_cell(5, f"Issue Date: {view.issue_date}", size=9, align="R")
    pdf.line_cell(5, f"PNR: {view.pnr or 'N/A'}", size=9, align="R")

    # ── Bill to / trip summary ────────────────────────────────────────────────
    pdf.section_title("BILL TO")
    pdf.line_cell(6, view.passenger_name or "Passenger", "B", 11)
    pdf.line_cell(5, f"Booking Reference: {view.pnr or 'N/A'}", size=9)
    pdf.line_cell(5, f"Travel Date: {view.travel_date}", size=9)

    pdf.section_title("TRIP SUMMARY")
    pdf.line_cell(5, view.trip_summary)
    if view.trip_detail and view.trip_detail != view.trip_summary:
        pdf.line_cell(5, view.trip_detail, size=9)

    # ── Flight table ──────────────────────────────────────────────────────────
    pdf.section_title("FLIGHTS")
    pdf.set_font("Helvetica", "B", 9)
    pdf.set_fill_color(230, 236, 245)
    for title, width in _COLUMNS:
        pdf.cell(width, 7, title, border=1, fill=True)
    pdf.ln()

    pdf.set_font("Helvetica", "", 8)
    for row in view.rows:
        cells = (
            f"{row.airline} {row.flight_number}",
            row.route,
            f"{row.date} {row.time}",
            row.duration,
            f"{row.cabin} / {row.status}",
        )
        for (_title, width), value in zip(_COLUMNS, cells):
            text = _pdf_text(value)
            while text and pdf.get_string_width(text) > width - 2:
                text = text[:-1]
            pdf.cell(width, 7, text, border=1)
        pdf.ln()

    # ── Pricing ───────────────────────────────────────────────────────────────
    pricing = view.pricing
    pdf.section_title("PRICING")
    if pricing.title:
        pdf.set_text_color(170, 40, 40)
        pdf.line_cell(6, pricing.title, "B", 10)
        pdf.set_text_color(0, 0, 0)
    for label, amount in pricing.lines:
        pdf.set_font("Helvetica", "", 10)
        pdf.cell(140, 6, _pdf_text(f"{label}:"))
        pdf.cell(0, 6, _pdf_text(amount), align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(140, 8, _pdf_text(f"{pricing.total_label}:"))
    pdf.cell(0, 8, _pdf_text(pricing.total), align="R", new_x="LMARGIN", new_y="NEXT")

    # ── Terms ─────────────────────────────────────────────────────────────────
    pdf.section_title("PAYMENT TERMS")
    pdf.line_cell(5, view.terms, size=9)
    pdf.ln(2)
    pdf.line_cell(5, f"Accounting Department: {view.agency_email}", size=9)

    logger.debug("Rendered invoice %s (%d leg(s))", view.invoice_number, len(view.rows))
    return bytes(pdf.output())
