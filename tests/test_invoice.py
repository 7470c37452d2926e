"""
Tests for invoice views, HTML and PDF rendering.
"""
import re
import unittest
from datetime import datetime

from invoice import (
    ESTIMATE_TITLE,
    PRICING_ESTIMATE,
    PRICING_TOTAL,
    PRICING_UNAVAILABLE,
    _env,
    build_view,
    generate_invoice_number,
    invoice_filename,
    render_html,
    render_pdf,
)
from itinerary import FlightLeg, ItineraryParseResult
from models import TravelRecord

ISSUED = datetime(2025, 10, 5, 10, 0)


def make_itinerary(total=933.0):
    return ItineraryParseResult(
        passenger_name="AYII/AWAK TEREZA GHEW & LUAL/DENG ABIGAIL AMOL (Infant)",
        pnr="DQVJ6T",
        total_amount=total,
        summary="Round trip between Juba and Entebbe with 2 passengers (1 adult, 1 infant)",
        friendly_summary="Round trip to Entebbe with infant passenger",
        flights=[
            FlightLeg(airline_code="UR", airline_name="Uganda Airlines", flight_number="UR121",
                      cabin_class_name="Economy Class", departure_date="October 17, 2025",
                      departure_airport="JUB", departure_city="Juba, South Sudan",
                      arrival_airport="EBB", arrival_city="Entebbe, Uganda",
                      departure_time="2:10 PM", arrival_time="4:35 PM",
                      confirmation_status="Confirmed"),
            FlightLeg(airline_code="UR", airline_name="Uganda Airlines", flight_number="UR120",
                      cabin_class_name="Economy Class", departure_date="October 24, 2025",
                      departure_airport="EBB", departure_city="Entebbe, Uganda",
                      arrival_airport="JUB", arrival_city="Juba, South Sudan",
                      departure_time="11:00 AM", arrival_time="12:40 PM",
                      confirmation_status="Confirmed"),
        ],
    )


def make_record(**overrides):
    values = dict(
        id="rec-1", user_id="agent-1", passenger_name="DENG/JOHN MR", pnr="DQVJ6T",
        airline_name="Kenya Airways", flight_number="KQ410", cabin_class_name="Economy Class",
        departure_date="October 17, 2025", departure_time="2:10 PM",
        departure_airport="NBO", arrival_airport="JUB", checkin_completed=False,
    )
    values.update(overrides)
    return TravelRecord(**values)


class InvoiceNumberTests(unittest.TestCase):

    def test_format(self):
        number = generate_invoice_number(ISSUED)
        self.assertRegex(number, r"^TT-INV-202510-[A-Z0-9]{6}$")

    def test_filename(self):
        name = invoice_filename("DENG/JOHN MR", "KQ410", "TT-INV-202510-ABC123")
        self.assertEqual(name, "Tuli-Travel-Invoice-DENG-JOHN-MR-KQ410-TT-INV-202510-ABC123.pdf")

    def test_filename_without_passenger(self):
        name = invoice_filename("", "", "TT-INV-202510-ABC123")
        self.assertEqual(name, "Tuli-Travel-Invoice-Travel-TT-INV-202510-ABC123.pdf")


class ViewTests(unittest.TestCase):

    def test_itinerary_total_is_shown_unsplit(self):
        view = build_view(make_itinerary(), "TT-INV-202510-ABC123", ISSUED)
        self.assertEqual(view.pricing.kind, PRICING_TOTAL)
        self.assertEqual(view.pricing.total, "USD 933.00")
        self.assertEqual(view.pricing.lines, [])
        self.assertEqual(view.issue_date, "October 5, 2025")
        self.assertEqual(len(view.rows), 2)
        self.assertEqual(view.rows[0].route, "JUB → EBB")
        self.assertEqual(view.trip_summary, "Round trip to Entebbe with infant passenger")

    def test_itinerary_without_total(self):
        view = build_view(make_itinerary(total=0.0), "TT-INV-202510-ABC123", ISSUED)
        self.assertEqual(view.pricing.kind, PRICING_UNAVAILABLE)
        self.assertEqual(view.pricing.total, "Fare not available")

    def test_record_gets_labelled_estimate(self):
        view = build_view(make_record(), "TT-INV-202510-ABC123", ISSUED)
        self.assertEqual(view.pricing.kind, PRICING_ESTIMATE)
        self.assertEqual(view.pricing.title, ESTIMATE_TITLE)
        self.assertEqual(view.pricing.total_label, "ESTIMATED TOTAL")
        self.assertEqual(view.pricing.total, "USD 435.00")
        self.assertEqual(view.rows[0].status, "Booked")

    def test_arrival_date_shown_when_it_differs(self):
        itinerary = make_itinerary()
        first, second = itinerary.flights
        first.arrival_date = first.departure_date
        second.arrival_date = "October 26, 2025"
        view = build_view(itinerary, "TT-INV-202510-ABC123", ISSUED)
        self.assertEqual(view.rows[0].time, "2:10 PM - 4:35 PM")
        self.assertEqual(view.rows[1].time, "11:00 AM - 12:40 PM (arrives October 26, 2025)")

    def test_record_row_shows_arrival(self):
        record = make_record(arrival_time="1:15 AM", arrival_date="October 18, 2025")
        view = build_view(record, "TT-INV-202510-ABC123", ISSUED)
        self.assertEqual(view.rows[0].time, "2:10 PM - 1:15 AM (arrives October 18, 2025)")

    def test_checked_in_record_status(self):
        view = build_view(make_record(checkin_completed=True), "TT-INV-202510-ABC123", ISSUED)
        self.assertEqual(view.rows[0].status, "Checked In")


class RenderTests(unittest.TestCase):

    def test_template_is_package_data(self):
        self.assertIn("invoice.html", _env.list_templates())

    def test_html_for_itinerary(self):
        html = render_html(make_itinerary(), "TT-INV-202510-ABC123", ISSUED)
        self.assertIn("TT-INV-202510-ABC123", html)
        self.assertIn("USD 933.00", html)
        self.assertIn("UR121", html)
        self.assertIn("UR120", html)
        # passenger names are escaped
        self.assertIn("AYII/AWAK TEREZA GHEW &amp; LUAL/DENG", html)
        self.assertNotIn("ESTIMATE", html)

    def test_html_for_record(self):
        html = render_html(make_record(), "TT-INV-202510-ABC123", ISSUED)
        self.assertIn(ESTIMATE_TITLE, html)
        self.assertIn("Taxes &amp; Fees", html)
        self.assertIn("ESTIMATED TOTAL", html)

    def test_pdf_bytes(self):
        for source in (make_itinerary(), make_itinerary(total=0.0), make_record()):
            with self.subTest(source=type(source).__name__):
                data = render_pdf(source, "TT-INV-202510-ABC123", ISSUED)
                self.assertIsInstance(data, bytes)
                self.assertTrue(data.startswith(b"%PDF"))

    def test_generated_number_when_omitted(self):
        view = build_view(make_itinerary(), issue_date=ISSUED)
        self.assertTrue(re.match(r"^TT-INV-202510-", view.invoice_number))


if __name__ == "__main__":
    unittest.main()
