"""
End-to-end tests for the parsing pipeline with a stubbed completion client.
"""
import json
import unittest
from datetime import datetime

from completion_client import CancellationToken
from errors import (
    NoFlightsExtracted,
    NoJsonFound,
    ParseCancelled,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from itinerary_parser import SOURCE_AI, SOURCE_GDS, ItineraryParser

NOW = datetime(2025, 1, 10, 9, 0)

BOOKING = (
    "DQVJ6T/SC NBOOU 39K8SC AG\n"
    "1.1AYII/AWAK TEREZA GHEW  2.I/1LUAL/DENG ABIGAIL AMOL MS*11JUL25\n"
    "1 UR 121 K 17OCT 5 JUBEBB HK2 1410 1635 17OCT E UR/DQVJ6T\n"
    "2 UR 120 K 24OCT 5 EBBJUB HK2 1100 1240 24OCT E UR/DQVJ6T\n"
    "TOTAL USD783.00 ADULT\n"
    "TOTAL USD150.00 INFANT\n"
)

PROSE = "Booking for Mr Okello, Kenya Airways from Nairobi to Juba on the fifth of November, morning flight."

MODEL_REPLY = "Sure! Here is the itinerary:\n```json\n" + json.dumps({
    "passengerName": "OKELLO/JAMES MR",
    "pnr": "XYZ",
    "flights": [{
        "airlineCode": "KQ",
        "flightNumber": "KQ410",
        "cabinClass": "M",
        "departureDate": "November 5, 2025",
        "departureAirport": "NBO",
        "arrivalAirport": "JUB",
        "departureTime": "8:30 AM",
        "arrivalTime": "10:45 AM",
    }],
}) + "\n```"


class StubClient:

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def complete(self, raw_text, now=None, cancel_token=None):
        self.calls.append(raw_text)
        if self.error:
            raise self.error
        return self.reply


class GdsPathTests(unittest.TestCase):

    def test_gds_booking_skips_the_model(self):
        client = StubClient(reply="should not be used")
        outcome = ItineraryParser(client=client).parse(BOOKING, now=NOW)

        self.assertEqual(outcome.source, SOURCE_GDS)
        self.assertEqual(client.calls, [])
        itinerary = outcome.itinerary
        self.assertEqual(itinerary.pnr, "DQVJ6T")
        self.assertEqual(
            itinerary.passenger_name,
            "AYII/AWAK TEREZA GHEW & LUAL/DENG ABIGAIL AMOL (Infant)",
        )
        self.assertEqual(itinerary.total_amount, 933.0)
        self.assertEqual(itinerary.currency, "USD")
        self.assertEqual(len(itinerary.flights), 2)

        outbound, inbound = itinerary.flights
        self.assertEqual(outbound.departure_date, "October 17, 2025")
        self.assertEqual(outbound.departure_time, "2:10 PM")
        self.assertEqual(outbound.arrival_time, "4:35 PM")
        self.assertFalse(outbound.overnight)
        self.assertEqual(outbound.confirmation_status, "Confirmed")
        self.assertEqual(inbound.departure_date, "October 24, 2025")
        self.assertEqual(inbound.departure_time, "11:00 AM")

        self.assertEqual(
            itinerary.summary,
            "Round trip between Juba and Entebbe with 2 passengers (1 adult, 1 infant)",
        )
        self.assertEqual(outcome.warnings, [])

    def test_gds_works_without_a_client(self):
        outcome = ItineraryParser().parse("UR 121 K 17OCT JUBEBB HK1 1410 1635", now=NOW)
        self.assertEqual(outcome.source, SOURCE_GDS)
        self.assertEqual(outcome.itinerary.flights[0].departure_date, "October 17, 2025")


class ModelPathTests(unittest.TestCase):

    def test_fenced_reply_is_parsed_and_short_pnr_warned(self):
        client = StubClient(reply=MODEL_REPLY)
        outcome = ItineraryParser(client=client).parse(PROSE, now=NOW)

        self.assertEqual(outcome.source, SOURCE_AI)
        self.assertEqual(client.calls, [PROSE])
        itinerary = outcome.itinerary
        self.assertEqual(itinerary.pnr, "XYZ")
        self.assertEqual(itinerary.flights[0].airline_name, "Kenya Airways")
        self.assertEqual(itinerary.flights[0].departure_city, "Nairobi, Kenya")
        self.assertEqual(outcome.warnings, ["PNR seems invalid: 'XYZ'"])

    def test_placeholder_braces_before_the_object(self):
        client = StubClient(reply="Parsed the {booking} below:\n" + MODEL_REPLY)
        outcome = ItineraryParser(client=client).parse(PROSE, now=NOW)
        self.assertEqual(outcome.itinerary.flights[0].flight_number, "KQ410")

    def test_reply_without_json(self):
        parser = ItineraryParser(client=StubClient(reply="I could not find a booking in that text."))
        with self.assertRaises(NoJsonFound):
            parser.parse(PROSE, now=NOW)

    def test_reply_with_no_flights(self):
        parser = ItineraryParser(client=StubClient(reply='{"pnr": "DQVJ6T", "flights": []}'))
        with self.assertRaises(NoFlightsExtracted):
            parser.parse(PROSE, now=NOW)

    def test_upstream_errors_propagate(self):
        parser = ItineraryParser(client=StubClient(error=UpstreamTimeout("slow")))
        with self.assertRaises(UpstreamTimeout):
            parser.parse(PROSE, now=NOW)

    def test_no_client_configured(self):
        with self.assertRaises(UpstreamUnavailable):
            ItineraryParser().parse(PROSE, now=NOW)


class InputTests(unittest.TestCase):

    def test_blank_text(self):
        with self.assertRaises(NoFlightsExtracted):
            ItineraryParser().parse("   \n", now=NOW)

    def test_cancelled_parse_produces_no_result(self):
        token = CancellationToken()
        token.cancel()
        with self.assertRaises(ParseCancelled):
            ItineraryParser().parse(BOOKING, now=NOW, cancel_token=token)

    def test_outcome_serializes(self):
        payload = ItineraryParser().parse(BOOKING, now=NOW).to_dict()
        self.assertEqual(payload["source"], "gds")
        self.assertEqual(payload["itinerary"]["pnr"], "DQVJ6T")
        self.assertEqual(payload["itinerary"]["flights"][0]["departureTime"], "2:10 PM")


if __name__ == "__main__":
    unittest.main()
