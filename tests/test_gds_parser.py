"""
Tests for the deterministic GDS segment parser.
"""
import unittest

from gds_parser import GDSParser

BOOKING = (
    "DQVJ6T/SC NBOOU 39K8SC AG\n"
    "1.1AYII/AWAK TEREZA GHEW  2.I/1LUAL/DENG ABIGAIL AMOL MS*11JUL25\n"
    "1 UR 121 K 17OCT 5 JUBEBB HK2 1410 1635 17OCT E UR/DQVJ6T\n"
    "2 UR 120 K 24OCT 5 EBBJUB HK2 1100 1240 24OCT E UR/DQVJ6T\n"
    "TOTAL USD783.00 ADULT\n"
    "TOTAL USD150.00 INFANT\n"
)


class DetectionTests(unittest.TestCase):

    def setUp(self):
        self.parser = GDSParser()

    def test_segment_line_is_gds(self):
        self.assertTrue(self.parser.is_gds("UR 121 K 17OCT JUBEBB HK1 1410 1635"))

    def test_prose_is_not_gds(self):
        self.assertFalse(self.parser.is_gds(
            "Hi, I'd like to fly from Juba to Entebbe next Friday afternoon with my daughter."
        ))

    def test_empty_text(self):
        self.assertFalse(self.parser.is_gds(""))
        self.assertIsNone(self.parser.parse(""))


class SegmentTests(unittest.TestCase):

    def setUp(self):
        self.parser = GDSParser()

    def test_single_segment_keeps_raw_tokens(self):
        result = self.parser.parse("UR 121 K 17OCT JUBEBB HK1 1410 1635")
        self.assertEqual(len(result.flights), 1)
        leg = result.flights[0]
        self.assertEqual(leg.airline_code, "UR")
        self.assertEqual(leg.flight_number, "UR121")
        self.assertEqual(leg.cabin_class, "K")
        self.assertEqual(leg.departure_date, "17OCT")
        self.assertEqual(leg.departure_airport, "JUB")
        self.assertEqual(leg.arrival_airport, "EBB")
        self.assertEqual(leg.departure_time, "1410")
        self.assertEqual(leg.arrival_time, "1635")
        self.assertEqual(leg.confirmation_status, "HK1")
        self.assertEqual(leg.days_offset, 0)

    def test_full_booking_yields_both_legs_in_order(self):
        result = self.parser.parse(BOOKING)
        self.assertEqual(
            [(leg.flight_number, leg.departure_airport, leg.arrival_airport) for leg in result.flights],
            [("UR121", "JUB", "EBB"), ("UR120", "EBB", "JUB")],
        )

    def test_next_day_marker(self):
        result = self.parser.parse("2  ET 302 Y 20OCT 1*ADDNBO HK2 2350 0215+1")
        leg = result.flights[0]
        self.assertEqual((leg.departure_airport, leg.arrival_airport), ("ADD", "NBO"))
        self.assertEqual(leg.days_offset, 1)

    def test_trailing_arrival_date(self):
        result = self.parser.parse("1. KQ 410 M 05NOV NBO JUB HK1 2330 0110 06NOV")
        leg = result.flights[0]
        self.assertEqual((leg.departure_airport, leg.arrival_airport), ("NBO", "JUB"))
        self.assertEqual(leg.days_offset, 1)

    def test_year_suffix_is_kept(self):
        result = self.parser.parse("UR 121 K 17OCT25 JUBEBB HK1 1410 1635")
        self.assertEqual(result.flights[0].departure_date, "17OCT25")

    def test_compact_slash_format(self):
        result = self.parser.parse("QR007/Y/12MAR/CCUDOH/0055/0310+1")
        leg = result.flights[0]
        self.assertEqual(leg.flight_number, "QR007")
        self.assertEqual((leg.departure_airport, leg.arrival_airport), ("CCU", "DOH"))
        self.assertEqual(leg.days_offset, 1)

    def test_no_segment_returns_none(self):
        self.assertIsNone(self.parser.parse("Please book me on the 17OCT flight at 1410"))


if __name__ == "__main__":
    unittest.main()
