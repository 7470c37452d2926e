"""
HTTP tests for the Flask app, with an in-memory store, fake timers and a
stubbed completion client.
"""
import unittest
from datetime import datetime, timedelta

import pytz

from errors import UpstreamTimeout
from extensions import build_engine, build_session_factory
from itinerary_parser import ItineraryParser
from status import classify
from notifications import InAppAlertFeed, NotificationCapability
from app import create_app

NOW = pytz.utc.localize(datetime(2025, 10, 15, 0, 0))

GDS_TEXT = "DQVJ6T/SC NBOOU 39K8SC AG\nUR 121 K 17OCT JUBEBB HK1 1410 1635\n"

ITINERARY = {
    "passengerName": "DENG/JOHN MR",
    "pnr": "DQVJ6T",
    "totalAmount": 933.0,
    "currency": "USD",
    "flights": [
        {
            "airlineCode": "KQ", "airlineName": "Kenya Airways", "flightNumber": "KQ410",
            "cabinClass": "M", "cabinClassName": "Economy Class",
            "departureDate": "October 17, 2025", "departureTime": "2:10 PM",
            "departureAirport": "NBO", "departureCity": "Nairobi, Kenya",
            "arrivalAirport": "JUB", "arrivalCity": "Juba, South Sudan",
            "arrivalDate": "October 17, 2025", "arrivalTime": "4:25 PM",
        },
        {
            "airlineCode": "KQ", "airlineName": "Kenya Airways", "flightNumber": "KQ411",
            "cabinClass": "M", "cabinClassName": "Economy Class",
            "departureDate": "October 24, 2025", "departureTime": "5:30 PM",
            "departureAirport": "JUB", "departureCity": "Juba, South Sudan",
            "arrivalAirport": "NBO", "arrivalCity": "Nairobi, Kenya",
            "arrivalDate": "October 24, 2025", "arrivalTime": "7:45 PM",
        },
    ],
}


class StubClient:

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error

    def complete(self, raw_text, now=None, cancel_token=None):
        if self.error:
            raise self.error
        return self.reply


class FakeTimer:

    def __init__(self, interval, function, args=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.daemon = False
        self.cancelled = False

    def start(self):
        pass

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args)


class AppTestCase(unittest.TestCase):

    client_reply = "I could not find a booking in that text."
    client_error = None

    def setUp(self):
        self.engine = build_engine("sqlite://")
        self.timers = []
        self.feed = InAppAlertFeed()
        self.app = create_app(
            test_config={"TESTING": True, "SECRET_KEY": "test"},
            parser=ItineraryParser(client=StubClient(self.client_reply, self.client_error)),
            session_factory=build_session_factory(self.engine),
            notifier=NotificationCapability(webhook_url="", feed=self.feed),
            clock=lambda: NOW,
            timer_factory=self._timer,
        )
        self.client = self.app.test_client()

    def tearDown(self):
        self.app.extensions["checkin"].scheduler.shutdown()
        self.engine.dispose()

    def _timer(self, interval, function, args=None):
        timer = FakeTimer(interval, function, args)
        self.timers.append(timer)
        return timer

    def login(self, user_id="agent-1"):
        with self.client.session_transaction() as sess:
            sess["user_id"] = user_id

    def opt_in(self):
        self.login()
        response = self.client.post("/api/travel-records",
                                    json={"itinerary": ITINERARY, "raw_text": "raw booking"})
        self.assertEqual(response.status_code, 201)
        return response.get_json()


class ParseRouteTests(AppTestCase):

    def test_gds_text(self):
        response = self.client.post("/parse", json={"raw_text": GDS_TEXT})
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body["source"], "gds")
        self.assertEqual(body["itinerary"]["pnr"], "DQVJ6T")
        self.assertEqual(body["itinerary"]["flights"][0]["departureTime"], "2:10 PM")

    def test_empty_text(self):
        response = self.client.post("/parse", json={"raw_text": "  "})
        self.assertEqual(response.status_code, 400)

    def test_reply_without_json_is_an_error_state(self):
        prose = "Please book Mr Deng to Juba sometime next week."
        response = self.client.post("/parse", json={"raw_text": prose})
        self.assertEqual(response.status_code, 422)
        body = response.get_json()
        self.assertEqual(body["error"], "Parsing failed")
        self.assertEqual(body["raw_text"], prose)


class ParseTimeoutTests(AppTestCase):

    client_error = UpstreamTimeout("timed out after 60s")

    def test_timeout_maps_to_504(self):
        response = self.client.post("/parse", json={"raw_text": "Mr Deng, Nairobi to Juba"})
        self.assertEqual(response.status_code, 504)
        self.assertIn("timed out", response.get_json()["detail"])


class AuthTests(AppTestCase):

    def test_record_routes_require_login(self):
        self.assertEqual(self.client.get("/api/travel-records").status_code, 401)
        self.assertEqual(self.client.post("/api/travel-records", json={}).status_code, 401)
        self.assertEqual(self.client.get("/api/alerts").status_code, 401)


class TravelRecordRouteTests(AppTestCase):

    def test_opt_in_creates_records_and_arms_reminders(self):
        body = self.opt_in()
        self.assertEqual(len(body["records"]), 2)
        first = body["records"][0]
        self.assertEqual(first["flight_number"], "KQ410")
        self.assertEqual(first["status"], "upcoming")
        self.assertEqual(body["reminders"][first["id"]], ["24h", "3h"])
        self.assertEqual(len(self.timers), 4)

    def test_raw_gds_tokens_are_normalized_before_saving(self):
        self.login()
        leg = {
            "airlineCode": "KQ", "flightNumber": "KQ410", "cabinClass": "M",
            "departureDate": "17OCT", "departureTime": "1410",
            "departureAirport": "NBO", "arrivalAirport": "JUB", "arrivalTime": "1635",
        }
        response = self.client.post("/api/travel-records",
                                    json={"itinerary": dict(ITINERARY, flights=[leg])})
        self.assertEqual(response.status_code, 201)
        first = response.get_json()["records"][0]
        self.assertEqual(first["departure_date"], "October 17, 2025")
        self.assertEqual(first["departure_time"], "2:10 PM")
        self.assertEqual(first["airline_name"], "Kenya Airways")
        self.assertEqual(response.get_json()["reminders"][first["id"]], ["24h", "3h"])

        record = self.app.extensions["checkin"].gateway.get("agent-1", first["id"])
        self.assertEqual(classify(record, NOW + timedelta(days=30)), "past")

    def test_invalid_itinerary_is_rejected(self):
        self.login()
        bad = dict(ITINERARY, flights=[dict(ITINERARY["flights"][0], arrivalAirport="NBO")])
        response = self.client.post("/api/travel-records", json={"itinerary": bad})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.client.get("/api/travel-records").get_json()["total"], 0)

    def test_missing_itinerary(self):
        self.login()
        self.assertEqual(self.client.post("/api/travel-records", json={}).status_code, 400)

    def test_listing(self):
        self.opt_in()
        body = self.client.get("/api/travel-records?status=upcoming&q=kq411").get_json()
        self.assertEqual([r["flight_number"] for r in body["records"]], ["KQ411"])
        self.assertEqual(body["stats"]["total"], 2)

    def test_records_are_scoped_to_the_user(self):
        record_id = self.opt_in()["records"][0]["id"]
        self.login("agent-2")
        self.assertEqual(self.client.get("/api/travel-records").get_json()["total"], 0)
        self.assertEqual(self.client.get(f"/api/travel-records/{record_id}").status_code, 404)

    def test_check_in_cancels_reminders(self):
        record_id = self.opt_in()["records"][0]["id"]
        response = self.client.post(f"/api/travel-records/{record_id}/checkin")
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertTrue(body["checkin_completed"])
        self.assertEqual(body["status"], "completed")
        self.assertTrue(self.timers[0].cancelled and self.timers[1].cancelled)
        self.assertFalse(self.timers[2].cancelled)

    def test_delete_requires_confirmation(self):
        record_id = self.opt_in()["records"][0]["id"]
        self.assertEqual(self.client.delete(f"/api/travel-records/{record_id}").status_code, 400)
        response = self.client.delete(f"/api/travel-records/{record_id}?confirm=true")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(f"/api/travel-records/{record_id}").status_code, 404)
        self.assertTrue(self.timers[0].cancelled)

    def test_record_invoice_pdf(self):
        record_id = self.opt_in()["records"][0]["id"]
        response = self.client.get(f"/api/travel-records/{record_id}/invoice")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, "application/pdf")
        self.assertTrue(response.data.startswith(b"%PDF"))
        self.assertIn("Tuli-Travel-Invoice-DENG-JOHN-MR-KQ410", response.headers["Content-Disposition"])

    def test_record_invoice_html_is_an_estimate(self):
        record_id = self.opt_in()["records"][0]["id"]
        response = self.client.get(f"/api/travel-records/{record_id}/invoice?format=html")
        self.assertIn("ESTIMATED TOTAL", response.get_data(as_text=True))

    def test_share_link(self):
        record_id = self.opt_in()["records"][0]["id"]
        body = self.client.get(f"/api/travel-records/{record_id}/share").get_json()
        self.assertEqual(body["status"], "upcoming")
        self.assertTrue(body["url"].startswith("https://wa.me/?text="))

    def test_fired_reminder_shows_up_as_alert(self):
        record_id = self.opt_in()["records"][0]["id"]
        self.timers[0].fire()

        alerts = self.client.get("/api/alerts").get_json()["alerts"]
        self.assertEqual(len(alerts), 1)
        self.assertEqual(alerts[0]["record_id"], record_id)
        self.assertEqual(self.client.get("/api/alerts").get_json()["alerts"], [])
        record = self.client.get(f"/api/travel-records/{record_id}").get_json()
        self.assertTrue(record["checkin_24h_alert"])


class ItineraryRouteTests(AppTestCase):

    def test_clipboard_text(self):
        self.login()
        response = self.client.post("/api/itinerary/text", json={"itinerary": ITINERARY})
        self.assertIn("Total Cost: USD 933.00", response.get_json()["text"])

    def test_itinerary_invoice_pdf(self):
        self.login()
        response = self.client.post("/api/itinerary/invoice", json={"itinerary": ITINERARY})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data.startswith(b"%PDF"))

    def test_itinerary_invoice_html_shows_real_total(self):
        self.login()
        response = self.client.post("/api/itinerary/invoice",
                                    json={"itinerary": ITINERARY, "format": "html"})
        html = response.get_data(as_text=True)
        self.assertIn("USD 933.00", html)
        self.assertNotIn("ESTIMATED TOTAL", html)


class StartupTests(unittest.TestCase):

    def test_pending_reminders_are_rearmed_on_start(self):
        engine = build_engine("sqlite://")
        factory = build_session_factory(engine)
        timers = []

        def timer(interval, function, args=None):
            t = FakeTimer(interval, function, args)
            timers.append(t)
            return t

        kwargs = dict(
            test_config={"TESTING": True},
            parser=ItineraryParser(),
            session_factory=factory,
            notifier=NotificationCapability(webhook_url="", feed=InAppAlertFeed()),
            clock=lambda: NOW,
            timer_factory=timer,
        )
        first = create_app(**kwargs)
        client = first.test_client()
        with client.session_transaction() as sess:
            sess["user_id"] = "agent-1"
        client.post("/api/travel-records", json={"itinerary": ITINERARY})
        self.assertEqual(len(timers), 4)
        first.extensions["checkin"].scheduler.shutdown()

        create_app(**kwargs)
        self.assertEqual(len(timers), 8)
        engine.dispose()


if __name__ == "__main__":
    unittest.main()
