import io
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, Flask, Response, current_app, jsonify, request, send_file, session
from sqlalchemy.orm import sessionmaker

import config
from errors import (
    EmptyCompletion,
    ItineraryParseError,
    PersistenceFailure,
    RecordNotFound,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from extensions import SessionLocal, init_db
from invoice import build_view, invoice_filename, pdf_from_view, render_html
from itinerary_parser import ItineraryParser, build_default_parser
from normalizer import ItineraryNormalizer
from notifications import NotificationCapability
from records import TravelRecordGateway
from scheduler import CheckinScheduler
from share import itinerary_text, share_reminder
from status import build_listing, classify, status_label, utc_now
from validator import ItineraryValidator

logger = logging.getLogger(__name__)


# ==================== SERVICES ====================

@dataclass
class Services:
    parser: ItineraryParser
    gateway: TravelRecordGateway
    notifier: NotificationCapability
    scheduler: CheckinScheduler
    clock: Callable[[], datetime]


def services() -> Services:
    return current_app.extensions["checkin"]


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


api = Blueprint("api", __name__)


# ==================== AUTHENTICATION DECORATOR ====================

def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({"error": "Authentication required"}), 401
        return f(*args, **kwargs)
    return decorated_function


# ==================== HELPER FUNCTIONS ====================

def parse_error_response(e: ItineraryParseError, raw_text: str):
    """Parse failures are user-visible error states, never 500s."""
    if isinstance(e, UpstreamTimeout):
        status = 504
    elif isinstance(e, (UpstreamUnavailable, EmptyCompletion)):
        status = 502
    else:
        status = 422
    return jsonify({
        "error": e.user_message,
        "detail": str(e),
        "raw_text": raw_text,
    }), status


def record_payload(record, now: datetime) -> dict:
    data = record.to_dict()
    status = classify(record, now)
    data["status"] = status
    data["status_label"] = status_label(status)
    return data


def pdf_response(view, passenger_name: str, flight_number: str):
    pdf_bytes = pdf_from_view(view)
    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=invoice_filename(passenger_name, flight_number, view.invoice_number),
    )


def itinerary_from_request(data):
    """Validate a client-supplied itinerary and re-apply the leg normalization rules."""
    if not data or not isinstance(data.get("itinerary"), dict):
        return None
    itinerary = ItineraryValidator.validate_dict(data["itinerary"])
    normalizer = ItineraryNormalizer()
    now = services().clock()
    previous = None
    for leg in itinerary.flights:
        previous = normalizer.normalize_leg(leg, now, previous, itinerary.warnings)
    return itinerary


# ==================== PARSING ROUTES ====================

@api.route("/parse", methods=["POST"])
def parse():
    """Parse pasted booking text into a normalized itinerary"""
    data = request.get_json(silent=True) or {}
    raw_text = data.get("raw_text") or ""
    if not raw_text.strip():
        return jsonify({"error": "No booking text provided"}), 400

    try:
        outcome = services().parser.parse(raw_text, now=services().clock())
    except ItineraryParseError as e:
        logger.error("Parse failed (%s): %s", type(e).__name__, e)
        return parse_error_response(e, raw_text)

    return jsonify(outcome.to_dict())


@api.route("/api/itinerary/text", methods=["POST"])
@login_required
def itinerary_clipboard_text():
    try:
        itinerary = itinerary_from_request(request.get_json(silent=True))
    except ItineraryParseError as e:
        return parse_error_response(e, "")
    if itinerary is None:
        return jsonify({"error": "Missing itinerary"}), 400
    return jsonify({"text": itinerary_text(itinerary)})


@api.route("/api/itinerary/invoice", methods=["POST"])
@login_required
def itinerary_invoice():
    data = request.get_json(silent=True) or {}
    try:
        itinerary = itinerary_from_request(data)
    except ItineraryParseError as e:
        return parse_error_response(e, "")
    if itinerary is None:
        return jsonify({"error": "Missing itinerary"}), 400

    if data.get("format") == "html":
        return Response(render_html(itinerary), mimetype="text/html")
    view = build_view(itinerary)
    return pdf_response(view, itinerary.passenger_name, itinerary.flights[0].flight_number)


# ==================== TRAVEL RECORD ROUTES ====================

@api.route("/api/travel-records", methods=["GET"])
@login_required
def list_travel_records():
    try:
        page = int(request.args.get("page", 1))
    except ValueError:
        page = 1
    try:
        records = services().gateway.list_for_user(session["user_id"])
    except PersistenceFailure as e:
        logger.error("Listing failed: %s", e)
        return jsonify({"error": "Failed to load travel records"}), 500

    return jsonify(build_listing(
        records,
        services().clock(),
        status_filter=request.args.get("status", "all"),
        query=request.args.get("q", ""),
        sort=request.args.get("sort", "departure_date"),
        direction=request.args.get("direction", "asc"),
        page=page,
    ))


@api.route("/api/travel-records", methods=["POST"])
@login_required
def create_travel_records():
    """Opt in to check-in tracking: one record per flight leg"""
    data = request.get_json(silent=True) or {}
    try:
        itinerary = itinerary_from_request(data)
    except ItineraryParseError as e:
        return parse_error_response(e, data.get("raw_text") or "")
    if itinerary is None:
        return jsonify({"error": "Missing itinerary"}), 400

    svc = services()
    try:
        records = svc.gateway.create_from_itinerary(
            session["user_id"],
            itinerary,
            raw_text=data.get("raw_text"),
            contact_info=data.get("contact_info"),
        )
    except PersistenceFailure as e:
        logger.error("Opt-in failed: %s", e)
        return jsonify({"error": "Failed to save travel records"}), 500

    now = svc.clock()
    reminders = {record.id: svc.scheduler.schedule(record, now=now) for record in records}
    return jsonify({
        "records": [record_payload(r, now) for r in records],
        "reminders": reminders,
    }), 201


@api.route("/api/travel-records/<record_id>", methods=["GET"])
@login_required
def get_travel_record(record_id):
    try:
        record = services().gateway.get(session["user_id"], record_id)
    except RecordNotFound:
        return jsonify({"error": "Travel record not found"}), 404
    except PersistenceFailure as e:
        logger.error("Load failed: %s", e)
        return jsonify({"error": "Failed to load travel record"}), 500
    return jsonify(record_payload(record, services().clock()))


@api.route("/api/travel-records/<record_id>/checkin", methods=["POST"])
@login_required
def mark_checked_in(record_id):
    svc = services()
    try:
        record = svc.gateway.mark_checked_in(session["user_id"], record_id)
    except RecordNotFound:
        return jsonify({"error": "Travel record not found"}), 404
    except PersistenceFailure as e:
        logger.error("Check-in update failed: %s", e)
        return jsonify({"error": "Failed to update check-in status"}), 500

    # checked-in legs need no further reminders
    svc.scheduler.cancel(record_id)
    return jsonify(record_payload(record, svc.clock()))


@api.route("/api/travel-records/<record_id>", methods=["DELETE"])
@login_required
def delete_travel_record(record_id):
    if request.args.get("confirm", "").lower() != "true":
        return jsonify({"error": "Deletion must be confirmed with confirm=true"}), 400

    svc = services()
    try:
        svc.gateway.delete(session["user_id"], record_id)
    except RecordNotFound:
        return jsonify({"error": "Travel record not found"}), 404
    except PersistenceFailure as e:
        logger.error("Delete failed: %s", e)
        return jsonify({"error": "Failed to delete travel record"}), 500

    svc.scheduler.cancel(record_id)
    return jsonify({"message": "Travel record deleted successfully"})


@api.route("/api/travel-records/<record_id>/invoice", methods=["GET"])
@login_required
def travel_record_invoice(record_id):
    try:
        record = services().gateway.get(session["user_id"], record_id)
    except RecordNotFound:
        return jsonify({"error": "Travel record not found"}), 404
    except PersistenceFailure as e:
        logger.error("Load failed: %s", e)
        return jsonify({"error": "Failed to load travel record"}), 500

    if request.args.get("format") == "html":
        return Response(render_html(record), mimetype="text/html")
    return pdf_response(build_view(record), record.passenger_name, record.flight_number)


@api.route("/api/travel-records/<record_id>/share", methods=["GET"])
@login_required
def share_travel_record(record_id):
    try:
        record = services().gateway.get(session["user_id"], record_id)
    except RecordNotFound:
        return jsonify({"error": "Travel record not found"}), 404
    except PersistenceFailure as e:
        logger.error("Load failed: %s", e)
        return jsonify({"error": "Failed to load travel record"}), 500
    return jsonify(share_reminder(record, services().clock()))


@api.route("/api/alerts", methods=["GET"])
@login_required
def drain_alerts():
    return jsonify({"alerts": services().notifier.feed.drain(session["user_id"])})


# ==================== APP FACTORY ====================

def create_app(
    test_config: Optional[dict] = None,
    parser: Optional[ItineraryParser] = None,
    session_factory: Optional[sessionmaker] = None,
    notifier: Optional[NotificationCapability] = None,
    clock: Callable[[], datetime] = utc_now,
    timer_factory: Callable = threading.Timer,
) -> Flask:
    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.SECRET_KEY
    if test_config:
        app.config.update(test_config)

    session_factory = session_factory or SessionLocal
    init_db(session_factory.kw.get("bind"))

    gateway = TravelRecordGateway(session_factory)
    notifier = notifier or NotificationCapability()
    scheduler = CheckinScheduler(gateway, notifier, clock=clock, timer_factory=timer_factory)
    app.extensions["checkin"] = Services(
        parser=parser or build_default_parser(),
        gateway=gateway,
        notifier=notifier,
        scheduler=scheduler,
        clock=clock,
    )
    app.register_blueprint(api)

    try:
        scheduler.rearm_pending(gateway.list_pending_reminders())
    except PersistenceFailure as e:
        logger.error("Could not re-arm reminders at startup: %s", e)

    return app


if __name__ == "__main__":
    configure_logging()
    create_app().run(host="0.0.0.0", port=5000, debug=True, use_reloader=False)
