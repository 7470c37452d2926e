"""
Schema validation for itinerary JSON.

Hard failures (MalformedJson, NoFlightsExtracted, InvalidFlightLeg) abort
the pipeline; soft findings (suspicious PNR length) are logged and kept
on result.warnings.
"""

import json
import logging
from typing import Any, Dict

from errors import InvalidFlightLeg, MalformedJson, NoFlightsExtracted
from itinerary import ItineraryParseResult

logger = logging.getLogger(__name__)

PNR_MIN_LENGTH = 5
PNR_MAX_LENGTH = 7
PNR_WARNING = "PNR seems invalid:"


class ItineraryValidator:
    """Validate extracted itinerary data"""

    @staticmethod
    def decode(json_substring: str) -> Dict[str, Any]:
        try:
            data = json.loads(json_substring)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error("JSON parse error: %s", e)
            logger.debug("Offending content: %s", (json_substring or "")[:300])
            raise MalformedJson(f"Failed to parse AI response: {e}", payload=json_substring or "")
        if not isinstance(data, dict):
            raise MalformedJson(
                f"Expected a JSON object, got {type(data).__name__}",
                payload=json_substring,
            )
        return data

    @staticmethod
    def validate(json_substring: str) -> ItineraryParseResult:
        data = ItineraryValidator.decode(json_substring)
        flights = data.get("flights")
        if not isinstance(flights, list) or not flights:
            raise NoFlightsExtracted("No flights found in booking")
        return ItineraryValidator.check(ItineraryParseResult.from_dict(data))

    @staticmethod
    def validate_dict(data: Dict[str, Any]) -> ItineraryParseResult:
        """Validate an itinerary that arrives already decoded (HTTP payloads)."""
        if not isinstance(data, dict):
            raise MalformedJson("Itinerary must be a JSON object")
        return ItineraryValidator.check(ItineraryParseResult.from_dict(data))

    @staticmethod
    def check(result: ItineraryParseResult) -> ItineraryParseResult:
        if not result.flights:
            raise NoFlightsExtracted("No flights found in booking")

        for i, leg in enumerate(result.flights, 1):
            if not leg.departure_airport or not leg.arrival_airport:
                raise InvalidFlightLeg(f"Flight {i} is missing an airport")
            if leg.departure_airport == leg.arrival_airport:
                raise InvalidFlightLeg(
                    f"Flight {i} departs and arrives at {leg.departure_airport}"
                )

        # checked again after normalization; only the current finding is kept
        result.warnings = [w for w in result.warnings if not w.startswith(PNR_WARNING)]
        pnr_len = len(result.pnr or "")
        if not PNR_MIN_LENGTH <= pnr_len <= PNR_MAX_LENGTH:
            message = f"{PNR_WARNING} '{result.pnr}'"
            logger.warning(message)
            result.warnings.append(message)

        return result
