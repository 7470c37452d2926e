"""
Error taxonomy for the itinerary pipeline and the travel record store.

Everything raised between "raw text pasted" and "validated itinerary"
derives from ItineraryParseError so callers can abort the pipeline with
a single except clause before anything is persisted.
"""

from typing import Optional


class ItineraryParseError(Exception):
    """Base class for every parse-time failure."""

    user_message = "Parsing failed"


# ==================== COMPLETION CLIENT ====================

class UpstreamUnavailable(ItineraryParseError):
    """Completion endpoint answered with a non-success status (or not at all)."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class UpstreamTimeout(ItineraryParseError):
    """Completion request exceeded the client-side timeout."""


class EmptyCompletion(ItineraryParseError):
    """The completion response carried no text payload."""


class ParseCancelled(ItineraryParseError):
    """The caller cancelled the parse before a result was produced."""


# ==================== SANITIZER / VALIDATOR ====================

class NoJsonFound(ItineraryParseError):
    """No balanced JSON object could be located in the model reply."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class MalformedJson(ItineraryParseError):
    """The extracted substring is not valid JSON (or not an object)."""

    def __init__(self, message: str, payload: str = ""):
        super().__init__(message)
        self.payload = payload


class NoFlightsExtracted(ItineraryParseError):
    """An itinerary with zero flight legs is not actionable."""


class InvalidFlightLeg(ItineraryParseError):
    """A flight leg is missing an airport or departs and arrives at the same one."""


# ==================== PERSISTENCE ====================

class PersistenceFailure(Exception):
    """Insert/update/delete against the travel record store failed."""


class RecordNotFound(PersistenceFailure):
    pass
