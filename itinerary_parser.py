"""
Parsing pipeline: pasted booking text → validated, normalized itinerary.

    raw text ──► GDS regex parser ──────────────────────┐
         └─(no segment found)─► CompletionClient        │
                                   └► sanitize ─► decode ┤
                                                         ▼
                                          validator.check ─► normalizer

Every failure is an ItineraryParseError subclass; nothing is persisted
on failure.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from completion_client import CancellationToken, CompletionClient
from errors import NoFlightsExtracted, UpstreamUnavailable
from gds_parser import GDSParser
from itinerary import ItineraryParseResult
from normalizer import ItineraryNormalizer
from sanitizer import sanitize
from validator import ItineraryValidator

logger = logging.getLogger(__name__)

SOURCE_GDS = "gds"
SOURCE_AI = "ai"


@dataclass
class ParseOutcome:
    itinerary: ItineraryParseResult
    source: str
    warnings: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "itinerary": self.itinerary.to_dict(),
            "source": self.source,
            "warnings": list(self.warnings),
        }


class ItineraryParser:
    """Main orchestrator"""

    def __init__(
        self,
        client: Optional[CompletionClient] = None,
        gds_parser: Optional[GDSParser] = None,
        normalizer: Optional[ItineraryNormalizer] = None,
    ):
        self.client = client
        self.gds = gds_parser or GDSParser()
        self.normalizer = normalizer or ItineraryNormalizer()

    def parse(
        self,
        raw_text: str,
        now: Optional[datetime] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ParseOutcome:
        now = now or datetime.now()
        if not raw_text or not raw_text.strip():
            raise NoFlightsExtracted("No booking text supplied")

        result = None
        source = SOURCE_GDS
        if self.gds.is_gds(raw_text):
            result = self.gds.parse(raw_text)

        if result is None:
            source = SOURCE_AI
            result = self._parse_with_model(raw_text, now, cancel_token)
        else:
            logger.info("Parsed deterministically: %d leg(s)", len(result.flights))

        result = self.normalizer.normalize(result, raw_text, now)
        # PNR may have been replaced from the raw text
        result = ItineraryValidator.check(result)

        if cancel_token:
            cancel_token.raise_if_cancelled()

        return ParseOutcome(itinerary=result, source=source, warnings=list(result.warnings))

    def _parse_with_model(
        self,
        raw_text: str,
        now: datetime,
        cancel_token: Optional[CancellationToken],
    ) -> ItineraryParseResult:
        if self.client is None:
            raise UpstreamUnavailable("No completion endpoint configured and the text is not a GDS booking")

        logger.info("Falling back to completion endpoint (%d chars)", len(raw_text))
        raw_model_text = self.client.complete(raw_text, now=now, cancel_token=cancel_token)
        logger.debug("Model response: %s", raw_model_text[:500])
        return ItineraryValidator.validate(sanitize(raw_model_text))


def build_default_parser() -> ItineraryParser:
    """Parser wired to the configured endpoint; GDS-only when no key is set."""
    try:
        client = CompletionClient()
    except ValueError as e:
        logger.warning("Completion client disabled: %s", e)
        client = None
    return ItineraryParser(client=client)
