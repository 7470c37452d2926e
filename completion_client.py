import logging
import threading
from datetime import datetime
from typing import Optional

import requests

import config
from errors import EmptyCompletion, ParseCancelled, UpstreamTimeout, UpstreamUnavailable

logger = logging.getLogger(__name__)


# ==================== CANCELLATION ====================
class CancellationToken:
    """Thread-safe flag a caller flips when the parse result is no longer wanted."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ParseCancelled("Itinerary parsing was cancelled")


# ==================== LLM PROMPTS ====================
class LLMPrompts:
    SYSTEM_PROMPT = """You are an expert airline booking parser specializing in GDS formats.

CRITICAL: Return ONLY valid JSON with NO markdown, NO code blocks, NO explanatory text.

══════════════════════════════════════════════════════════════════
DATE CONTEXT
══════════════════════════════════════════════════════════════════
CURRENT DATE: {current_date}
- When dates show only day+month (e.g. "17OCT"), use {current_year} if that day has not passed yet, otherwise {next_year}.
- Format every date as "Month Day, Year" (e.g. "October 17, {current_year}").

══════════════════════════════════════════════════════════════════
PNR EXTRACTION (MOST IMPORTANT)
══════════════════════════════════════════════════════════════════
The PNR is the FIRST alphanumeric code at the very beginning of the booking, before the first "/".
- "DQVJ6T/SC NBOOU" → PNR is "DQVJ6T"
- "ABC123/XX" → PNR is "ABC123"
DO NOT confuse the PNR with agent codes (followed by "AG", e.g. "39K8SC AG"),
office IDs (e.g. "NBOOU") or ticket numbers (long numeric strings).

══════════════════════════════════════════════════════════════════
PASSENGER NAMES
══════════════════════════════════════════════════════════════════
- Extract ALL passengers and join them with " & ".
- "2.I/1LUAL/DENG ABIGAIL AMOL MS*11JUL25" — the "I/" prefix or "*DATE" marks an INFANT.
- Append "(Infant)" or "(Child)" to non-adult travellers.
  Example: "AYII/AWAK TEREZA GHEW & LUAL/DENG ABIGAIL AMOL (Infant)"

══════════════════════════════════════════════════════════════════
FLIGHT SEGMENTS
══════════════════════════════════════════════════════════════════
"UR 121 K 17OCT JUBEBB HK1 1410 1635"
  airline UR, flight 121, class K, date 17OCT, route JUB→EBB, status HK1 (confirmed),
  times 1410→1635 (24-hour in the source; output 12-hour with AM/PM).
- One object per segment, in itinerary order.
- departureAirport and arrivalAirport must NEVER be the same code.
- overnight = true only when the arrival clock time is earlier than the departure clock time.

CABIN CLASSES: F/A=First, J/C=Business, W=Premium Economy, anything else=Economy

PRICING: extract totals from lines like "TOTAL USD783.00 ADULT"; sum all passenger totals;
currency is the 3-letter code. Use 0 when no price is present.

══════════════════════════════════════════════════════════════════
OUTPUT FORMAT — return exactly this JSON shape
══════════════════════════════════════════════════════════════════
{{
  "passengerName": "SURNAME/GIVEN & SURNAME/GIVEN (Infant)",
  "flights": [
    {{
      "airlineCode": "UR",
      "airlineName": "Uganda Airlines",
      "flightNumber": "UR121",
      "cabinClass": "K",
      "cabinClassName": "Economy Class",
      "departureDate": "October 17, {current_year}",
      "departureAirport": "JUB",
      "departureCity": "Juba, South Sudan",
      "arrivalAirport": "EBB",
      "arrivalCity": "Entebbe, Uganda",
      "departureTime": "2:10 PM",
      "arrivalTime": "4:35 PM",
      "duration": "1h 25m",
      "overnight": false,
      "confirmationStatus": "Confirmed"
    }}
  ],
  "totalAmount": 933.00,
  "currency": "USD",
  "pnr": "DQVJ6T",
  "bookingReference": null,
  "bookingDate": "October 15, {current_year}",
  "summary": "Round trip between Juba and Entebbe with 2 passengers (1 adult, 1 infant)",
  "friendlySummary": "Round trip to Entebbe with infant passenger"
}}
"""

    USER_TEMPLATE = """Parse this GDS booking. Pay special attention to:
1. Extract PNR from the VERY FIRST code before any slash
2. Combine ALL passenger names into one string with designations (Infant/Child)
3. Parse ALL flights in the itinerary
4. Extract accurate pricing

Booking data:
{raw_text}"""

    @staticmethod
    def system_prompt(now: datetime) -> str:
        return LLMPrompts.SYSTEM_PROMPT.format(
            current_date=now.strftime("%B %d, %Y").replace(" 0", " "),
            current_year=now.year,
            next_year=now.year + 1,
        )


# ==================== COMPLETION CLIENT ====================
class CompletionClient:
    """
    Single-shot chat-completion call against an OpenAI-compatible endpoint.

    No retries here; callers decide whether to try again.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key or config.COMPLETION_API_KEY
        if not self.api_key:
            raise ValueError("COMPLETION_API_KEY is not set")
        self.url = url or config.COMPLETION_URL
        self.model = model or config.COMPLETION_MODEL
        self.temperature = config.COMPLETION_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or config.COMPLETION_MAX_TOKENS
        self.timeout = timeout or config.COMPLETION_TIMEOUT
        self.http = session or requests.Session()

    def build_payload(self, raw_text: str, now: datetime) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": LLMPrompts.system_prompt(now)},
                {"role": "user", "content": LLMPrompts.USER_TEMPLATE.format(raw_text=raw_text)},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def complete(
        self,
        raw_text: str,
        now: Optional[datetime] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """Return the raw model text for `raw_text`."""
        now = now or datetime.now()
        if cancel_token:
            cancel_token.raise_if_cancelled()

        try:
            response = self.http.post(
                self.url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=self.build_payload(raw_text, now),
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.error("Completion request timed out after %ss", self.timeout)
            raise UpstreamTimeout(f"Completion request timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            logger.error("Completion request failed: %s", e)
            raise UpstreamUnavailable(f"Completion request failed: {e}") from e

        if cancel_token:
            cancel_token.raise_if_cancelled()

        if not 200 <= response.status_code < 300:
            logger.error("API error %s: %s", response.status_code, response.text)
            raise UpstreamUnavailable(
                f"API request failed: {response.status_code} - {response.text}",
                status=response.status_code,
                body=response.text,
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            content = None

        if not content or not str(content).strip():
            raise EmptyCompletion("No response content from AI")

        logger.debug("Completion returned %d chars", len(content))
        return str(content)
