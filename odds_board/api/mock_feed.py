"""In-process demo feed served through httpx.MockTransport."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import httpx
import structlog

from odds_board.api.schemas import Event, EventList, OddsList, OddsQuote

log = structlog.get_logger()

TEAM_NAMES = [
    "Eagles", "Tigers", "Lions", "Bears", "Wolves",
    "Hawks", "Panthers", "Sharks", "Dragons", "Cobras",
    "Falcons", "Stallions", "Thunder", "Lightning", "Blaze",
    "Vipers", "Raptors", "Knights", "Warriors", "Titans",
    "Phoenix", "Hurricanes", "Bulldogs", "Cougars", "Mustangs",
    "Ravens", "Scorpions", "Jaguars", "Hornets", "Spartans",
]

FIRST_EVENT_ID = 1001
MIN_LEAD = timedelta(minutes=30)
MAX_LEAD = timedelta(days=7)
ODDS_RANGE = (1.10, 5.00)


def random_odds(rng: random.Random) -> float:
    """Decimal odds in ODDS_RANGE rounded to 2 places."""
    return round(rng.uniform(*ODDS_RANGE), 2)


class MockFeed:
    """Generated events and odds answering the remote read API paths."""

    def __init__(
        self,
        event_count: int = 100,
        events_path: str = "/events",
        odds_path: str = "/odds",
        reset_path: str = "/reset",
        rng: random.Random | None = None,
    ) -> None:
        self._event_count = event_count
        self._paths = {"events": events_path, "odds": odds_path, "reset": reset_path}
        self._rng = rng or random.Random()
        self._pending_failures = 0
        self.events: list[Event] = []
        self.odds: list[OddsQuote] = []
        self.requests: list[str] = []
        self._generate(event_count)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def fail_next(self, count: int) -> None:
        """Answer the next `count` data requests with a 503."""
        self._pending_failures = count

    def reset(self) -> None:
        self.events = []
        self.odds = []
        self._generate(self._event_count)
        log.info("mock_feed_reset", events=len(self.events))

    def top_up(self, target_total: int) -> int:
        """Add events with fresh ids until the feed holds `target_total`. Returns count added."""
        missing = target_total - len(self.events)
        if missing <= 0:
            return 0
        self._generate(missing)
        log.info("mock_feed_topped_up", added=missing, total=len(self.events))
        return missing

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(f"{request.method} {path}")

        if request.method == "POST" and path == self._paths["reset"]:
            self.reset()
            return httpx.Response(204)

        if request.method == "GET" and path in (self._paths["events"], self._paths["odds"]):
            if self._pending_failures > 0:
                self._pending_failures -= 1
                return httpx.Response(503, text="feed unavailable")
            if path == self._paths["events"]:
                body = EventList.dump_json(self.events)
            else:
                body = OddsList.dump_json(self.odds)
            return httpx.Response(200, content=body, headers={"content-type": "application/json"})

        return httpx.Response(404, text=f"unknown path {path}")

    # ── Internal ────────────────────────────────────────────────────

    def _next_id(self) -> int:
        if not self.events:
            return FIRST_EVENT_ID
        return max(e.id for e in self.events) + 1

    def _generate(self, count: int) -> None:
        now = datetime.now(timezone.utc)
        lead_range = (int(MIN_LEAD.total_seconds()), int(MAX_LEAD.total_seconds()))
        start_id = self._next_id()
        for event_id in range(start_id, start_id + count):
            team_a, team_b = self._rng.sample(TEAM_NAMES, 2)
            lead = timedelta(seconds=self._rng.randint(*lead_range))
            self.events.append(
                Event(
                    id=event_id,
                    participant_a=team_a,
                    participant_b=team_b,
                    start_time=now + lead,
                )
            )
            self.odds.append(
                OddsQuote(
                    event_id=event_id,
                    odds_a=random_odds(self._rng),
                    odds_b=random_odds(self._rng),
                )
            )
