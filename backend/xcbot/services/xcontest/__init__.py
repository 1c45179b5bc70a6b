"""XContest: flights RSS feed and flight previews."""
from functools import lru_cache

from xcbot.config import settings
from xcbot.services.xcontest.client import XContestClient
from xcbot.services.xcontest.types import FeedEntry, Flight, FlightDetails, parse_flight


@lru_cache(maxsize=1)
def get_xcontest_client() -> XContestClient:
    return XContestClient(timeout=settings.http_timeout_seconds)


__all__ = ["FeedEntry", "Flight", "FlightDetails", "XContestClient", "get_xcontest_client", "parse_flight"]
