"""Flight types shared by the feed client, the ingestion job and the notifier."""
import re
from dataclasses import dataclass

# Flight links embed the pilot's XContest username as "detail:<pilot>",
# e.g. https://www.xcontest.org/switzerland/en/flights/detail:chrigel/12.6.2021/10:52
FLIGHT_URL_RE = re.compile(r"^https?://(?:www\.)?xcontest\.org/.+/flights/detail:(?P<pilot>[^/\s]+)/")


@dataclass(frozen=True)
class FeedEntry:
    """Raw feed item: title and link, not validated."""

    title: str
    link: str


@dataclass(frozen=True)
class Flight:
    title: str
    url: str
    pilot_username: str


@dataclass(frozen=True)
class FlightDetails:
    """Encoded JPEG previews of a flight: large for the image, small for the thumbnail."""

    thumbnail_large: bytes
    thumbnail_small: bytes


def parse_flight(title: str, link: str) -> Flight | None:
    """Turn a feed entry into a Flight. Returns None if the link is not a flight detail URL."""
    title = (title or "").strip()
    link = (link or "").strip()
    if not title or not link:
        return None
    m = FLIGHT_URL_RE.match(link)
    if not m:
        return None
    return Flight(title=title, url=link, pilot_username=m.group("pilot"))
