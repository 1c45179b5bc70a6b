"""XContest client: fetch the flights RSS feed and flight preview images. Raises XContestError on failure."""
import html
import logging
import re
from urllib.parse import urljoin

import feedparser
import httpx

from xcbot.core.constants import (
    PREVIEW_LARGE_MAX_PX,
    PREVIEW_SMALL_MAX_PX,
    XCONTEST_FEED_URL,
    XCONTEST_USER_AGENT,
)
from xcbot.core.errors import XContestError
from xcbot.services.xcontest.images import resize_jpeg
from xcbot.services.xcontest.types import FeedEntry, FlightDetails

logger = logging.getLogger(__name__)

# <meta property="og:image" content="..."> in either attribute order
_OG_IMAGE_RES = (
    re.compile(r"""<meta[^>]+property=["']og:image["'][^>]+content=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r"""<meta[^>]+content=["']([^"']+)["'][^>]+property=["']og:image["']""", re.IGNORECASE),
)


def find_preview_image_url(page_html: str, page_url: str) -> str | None:
    """Absolute URL of the page's og:image preview, or None."""
    for pattern in _OG_IMAGE_RES:
        m = pattern.search(page_html)
        if m:
            return urljoin(page_url, html.unescape(m.group(1).strip()))
    return None


class XContestClient:
    """Feed and flight page fetcher."""

    def __init__(
        self,
        *,
        feed_url: str = XCONTEST_FEED_URL,
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._feed_url = feed_url
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self._timeout,
            transport=self._transport,
            headers={"User-Agent": XCONTEST_USER_AGENT},
            follow_redirects=True,
        )

    def _get(self, url: str) -> httpx.Response:
        try:
            with self._client() as c:
                r = c.get(url)
        except httpx.HTTPError as e:
            raise XContestError(f"GET {url} failed: {e}") from e
        if not r.is_success:
            raise XContestError(f"GET {url} returned {r.status_code}")
        return r

    def fetch_entries(self) -> list[FeedEntry]:
        """Fetch the feed and return (title, link) of every item, in feed order. Items missing either are skipped."""
        r = self._get(self._feed_url)
        parsed = feedparser.parse(r.content)
        if parsed.bozo and not parsed.entries:
            raise XContestError(f"Could not parse feed: {parsed.get('bozo_exception')}")
        entries = []
        for item in parsed.entries:
            title = item.get("title")
            link = item.get("link")
            if not title or not link:
                logger.debug("Feed item without title or link skipped: %r", item.get("id"))
                continue
            entries.append(FeedEntry(title=title, link=link))
        return entries

    def fetch_flight_details(self, url: str) -> FlightDetails:
        """Load the flight page, download its preview image and resize it into large + small JPEGs."""
        page = self._get(url)
        image_url = find_preview_image_url(page.text, str(page.url))
        if not image_url:
            raise XContestError(f"No preview image on flight page {url}")
        image = self._get(image_url).content
        try:
            return FlightDetails(
                thumbnail_large=resize_jpeg(image, PREVIEW_LARGE_MAX_PX),
                thumbnail_small=resize_jpeg(image, PREVIEW_SMALL_MAX_PX),
            )
        except (OSError, ValueError) as e:
            raise XContestError(f"Could not process preview image {image_url}: {e}") from e
