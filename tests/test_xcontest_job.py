from __future__ import annotations

import io

import httpx
import pytest
from PIL import Image

from xcbot.core.constants import XCONTEST_FEED_URL
from xcbot.services import store
from xcbot.services.notifier import format_notification
from xcbot.services.xcontest import XContestClient
from xcbot.services.xcontest.types import Flight
from xcbot.scheduler.xcontest_job import run_xcontest_job

CHRIGEL_URL = "https://www.xcontest.org/switzerland/en/flights/detail:chrigel/12.6.2021/10:52"
OTHER_URL = "https://www.xcontest.org/switzerland/en/flights/detail:other/12.6.2021/11:03"
IMAGE_URL = "https://www.xcontest.org/img/flights/chrigel.jpg"

FEED = f"""<?xml version="1.0" encoding="utf-8"?>
<rss version="2.0">
  <channel>
    <title>XContest CCC flights</title>
    <link>https://www.xcontest.org/switzerland/</link>
    <item>
      <title>12.06.21 [186.95 km :: free_flight] Chrigel Maurer</title>
      <link>{CHRIGEL_URL}</link>
    </item>
    <item>
      <title>Not a flight</title>
      <link>https://www.xcontest.org/switzerland/en/news/</link>
    </item>
    <item>
      <title>12.06.21 [42.10 km :: flat_triangle] Other Pilot</title>
      <link>{OTHER_URL}</link>
    </item>
  </channel>
</rss>
"""


def _jpeg() -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (1600, 800), (30, 120, 200)).save(out, format="JPEG")
    return out.getvalue()


class XContestSite:
    def __init__(self) -> None:
        self.feed = FEED
        self.feed_status = 200
        self.requests: list[str] = []
        self.image = _jpeg()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url == XCONTEST_FEED_URL:
            return httpx.Response(self.feed_status, content=self.feed.encode("utf-8"))
        if url == CHRIGEL_URL:
            return httpx.Response(200, html=f'<html><head><meta property="og:image" content="{IMAGE_URL}"></head></html>')
        if url == IMAGE_URL:
            return httpx.Response(200, content=self.image)
        return httpx.Response(404)


@pytest.fixture
def site():
    return XContestSite()


@pytest.fixture
def client(site):
    return XContestClient(transport=httpx.MockTransport(site))


@pytest.fixture
def subscribers(db):
    a = store.get_or_create_user(db, "USER0001", "threema")
    b = store.get_or_create_user(db, "USER0002", "threema")
    c = store.get_or_create_user(db, "USER0003", "threema")
    store.add_subscription(db, a.id, "Chrigel")
    store.add_subscription(db, b.id, "chrigel")
    store.add_subscription(db, c.id, "other")
    return a, b, c


def test_tick_records_and_notifies_once(db, session_factory, client, fake_gateway, subscribers):
    run_xcontest_job(session_factory, fake_gateway, client)

    chrigel = Flight("12.06.21 [186.95 km :: free_flight] Chrigel Maurer", CHRIGEL_URL, "chrigel")
    other = Flight("12.06.21 [42.10 km :: flat_triangle] Other Pilot", OTHER_URL, "other")
    assert fake_gateway.sent_to("USER0001") == [b"image:" + format_notification(chrigel).encode()]
    assert fake_gateway.sent_to("USER0002") == [b"image:" + format_notification(chrigel).encode()]
    # No preview for this flight: plain text instead
    assert fake_gateway.sent_to("USER0003") == [b"text:" + format_notification(other).encode()]
    assert store.get_stats(db).flight_count == 2

    run_xcontest_job(session_factory, fake_gateway, client)
    assert len(fake_gateway.sent) == 3
    assert store.get_stats(db).flight_count == 2


def test_known_flight_is_not_fetched_again(session_factory, client, site, fake_gateway, subscribers):
    run_xcontest_job(session_factory, fake_gateway, client)
    site.requests.clear()
    run_xcontest_job(session_factory, fake_gateway, client)
    assert site.requests == [XCONTEST_FEED_URL]


def test_feed_failure_ends_tick_quietly(db, session_factory, client, site, fake_gateway, subscribers):
    site.feed_status = 503
    run_xcontest_job(session_factory, fake_gateway, client)
    assert fake_gateway.sent == []
    assert store.get_stats(db).flight_count == 0


def test_failed_send_does_not_stop_tick(db, session_factory, client, fake_gateway, subscribers):
    fake_gateway.fail_send_to.add("USER0001")
    run_xcontest_job(session_factory, fake_gateway, client)
    assert fake_gateway.sent_to("USER0001") == []
    assert len(fake_gateway.sent_to("USER0002")) == 1
    assert len(fake_gateway.sent_to("USER0003")) == 1
    # Recorded before notifying: no retry on the next tick
    run_xcontest_job(session_factory, fake_gateway, client)
    assert fake_gateway.sent_to("USER0001") == []


def test_subscriber_without_public_key_is_skipped(db, session_factory, client, fake_gateway):
    ghost = store.get_or_create_user(db, "GHOST001", "threema")
    fan = store.get_or_create_user(db, "USER0001", "threema")
    store.add_subscription(db, ghost.id, "chrigel")
    store.add_subscription(db, fan.id, "chrigel")
    run_xcontest_job(session_factory, fake_gateway, client)
    assert [to for to, _ in fake_gateway.sent] == ["USER0001"]


def test_flight_without_subscribers_is_still_recorded(db, session_factory, client, fake_gateway):
    run_xcontest_job(session_factory, fake_gateway, client)
    assert fake_gateway.sent == []
    assert store.get_stats(db).flight_count == 2
