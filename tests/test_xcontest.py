from __future__ import annotations

import io

import httpx
import pytest
from PIL import Image

from xcbot.core.errors import XContestError
from xcbot.services.xcontest import XContestClient, parse_flight
from xcbot.services.xcontest.client import find_preview_image_url
from xcbot.services.xcontest.images import resize_jpeg


@pytest.mark.parametrize(
    "link,pilot",
    [
        ("https://www.xcontest.org/switzerland/en/flights/detail:chrigel/12.6.2021/10:52", "chrigel"),
        ("http://xcontest.org/world/de/fluge/flights/detail:Some.Pilot/1.1.2022/09:00", "Some.Pilot"),
    ],
)
def test_parse_flight(link, pilot):
    flight = parse_flight("  A flight ", link)
    assert flight.pilot_username == pilot
    assert flight.title == "A flight"
    assert flight.url == link


@pytest.mark.parametrize(
    "title,link",
    [
        ("A flight", "https://www.xcontest.org/switzerland/en/news/"),
        ("A flight", "https://example.com/flights/detail:chrigel/1"),
        ("A flight", "https://www.xcontest.org/switzerland/en/flights/detail:/1"),
        ("", "https://www.xcontest.org/switzerland/en/flights/detail:chrigel/1"),
        ("A flight", ""),
    ],
)
def test_parse_flight_rejects(title, link):
    assert parse_flight(title, link) is None


def test_find_preview_image_url():
    page = '<meta content="/img/a.jpg?x=1&amp;y=2" property="og:image" />'
    url = find_preview_image_url(page, "https://www.xcontest.org/switzerland/en/flights/detail:a/1")
    assert url == "https://www.xcontest.org/img/a.jpg?x=1&y=2"
    assert find_preview_image_url("<html></html>", "https://www.xcontest.org/") is None


def test_resize_jpeg_bounds_longest_edge():
    src = io.BytesIO()
    Image.new("RGBA", (2000, 500), (0, 0, 0, 255)).save(src, format="PNG")
    with Image.open(io.BytesIO(resize_jpeg(src.getvalue(), 256))) as img:
        assert img.format == "JPEG"
        assert img.size == (256, 64)


def test_resize_jpeg_never_upscales():
    src = io.BytesIO()
    Image.new("RGB", (100, 50)).save(src, format="JPEG")
    with Image.open(io.BytesIO(resize_jpeg(src.getvalue(), 1024))) as img:
        assert img.size == (100, 50)


def test_resize_jpeg_rejects_garbage():
    with pytest.raises(OSError):
        resize_jpeg(b"not an image", 256)


def _client(handler) -> XContestClient:
    return XContestClient(feed_url="https://feed.test/rss", transport=httpx.MockTransport(handler))


def test_fetch_entries_skips_incomplete_items():
    feed = b"""<?xml version="1.0"?><rss version="2.0"><channel><title>t</title>
    <item><title>One</title><link>https://www.xcontest.org/a/flights/detail:one/1</link></item>
    <item><title>No link</title></item>
    <item><title>Two</title><link>https://www.xcontest.org/a/flights/detail:two/1</link></item>
    </channel></rss>"""
    seen = []

    def handler(request):
        seen.append(request.headers["user-agent"])
        return httpx.Response(200, content=feed)

    entries = _client(handler).fetch_entries()
    assert [e.title for e in entries] == ["One", "Two"]
    assert seen == ["xc-bot"]


def test_fetch_entries_http_error():
    with pytest.raises(XContestError):
        _client(lambda request: httpx.Response(500)).fetch_entries()


def test_fetch_entries_unparseable_feed():
    with pytest.raises(XContestError):
        _client(lambda request: httpx.Response(200, content=b"<<<not xml")).fetch_entries()


def test_fetch_flight_details_without_preview():
    with pytest.raises(XContestError):
        _client(lambda request: httpx.Response(200, html="<html></html>")).fetch_flight_details(
            "https://www.xcontest.org/a/flights/detail:one/1"
        )
