from __future__ import annotations

import pytest
from pydantic import ValidationError

from xcbot.config import Settings
from xcbot.core.constants import MIN_XCONTEST_INTERVAL_SECONDS


def make(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


def test_defaults():
    s = make()
    assert s.xcontest_interval_seconds == 180
    assert s.listen_host == "127.0.0.1"
    assert s.listen_port == 3000
    assert s.threema_admin_id is None


def test_gateway_id_must_start_with_star():
    with pytest.raises(ValidationError):
        make(threema_gateway_id="XCBOT001")
    assert make(threema_gateway_id=" *XCBOT01 ").threema_gateway_id == "*XCBOT01"


def test_private_key_must_be_hex():
    with pytest.raises(ValidationError):
        make(threema_private_key="abcd")
    assert make(threema_private_key="AB" * 32).threema_private_key == "ab" * 32


def test_interval_has_a_floor():
    assert make(xcontest_interval_seconds=5).xcontest_interval_seconds == MIN_XCONTEST_INTERVAL_SECONDS


@pytest.mark.parametrize(
    "listen,host,port",
    [("0.0.0.0:8080", "0.0.0.0", 8080), ("[::1]:3000", "::1", 3000), ("localhost:1", "localhost", 1)],
)
def test_listen(listen, host, port):
    s = make(server_listen=listen)
    assert (s.listen_host, s.listen_port) == (host, port)


@pytest.mark.parametrize("listen", ["3000", "localhost", "localhost:0", "localhost:70000", ":3000"])
def test_listen_rejects(listen):
    with pytest.raises(ValidationError):
        make(server_listen=listen)


def test_blank_admin_is_none():
    assert make(threema_admin_id="  ").threema_admin_id is None
    assert make(threema_admin_id=" ECHOECHO").threema_admin_id == "ECHOECHO"


@pytest.mark.parametrize(
    "url", ["sqlite:///xc-bot.sqlite3", "postgresql://bot@localhost/xcbot", "postgresql+psycopg2://bot@db/xcbot"]
)
def test_supported_database_urls(url):
    assert make(database_url=url).database_url == url


@pytest.mark.parametrize("url", ["mysql://bot@localhost/xcbot", "oracle+cx_oracle://db", "not a url"])
def test_unsupported_database_url_rejected(url):
    with pytest.raises(ValidationError, match="not supported"):
        make(database_url=url)
