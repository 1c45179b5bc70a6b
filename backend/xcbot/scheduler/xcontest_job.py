"""
Poll the XContest flights feed every XCONTEST_INTERVAL_SECONDS: record new flights in the ledger and
notify the subscribers of each new flight's pilot.

Flights are processed in feed order. A flight whose ledger insert, preview fetch or notification
fails is logged and skipped; the tick goes on with the next one. The ledger row is written before
notifying, so a flight is never announced twice.
"""
import logging
from typing import Callable

from sqlalchemy.orm import Session

from xcbot.core.errors import XContestError
from xcbot.db.session import SessionLocal
from xcbot.services.messaging import MessagingGateway
from xcbot.services.notifier import notify_subscribers
from xcbot.services.store import record_flight_if_new
from xcbot.services.xcontest import XContestClient, get_xcontest_client, parse_flight
from xcbot.services.xcontest.types import Flight, FlightDetails

logger = logging.getLogger(__name__)


def _fetch_details(client: XContestClient, flight: Flight) -> FlightDetails | None:
    try:
        return client.fetch_flight_details(flight.url)
    except Exception as e:
        logger.warning("Could not fetch details for flight %s (notifying without preview): %s", flight.url, e)
        return None


def process_flights(
    db: Session,
    flights: list[Flight],
    client: XContestClient,
    gateway: MessagingGateway,
    session_factory: Callable[[], Session] = SessionLocal,
) -> tuple[int, int]:
    """Record + notify each flight. Returns (new flights, notifications sent)."""
    new_count = 0
    notified = 0
    for flight in flights:
        try:
            is_new = record_flight_if_new(db, flight.url, flight.title, flight.pilot_username)
        except Exception as e:
            logger.error("Could not record flight %s: %s", flight.url, e)
            continue
        if not is_new:
            continue
        new_count += 1
        logger.info(
            "New flight by %s: %s", flight.pilot_username, flight.url,
            extra={"flight_url": flight.url, "pilot": flight.pilot_username},
        )
        details = _fetch_details(client, flight)
        try:
            notified += notify_subscribers(db, flight, details, gateway, session_factory)
        except Exception as e:
            logger.error("Could not notify subscribers about flight %s: %s", flight.url, e)
    return new_count, notified


def run_xcontest_job(
    session_factory: Callable[[], Session] = SessionLocal,
    gateway: MessagingGateway | None = None,
    client: XContestClient | None = None,
) -> None:
    """One tick. Never raises: the scheduler must survive any single tick's failure."""
    if gateway is None:
        from xcbot.services.threema import get_gateway

        gateway = get_gateway()
    client = client or get_xcontest_client()

    try:
        entries = client.fetch_entries()
    except XContestError as e:
        logger.error("Could not fetch XContest flights: %s", e)
        return
    except Exception as e:
        logger.exception("XContest feed fetch failed: %s", e)
        return

    flights = []
    for entry in entries:
        flight = parse_flight(entry.title, entry.link)
        if flight is None:
            logger.warning("Discarding feed entry with unexpected link: %r (%r)", entry.link, entry.title)
            continue
        flights.append(flight)

    db = session_factory()
    try:
        new_count, notified = process_flights(db, flights, client, gateway, session_factory)
        logger.info(
            "XContest tick done: %s entries, %s flights, %s new, %s notifications sent",
            len(entries), len(flights), new_count, notified,
        )
    except Exception as e:
        logger.exception("XContest job failed: %s", e)
        db.rollback()
    finally:
        db.close()
