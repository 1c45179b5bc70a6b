"""
Notify all subscribers of a pilot about a new flight.

One send per subscriber, dispatched concurrently on a shared pool so a slow recipient does not hold
up the others. A failure for one subscriber is logged and counted; it never raises.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from sqlalchemy.orm import Session

from xcbot.core.constants import NOTIFY_MAX_WORKERS, USERTYPE_THREEMA
from xcbot.db.session import SessionLocal
from xcbot.models.user import User
from xcbot.services.identity import get_public_key
from xcbot.services.messaging import MessagingGateway
from xcbot.services.store import get_subscribers
from xcbot.services.xcontest.types import Flight, FlightDetails

logger = logging.getLogger(__name__)

_executor: ThreadPoolExecutor | None = None


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(
            max_workers=NOTIFY_MAX_WORKERS,
            thread_name_prefix="notify",
        )
    return _executor


def format_notification(flight: Flight) -> str:
    return f"🪂 Neuer Flug von {flight.pilot_username}!\n\n{flight.title}\n\n{flight.url}"


def _notify_threema(
    user: User,
    flight: Flight,
    details: FlightDetails | None,
    gateway: MessagingGateway,
    session_factory: Callable[[], Session],
) -> None:
    public_key = get_public_key(user, gateway, session_factory)
    text = format_notification(flight)
    if details is not None:
        message = gateway.encrypt_image(details.thumbnail_large, details.thumbnail_small, text, public_key)
    else:
        message = gateway.encrypt_text(text, public_key)
    msgid = gateway.send(user.username, message)
    logger.debug("Notified %s about flight %s (msgid=%s)", user.username, flight.url, msgid)


def _notify_one(
    user: User,
    flight: Flight,
    details: FlightDetails | None,
    gateway: MessagingGateway,
    session_factory: Callable[[], Session],
) -> bool:
    logger.info("Notifying %s/%s about flight %s", user.usertype, user.username, flight.url)
    if user.usertype != USERTYPE_THREEMA:
        logger.warning("Unsupported notification channel: %s", user.usertype)
        return False
    try:
        _notify_threema(user, flight, details, gateway, session_factory)
        return True
    except Exception as e:
        logger.error(
            "Could not notify threema user %s about %s: %s", user.username, flight.url, e,
            extra={"user_id": user.id, "flight_url": flight.url},
        )
        return False


def notify_subscribers(
    db: Session,
    flight: Flight,
    details: FlightDetails | None,
    gateway: MessagingGateway,
    session_factory: Callable[[], Session] = SessionLocal,
) -> int:
    """
    Send one notification per subscriber of flight.pilot_username and wait for all sends.
    Returns the number of successful notifications. Raises only if the subscriber query fails.
    """
    subscribers = get_subscribers(db, flight.pilot_username)
    if not subscribers:
        logger.debug("No subscribers for pilot %s", flight.pilot_username)
        return 0
    executor = _get_executor()
    futures = [
        executor.submit(_notify_one, user, flight, details, gateway, session_factory)
        for user in subscribers
    ]
    return sum(1 for f in futures if f.result())


def shutdown() -> None:
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=False, cancel_futures=True)
        _executor = None
