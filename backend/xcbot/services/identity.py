"""
Public key of a user: cached value from the users table, else looked up via the gateway.

A looked-up key is returned right away; persisting it is submitted to a small thread pool and
never awaited. If that write fails it is logged and the next resolve simply looks the key up again.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from sqlalchemy.orm import Session

from xcbot.core.constants import IDENTITY_CACHE_MAX_WORKERS
from xcbot.db.session import SessionLocal
from xcbot.models.user import User
from xcbot.services.messaging import MessagingGateway
from xcbot.services.store import cache_public_key

logger = logging.getLogger(__name__)

_executor: ThreadPoolExecutor | None = None


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(
            max_workers=IDENTITY_CACHE_MAX_WORKERS,
            thread_name_prefix="pubkey_cache",
        )
    return _executor


def _cache_public_key_in_background(session_factory: Callable[[], Session], user_id: int, public_key: bytes) -> None:
    db = session_factory()
    try:
        cache_public_key(db, user_id, public_key)
        logger.debug("Cached public key for user id %s", user_id)
    except Exception as e:
        logger.error("Could not cache public key for user with id %s: %s", user_id, e)
    finally:
        db.close()


def get_public_key(
    user: User,
    gateway: MessagingGateway,
    session_factory: Callable[[], Session] = SessionLocal,
) -> bytes:
    """Return the public key of this user. If it isn't known yet, fetch it and cache it in the background."""
    if user.threema_public_key:
        logger.info("Using cached public key for %s", user.username)
        return user.threema_public_key

    logger.info("No cached public key for %s, fetching from API", user.username)
    public_key = gateway.lookup_public_key(user.username)
    _get_executor().submit(_cache_public_key_in_background, session_factory, user.id, public_key)
    return public_key


def shutdown() -> None:
    """Stop the caching pool without waiting; pending writes are abandoned."""
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=False, cancel_futures=True)
        _executor = None
