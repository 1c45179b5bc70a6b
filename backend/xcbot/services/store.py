"""
Store: users, subscriptions and the flight ledger.

Every function is one logical operation in one transaction: it commits on success and rolls back
and re-raises on failure. Atomicity under concurrent callers rests on unique constraints plus
INSERT ... ON CONFLICT DO NOTHING, never on application locks.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import Table, delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from xcbot.models.flight import Flight
from xcbot.models.subscription import Subscription
from xcbot.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stats:
    user_count: int
    subscription_count: int
    flight_count: int


def _insert_or_ignore(db: Session, table: Table, values: dict) -> int:
    """INSERT ... ON CONFLICT DO NOTHING for the session's dialect. Returns the number of inserted rows."""
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        stmt = sqlite.insert(table).values(**values).on_conflict_do_nothing()
    elif dialect == "postgresql":
        stmt = postgresql.insert(table).values(**values).on_conflict_do_nothing()
    else:
        raise NotImplementedError(f"insert-or-ignore not supported for dialect {dialect}")
    return db.execute(stmt).rowcount


def get_or_create_user(db: Session, username: str, usertype: str) -> User:
    """Return the user with this identity and channel kind, creating it if it does not exist yet."""
    try:
        _insert_or_ignore(db, User.__table__, {"username": username, "usertype": usertype})
        user = db.execute(
            select(User).where(User.username == username, User.usertype == usertype)
        ).scalar_one()
        db.commit()
    except Exception:
        db.rollback()
        raise
    return user


def get_subscriptions(db: Session, user_id: int) -> list[str]:
    """Pilot usernames the user follows, sorted case-insensitively."""
    rows = db.execute(
        select(Subscription.pilot_username)
        .where(Subscription.user_id == user_id)
        .order_by(func.lower(Subscription.pilot_username).asc())
    ).scalars().all()
    return list(rows)


def add_subscription(db: Session, user_id: int, pilot: str) -> None:
    """Follow a pilot. Following an already followed pilot (in any letter case) is a no-op."""
    try:
        inserted = _insert_or_ignore(
            db, Subscription.__table__, {"user_id": user_id, "pilot_username": pilot}
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.debug("add_subscription user_id=%s pilot=%s inserted=%s", user_id, pilot, inserted)


def remove_subscription(db: Session, user_id: int, pilot: str) -> bool:
    """Unfollow a pilot. Returns True if a subscription was removed, False if there was none."""
    try:
        result = db.execute(
            delete(Subscription).where(
                Subscription.user_id == user_id,
                func.lower(Subscription.pilot_username) == func.lower(pilot),
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return result.rowcount > 0


def get_subscribers(db: Session, pilot: str) -> list[User]:
    """Users following this pilot (case-insensitive on the pilot name). Reloads users already in the session."""
    rows = db.execute(
        select(User)
        .join(Subscription, Subscription.user_id == User.id)
        .where(func.lower(Subscription.pilot_username) == func.lower(pilot))
        .execution_options(populate_existing=True)
        .order_by(User.id)
    ).scalars().all()
    return list(rows)


def record_flight_if_new(db: Session, url: str, title: str, pilot: str) -> bool:
    """
    Add the flight to the ledger. Returns True only for the call that inserted the row.
    A second call with the same url (now or in a year) returns False.
    """
    try:
        inserted = _insert_or_ignore(
            db, Flight.__table__, {"url": url, "title": title, "pilot_username": pilot}
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return inserted == 1


def cache_public_key(db: Session, user_id: int, public_key: bytes) -> None:
    """Store the user's public key. Overwrites a previous key; refuses to clear it."""
    if not public_key:
        raise ValueError("Refusing to cache an empty public key")
    try:
        user = db.get(User, user_id)
        if user is None:
            raise LookupError(f"No user with id {user_id}")
        user.threema_public_key = bytes(public_key)
        db.commit()
    except Exception:
        db.rollback()
        raise


def get_stats(db: Session) -> Stats:
    return Stats(
        user_count=db.execute(select(func.count()).select_from(User)).scalar_one(),
        subscription_count=db.execute(select(func.count()).select_from(Subscription)).scalar_one(),
        flight_count=db.execute(select(func.count()).select_from(Flight)).scalar_one(),
    )
