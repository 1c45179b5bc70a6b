from xcbot.db.base import Base
from xcbot.db.session import get_db, get_session_factory, engine, init_db, make_engine, SessionLocal
from xcbot.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "get_session_factory", "engine", "init_db", "make_engine", "SessionLocal", "Base", "ALL_TABLE_NAMES"]
