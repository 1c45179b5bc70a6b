"""Bot user: one row per (username, usertype). username is the channel-scoped identity (e.g. Threema ID).

threema_public_key: NULL until the first key lookup; filled in the background by the identity resolver.
"""
from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, UniqueConstraint
from sqlalchemy.sql import func

from xcbot.db.base import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("username", "usertype", name="uq_users_username_usertype"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), nullable=False)
    usertype = Column(String(16), nullable=False)  # 'threema'
    threema_public_key = Column(LargeBinary(32), nullable=True)
    since = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} {self.usertype}/{self.username}>"
