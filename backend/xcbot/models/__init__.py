from xcbot.models.flight import Flight
from xcbot.models.subscription import Subscription
from xcbot.models.user import User

__all__ = [
    "Flight",
    "Subscription",
    "User",
]
