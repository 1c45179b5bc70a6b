"""Threema Gateway (E2E mode): the messaging channel of the bot."""
from functools import lru_cache

from xcbot.config import settings
from xcbot.services.threema.client import ThreemaClient
from xcbot.services.threema.config import ThreemaConfig


@lru_cache(maxsize=1)
def get_gateway() -> ThreemaClient:
    """Shared gateway client built from settings. Also the FastAPI dependency for the webhook."""
    return ThreemaClient(ThreemaConfig.from_settings(settings), timeout=settings.http_timeout_seconds)


__all__ = ["ThreemaClient", "ThreemaConfig", "get_gateway"]
