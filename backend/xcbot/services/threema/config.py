"""Threema Gateway config. Credentials from settings (THREEMA_GATEWAY_ID, THREEMA_GATEWAY_SECRET, THREEMA_PRIVATE_KEY)."""
from xcbot.config import Settings

DEFAULT_BASE_URL = "https://msgapi.threema.ch"


class ThreemaConfig:
    """Gateway ID, API secret, private key and base URL for the Threema Gateway (E2E mode)."""

    __slots__ = ("gateway_id", "secret", "private_key", "base_url")

    def __init__(
        self,
        *,
        gateway_id: str,
        secret: str,
        private_key: bytes,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self.gateway_id = gateway_id.strip()
        self.secret = secret.strip()
        self.private_key = private_key
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ThreemaConfig":
        return cls(
            gateway_id=settings.threema_gateway_id,
            secret=settings.threema_gateway_secret,
            private_key=bytes.fromhex(settings.threema_private_key) if settings.threema_private_key else b"",
        )

    def is_configured(self) -> bool:
        return bool(self.gateway_id and self.secret and len(self.private_key) == 32)

    def credentials(self) -> dict[str, str]:
        return {"from": self.gateway_id, "secret": self.secret}
