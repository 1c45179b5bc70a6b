"""
Application settings (Pydantic Settings).
"""
import re
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

from xcbot.core.constants import MIN_XCONTEST_INTERVAL_SECONDS, SUPPORTED_DATABASE_DIALECTS

# .env next to backend/ (parent of xcbot/)
_env_path = Path(__file__).resolve().parent.parent / ".env"

_LISTEN_RE = re.compile(r"^(?P<host>.+):(?P<port>[0-9]+)$")


class Settings(BaseSettings):
    database_url: str = "sqlite:///xc-bot.sqlite3"

    # Threema Gateway: THREEMA_GATEWAY_ID (starts with a `*`), secret from gateway.threema.ch,
    # hex-encoded private key of the gateway ID
    threema_gateway_id: str = ""
    threema_gateway_secret: str = ""
    threema_private_key: str = ""
    # Identity allowed to run operator commands (stats)
    threema_admin_id: str | None = None

    xcontest_interval_seconds: int = 180
    http_timeout_seconds: float = 20.0

    # HTTP server listening host:port string
    server_listen: str = "127.0.0.1:3000"

    log_level: str = "INFO"
    log_json: bool = False

    class Config:
        env_file = _env_path
        extra = "ignore"

    @field_validator("database_url", mode="after")
    @classmethod
    def check_database_dialect(cls, v: str) -> str:
        v = v.strip()
        # "postgresql+psycopg2://..." -> "postgresql"
        dialect = v.split(":", 1)[0].split("+", 1)[0]
        if dialect not in SUPPORTED_DATABASE_DIALECTS:
            raise ValueError(
                f"DATABASE_URL dialect {dialect!r} is not supported (use one of: {', '.join(SUPPORTED_DATABASE_DIALECTS)})"
            )
        return v

    @field_validator("threema_gateway_id", "threema_gateway_secret", "threema_private_key", mode="after")
    @classmethod
    def strip_threema(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("threema_gateway_id", mode="after")
    @classmethod
    def check_gateway_id(cls, v: str) -> str:
        if v and not v.startswith("*"):
            raise ValueError("THREEMA_GATEWAY_ID must start with '*'")
        return v

    @field_validator("threema_private_key", mode="after")
    @classmethod
    def check_private_key(cls, v: str) -> str:
        if v and not re.fullmatch(r"[0-9a-fA-F]{64}", v):
            raise ValueError("THREEMA_PRIVATE_KEY must be 64 hex characters")
        return v.lower()

    @field_validator("threema_admin_id", mode="after")
    @classmethod
    def strip_admin(cls, v: str | None) -> str | None:
        v = (v or "").strip()
        return v or None

    @field_validator("xcontest_interval_seconds", mode="after")
    @classmethod
    def interval_floor(cls, v: int) -> int:
        return max(v, MIN_XCONTEST_INTERVAL_SECONDS)

    @field_validator("server_listen", mode="after")
    @classmethod
    def check_listen(cls, v: str) -> str:
        v = v.strip()
        m = _LISTEN_RE.match(v)
        if not m or not 0 < int(m.group("port")) < 65536:
            raise ValueError("SERVER_LISTEN must be in 'host:port' format")
        return v

    @property
    def listen_host(self) -> str:
        return _LISTEN_RE.match(self.server_listen).group("host").strip("[]")

    @property
    def listen_port(self) -> int:
        return int(_LISTEN_RE.match(self.server_listen).group("port"))


settings = Settings()
