"""Channel-neutral message types passed between the webhook, the notifier and a gateway."""
from dataclasses import dataclass


@dataclass(frozen=True)
class IncomingMessage:
    """A decoded (but still encrypted) inbound message."""

    sender: str
    recipient: str
    message_id: str
    date: int
    nonce: bytes
    box: bytes
    nickname: str | None = None


@dataclass(frozen=True)
class EncryptedMessage:
    """An end-to-end encrypted envelope ready to be sent to one recipient."""

    nonce: bytes
    box: bytes
