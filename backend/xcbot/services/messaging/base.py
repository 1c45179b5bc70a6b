"""Protocol for messaging gateways. Threema is the only channel; others would implement the same contract."""
from typing import Protocol

from xcbot.services.messaging.types import EncryptedMessage, IncomingMessage


class MessagingGateway(Protocol):
    """Encrypt, decrypt, send and look up keys. All methods raise GatewayError subclasses on failure."""

    def decode_incoming(self, raw: bytes) -> IncomingMessage:
        """Parse and authenticate the raw callback body."""
        ...

    def lookup_public_key(self, identity: str) -> bytes:
        ...

    def decrypt(self, message: IncomingMessage, public_key: bytes) -> bytes:
        """Decrypt and unpad; returns the payload starting with its type byte."""
        ...

    def encrypt_text(self, text: str, public_key: bytes) -> EncryptedMessage:
        ...

    def encrypt_image(
        self,
        image: bytes,
        thumbnail: bytes,
        caption: str,
        public_key: bytes,
    ) -> EncryptedMessage:
        """Upload both images as encrypted blobs, then build the message referencing them."""
        ...

    def send(self, identity: str, message: EncryptedMessage) -> str:
        """Send to identity; returns the gateway's message id."""
        ...
