"""Threema Gateway client (E2E mode): HTTP calls via httpx, crypto via PyNaCl. Raises GatewayError subclasses."""
import hmac
import logging
from urllib.parse import parse_qs

import httpx
from nacl.utils import random as random_bytes

from xcbot.core.errors import (
    DecryptionError,
    GatewayError,
    IncomingMessageError,
    PublicKeyLookupError,
)
from xcbot.services.messaging.types import EncryptedMessage, IncomingMessage
from xcbot.services.threema import crypto
from xcbot.services.threema.config import ThreemaConfig

logger = logging.getLogger(__name__)

# Fields of the incoming-message callback, in MAC order
_CALLBACK_MAC_FIELDS = ("from", "to", "messageId", "date", "nonce", "box")

# Gateway status codes worth naming in logs
_STATUS_MEANING = {
    400: "invalid request",
    401: "wrong API identity or secret",
    402: "no credits remaining",
    404: "unknown identity",
    413: "message or blob too large",
}


class ThreemaClient:
    """Threema Gateway client implementing MessagingGateway."""

    def __init__(
        self,
        config: ThreemaConfig,
        *,
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._timeout = timeout
        self._transport = transport

    @property
    def gateway_id(self) -> str:
        return self._config.gateway_id

    def _require_configured(self) -> None:
        if not self._config.is_configured():
            raise GatewayError(
                "Threema Gateway not configured. Set THREEMA_GATEWAY_ID, THREEMA_GATEWAY_SECRET and THREEMA_PRIVATE_KEY."
            )

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        self._require_configured()
        url = f"{self._config.base_url}{path}"
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as c:
                r = c.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise GatewayError(f"Threema API request {method} {path} failed: {e}") from e
        if not r.is_success:
            meaning = _STATUS_MEANING.get(r.status_code, "unexpected status")
            raise GatewayError(f"Threema API error {r.status_code} ({meaning}) for {method} {path}")
        return r

    # --- Inbound ---

    def decode_incoming(self, raw: bytes) -> IncomingMessage:
        self._require_configured()
        try:
            form = {k: v[0] for k, v in parse_qs(raw.decode("ascii"), strict_parsing=True).items()}
        except (UnicodeDecodeError, ValueError) as e:
            raise IncomingMessageError(f"Could not parse callback body: {e}") from e
        missing = [f for f in (*_CALLBACK_MAC_FIELDS, "mac") if not form.get(f)]
        if missing:
            raise IncomingMessageError(f"Callback body is missing fields: {', '.join(missing)}")

        expected = crypto.callback_mac(self._config.secret, *(form[f] for f in _CALLBACK_MAC_FIELDS))
        if not hmac.compare_digest(expected, form["mac"].lower()):
            raise IncomingMessageError("Callback MAC does not verify")
        if form["to"] != self._config.gateway_id:
            raise IncomingMessageError(f"Callback addressed to {form['to']}, not {self._config.gateway_id}")

        try:
            return IncomingMessage(
                sender=form["from"],
                recipient=form["to"],
                message_id=form["messageId"],
                date=int(form["date"]),
                nonce=bytes.fromhex(form["nonce"]),
                box=bytes.fromhex(form["box"]),
                nickname=(form.get("nickname") or None),
            )
        except ValueError as e:
            raise IncomingMessageError(f"Malformed callback field: {e}") from e

    def decrypt(self, message: IncomingMessage, public_key: bytes) -> bytes:
        self._require_configured()
        if len(message.nonce) != 24:
            raise DecryptionError(f"Nonce has {len(message.nonce)} bytes, expected 24")
        return crypto.decrypt_box(message.nonce, message.box, self._config.private_key, public_key)

    # --- Keys ---

    def lookup_public_key(self, identity: str) -> bytes:
        try:
            r = self._request("GET", f"/pubkeys/{identity}", params=self._config.credentials())
        except GatewayError as e:
            raise PublicKeyLookupError(f"Could not look up public key of {identity}: {e}") from e
        try:
            key = bytes.fromhex(r.text.strip())
        except ValueError as e:
            raise PublicKeyLookupError(f"Malformed public key for {identity}") from e
        if len(key) != 32:
            raise PublicKeyLookupError(f"Public key for {identity} has {len(key)} bytes")
        return key

    # --- Outbound ---

    def encrypt_text(self, text: str, public_key: bytes) -> EncryptedMessage:
        self._require_configured()
        return crypto.encrypt_box(crypto.text_payload(text), self._config.private_key, public_key)

    def upload_blob(self, data: bytes) -> str:
        r = self._request(
            "POST",
            "/upload_blob",
            params=self._config.credentials(),
            files={"blob": ("blob", data, "application/octet-stream")},
        )
        blob_id = r.text.strip()
        if not blob_id:
            raise GatewayError("Blob upload returned no blob id")
        return blob_id

    def encrypt_image(
        self,
        image: bytes,
        thumbnail: bytes,
        caption: str,
        public_key: bytes,
    ) -> EncryptedMessage:
        """File message (type 0x17) rendered as media, with a thumbnail and a caption."""
        self._require_configured()
        key = random_bytes(32)
        blob_id = self.upload_blob(crypto.encrypt_blob(image, key, crypto.FILE_NONCE))
        thumbnail_blob_id = self.upload_blob(crypto.encrypt_blob(thumbnail, key, crypto.THUMBNAIL_NONCE))
        descriptor = {
            "b": blob_id,
            "t": thumbnail_blob_id,
            "k": key.hex(),
            "m": "image/jpeg",
            "p": "image/jpeg",
            "n": "flight.jpg",
            "s": len(image),
            "i": 1,
            "j": 1,
            "d": caption,
        }
        return crypto.encrypt_box(crypto.file_payload(descriptor), self._config.private_key, public_key)

    def send(self, identity: str, message: EncryptedMessage) -> str:
        data = {
            **self._config.credentials(),
            "to": identity,
            "nonce": message.nonce.hex(),
            "box": message.box.hex(),
        }
        r = self._request("POST", "/send_e2e", data=data)
        message_id = r.text.strip()
        logger.debug("Sent message to %s (msgid=%s)", identity, message_id)
        return message_id
