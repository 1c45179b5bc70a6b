"""
Threema E2E building blocks on PyNaCl: box encryption with random padding, blob secretboxes,
callback MAC and payload encoding. No I/O here.
"""
import hashlib
import hmac
import json
import secrets
from typing import Any

from nacl.exceptions import CryptoError
from nacl.public import Box, PrivateKey, PublicKey
from nacl.secret import SecretBox
from nacl.utils import random as random_bytes

from xcbot.core.constants import THREEMA_MSG_FILE, THREEMA_MSG_TEXT
from xcbot.core.errors import DecryptionError
from xcbot.services.messaging.types import EncryptedMessage

# Padded payloads are at least this long so short messages don't leak their length
MIN_PADDED_LENGTH = 32

# Fixed nonces for file message blobs (the blob key is random and used once)
FILE_NONCE = b"\x00" * 23 + b"\x01"
THUMBNAIL_NONCE = b"\x00" * 23 + b"\x02"


def pad(data: bytes) -> bytes:
    """PKCS#7-style random padding: 1..255 bytes, each equal to the padding length."""
    pad_len = secrets.randbelow(255) + 1
    if len(data) + pad_len < MIN_PADDED_LENGTH:
        pad_len = MIN_PADDED_LENGTH - len(data)
    return data + bytes([pad_len]) * pad_len


def unpad(data: bytes) -> bytes:
    if not data:
        raise DecryptionError("Decrypted data is empty (no padding)")
    pad_len = data[-1]
    if pad_len == 0 or pad_len > len(data):
        raise DecryptionError(f"Invalid padding length {pad_len}")
    return data[:-pad_len]


def encrypt_box(payload: bytes, private_key: bytes, public_key: bytes) -> EncryptedMessage:
    box = Box(PrivateKey(private_key), PublicKey(public_key))
    nonce = random_bytes(Box.NONCE_SIZE)
    encrypted = box.encrypt(pad(payload), nonce)
    return EncryptedMessage(nonce=nonce, box=encrypted.ciphertext)


def decrypt_box(nonce: bytes, ciphertext: bytes, private_key: bytes, public_key: bytes) -> bytes:
    """Decrypt and unpad. Raises DecryptionError."""
    try:
        box = Box(PrivateKey(private_key), PublicKey(public_key))
        padded = box.decrypt(ciphertext, nonce)
    except (CryptoError, ValueError, TypeError) as e:
        raise DecryptionError(f"Could not decrypt box: {e}") from e
    return unpad(padded)


def encrypt_blob(data: bytes, key: bytes, nonce: bytes) -> bytes:
    """Secretbox-encrypt a blob; returns ciphertext without the nonce (nonces are implied)."""
    return SecretBox(key).encrypt(data, nonce).ciphertext


def callback_mac(secret: str, *fields: str) -> str:
    """HMAC-SHA256 (hex) over the concatenated callback fields, keyed with the API secret."""
    return hmac.new(secret.encode("ascii"), "".join(fields).encode("utf-8"), hashlib.sha256).hexdigest()


def text_payload(text: str) -> bytes:
    return bytes([THREEMA_MSG_TEXT]) + text.encode("utf-8")


def file_payload(descriptor: dict[str, Any]) -> bytes:
    return bytes([THREEMA_MSG_FILE]) + json.dumps(descriptor, separators=(",", ":")).encode("utf-8")
