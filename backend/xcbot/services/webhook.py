"""
Handle one incoming Threema message: decode → user → public key → decrypt → dispatch → reply.

Returns True when the message was processed (HTTP 200) and False on a fatal failure (HTTP 500).
Unknown commands, delivery receipts, unsupported message types and non-UTF-8 text are processed
successfully. A reply that cannot be encrypted or sent is logged; it does not change the result.
"""
import logging
from typing import Callable

from sqlalchemy.orm import Session

from xcbot.core.constants import THREEMA_MSG_DELIVERY_RECEIPT, THREEMA_MSG_TEXT, USERTYPE_THREEMA
from xcbot.db.session import SessionLocal
from xcbot.services.commands import NoOp, Reply, ServerError, handle_text_message
from xcbot.services.identity import get_public_key
from xcbot.services.messaging import IncomingMessage, MessagingGateway
from xcbot.services.store import get_or_create_user

logger = logging.getLogger(__name__)


def _send_reply(gateway: MessagingGateway, msg: IncomingMessage, text: str, public_key: bytes) -> None:
    try:
        reply = gateway.encrypt_text(text, public_key)
    except Exception as e:
        logger.error("Could not encrypt reply to %s: %s", msg.sender, e)
        return
    try:
        msgid = gateway.send(msg.sender, reply)
        logger.debug("Reply sent to %s (msgid=%s)", msg.sender, msgid)
    except Exception as e:
        logger.error("Could not send reply to %s: %s", msg.sender, e)


def handle_threema_request(
    raw: bytes,
    db: Session,
    gateway: MessagingGateway,
    admin_identity: str | None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> bool:
    try:
        msg = gateway.decode_incoming(raw)
    except Exception as e:
        logger.error("Could not decode incoming Threema message: %s", e)
        return False
    logger.debug(
        "Incoming message from %s (id=%s)", msg.sender, msg.message_id,
        extra={"sender": msg.sender, "message_id": msg.message_id},
    )

    try:
        user = get_or_create_user(db, msg.sender, USERTYPE_THREEMA)
    except Exception as e:
        logger.error("Error in get_or_create_user for %s (id=%s): %s", msg.sender, msg.message_id, e)
        return False
    logger.debug("User ID for %s: %s", msg.sender, user.id)

    try:
        public_key = get_public_key(user, gateway, session_factory)
    except Exception as e:
        logger.error("Could not fetch public key for %s (id=%s): %s", msg.sender, msg.message_id, e)
        return False

    try:
        data = gateway.decrypt(msg, public_key)
    except Exception as e:
        logger.error("Could not decrypt message from %s (id=%s): %s", msg.sender, msg.message_id, e)
        return False

    if not data:
        logger.warning("Incoming decrypted data from %s (id=%s) is empty", msg.sender, msg.message_id)
        return False

    msg_type = data[0]
    if msg_type == THREEMA_MSG_DELIVERY_RECEIPT:
        logger.info("Ignoring delivery receipt from %s", msg.sender)
        return True
    if msg_type != THREEMA_MSG_TEXT:
        logger.warning("Ignoring unsupported message type 0x%02x from %s", msg_type, msg.sender)
        return True

    try:
        text = data[1:].decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("Received non-UTF8 text from %s (id=%s), discarding", msg.sender, msg.message_id)
        return True

    result = handle_text_message(text, msg.sender, msg.nickname, admin_identity, user, db)
    if isinstance(result, Reply):
        _send_reply(gateway, msg, result.text, public_key)
        return True
    if isinstance(result, NoOp):
        return True
    if isinstance(result, ServerError):
        return False
    raise TypeError(f"Unexpected HandleResult: {result!r}")
