"""
Messaging gateways: the end-to-end encrypted channel used for commands and notifications.
"""
from xcbot.services.messaging.base import MessagingGateway
from xcbot.services.messaging.types import EncryptedMessage, IncomingMessage

__all__ = ["EncryptedMessage", "IncomingMessage", "MessagingGateway"]
