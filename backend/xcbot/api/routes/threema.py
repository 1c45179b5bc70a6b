"""Threema Gateway callback: incoming end-to-end encrypted messages (commands to the bot)."""
from typing import Callable

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from xcbot.config import settings
from xcbot.core.errors import http_error, http_ok
from xcbot.db.session import get_db, get_session_factory
from xcbot.services.messaging import MessagingGateway
from xcbot.services.threema import get_gateway
from xcbot.services.webhook import handle_threema_request

router = APIRouter()


async def _raw_body(request: Request) -> bytes:
    return await request.body()


@router.post("/receive/threema/")
def receive_threema(
    body: bytes = Depends(_raw_body),
    db: Session = Depends(get_db),
    gateway: MessagingGateway = Depends(get_gateway),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> Response:
    """
    Called by the Threema Gateway for every incoming message.
    200 "processed" when handled (including ignored messages), 500 when the message could not be processed.
    """
    if handle_threema_request(body, db, gateway, settings.threema_admin_id, session_factory):
        return http_ok()
    return http_error()
