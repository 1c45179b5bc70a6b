"""
Centralized error types and HTTP responses for the messaging webhook.

Transport errors (undecodable or undecryptable inbound payloads) fail the single request.
Upstream errors (gateway or XContest calls) are logged by the caller and the affected item skipped.
"""
from __future__ import annotations

from fastapi import Response

# ---------------------------------------------------------------------------
# Constants: status codes and acknowledgment body
# ---------------------------------------------------------------------------

STATUS_OK = 200
STATUS_INTERNAL_ERROR = 500

# The Threema Gateway only looks at the status code; body is informational
ACK_BODY = "processed"


# ---------------------------------------------------------------------------
# Error types
# ---------------------------------------------------------------------------


class GatewayError(Exception):
    """A call to the messaging gateway failed (HTTP error, timeout, bad response)."""


class IncomingMessageError(GatewayError):
    """The inbound callback payload is malformed or its MAC does not verify."""


class DecryptionError(GatewayError):
    """The inbound box could not be decrypted or unpadded."""


class PublicKeyLookupError(GatewayError):
    """The public key of an identity could not be looked up."""


class XContestError(Exception):
    """Fetching the XContest feed or a flight detail page failed."""


# ---------------------------------------------------------------------------
# Webhook responses
# ---------------------------------------------------------------------------


def http_ok() -> Response:
    return Response(content=ACK_BODY, status_code=STATUS_OK, media_type="text/plain")


def http_error() -> Response:
    return Response(content=b"", status_code=STATUS_INTERNAL_ERROR)
