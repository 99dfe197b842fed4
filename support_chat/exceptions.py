"""Errors raised while talking to the chat-completion gateway."""

from __future__ import annotations

from typing import Optional


class ChatGatewayError(Exception):
    """Base error for gateway calls."""


class UpstreamHTTPError(ChatGatewayError):
    """The gateway answered with a non-success status before any streaming."""

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        self.status_code = status_code
        self.message = message or ""
        detail = f"AI gateway error (HTTP {status_code})"
        if self.message:
            detail = f"{detail}: {self.message}"
        super().__init__(detail)


class RateLimitError(UpstreamHTTPError):
    """HTTP 429 from the gateway."""


class CreditsExhaustedError(UpstreamHTTPError):
    """HTTP 402 from the gateway."""


class MissingBodyError(ChatGatewayError):
    """A successful response carried no body to read."""


class GatewayConnectionError(ChatGatewayError):
    """The gateway could not be reached or the connection dropped."""


class SessionBusyError(Exception):
    """A message for this session is already being answered."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' already has a message in flight")


def upstream_error(status_code: int, message: Optional[str] = None) -> UpstreamHTTPError:
    """Build the most specific :class:`UpstreamHTTPError` for ``status_code``."""
    if status_code == 429:
        return RateLimitError(status_code, message)
    if status_code == 402:
        return CreditsExhaustedError(status_code, message)
    return UpstreamHTTPError(status_code, message)
