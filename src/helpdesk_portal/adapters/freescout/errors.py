from __future__ import annotations


class ClientError(Exception):
    """Base class for helpdesk API errors."""


class AuthError(ClientError):
    """Authentication/authorization failed (typically HTTP 401/403)."""


class NotFoundError(ClientError):
    """Requested resource was not found (HTTP 404)."""


class RateLimitError(ClientError):
    """Request was rate limited (HTTP 429)."""


class TicketingUnavailable(ClientError):
    """Network failure, timeout or HTTP 5xx while talking to the helpdesk API."""
