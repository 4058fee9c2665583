"""
Exception hierarchy for the Anvil client.

Every error the library raises derives from AnvilError. API errors carry
the HTTP status code and the parsed error list returned by the server.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .client.response import Response


class AnvilError(Exception):
    """Base exception for all Anvil errors."""

    default_message = "An error occurred with the Anvil API"

    def __init__(self, message: str | None = None, response: "Response | None" = None):
        self.response = response
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(AnvilError, ValueError):
    """Missing API key or invalid configuration value."""

    pass


class APIError(AnvilError):
    """The API returned an error response."""

    def __init__(self, message: str | None = None, response: "Response | None" = None):
        self.status_code: int | None = response.status_code if response is not None else None
        self.errors: list[Any] = _parse_errors(response)
        super().__init__(message, response)


class ValidationError(APIError):
    """HTTP 400: the request failed server-side validation."""

    pass


class AuthenticationError(APIError):
    """HTTP 401: the API key was rejected."""

    pass


class NotFoundError(APIError):
    """HTTP 404, or a lookup that matched nothing."""

    pass


class RateLimitError(APIError):
    """Rate limit retries were exhausted."""

    def __init__(
        self,
        message: str | None = None,
        response: "Response | None" = None,
        retries: int | None = None,
    ):
        super().__init__(message, response)
        self.retries = retries
        self.retry_after: int | None = response.retry_after if response is not None else None


class ServerError(APIError):
    """HTTP 5xx."""

    pass


class GraphQLError(APIError):
    """GraphQL response contained a non-empty errors array."""

    def __init__(self, message: str | None = None, response: "Response | None" = None):
        super().__init__(message, response)
        if response is not None:
            self.errors = response.graphql_errors


class NetworkError(AnvilError):
    """Connection-level failure (timeout, refused, reset)."""

    default_message = "Network error while contacting the Anvil API"


class FileError(AnvilError):
    """Local file operation failed."""

    pass


class MissingContentError(FileError):
    """There is no binary content to write."""

    pass


class WebhookError(AnvilError):
    """Malformed webhook payload or decryption failure."""

    pass


class WebhookVerificationError(WebhookError):
    """Webhook token could not be verified."""

    pass


def _parse_errors(response: "Response | None") -> list[Any]:
    """Extract the `errors` or `fields` list from an error response body."""
    if response is None:
        return []
    body = response.body
    if not isinstance(body, dict):
        return []
    errors = body.get("errors") or body.get("fields") or []
    return errors if isinstance(errors, list) else [errors]
