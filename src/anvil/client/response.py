"""
HTTP response wrapper.
"""

import json
from datetime import datetime, timezone
from functools import cached_property
from typing import Any, Mapping

import requests

BINARY_CONTENT_TYPES = (
    "application/pdf",
    "application/octet-stream",
    "application/zip",
)


class Response:
    """
    One terminal HTTP reply from the Anvil API.

    Headers are stored with lower-cased names. The parsed body is JSON when
    the payload decodes as JSON, the decoded text otherwise, and the raw
    bytes for binary payloads (generated documents).
    """

    def __init__(
        self,
        status_code: int,
        raw_body: bytes | str | None = b"",
        headers: Mapping[str, str] | None = None,
    ):
        self._status_code = int(status_code)
        self._raw_body = raw_body if raw_body is not None else b""
        self._headers = {k.lower(): v for k, v in (headers or {}).items()}

    @classmethod
    def from_requests(cls, response: requests.Response) -> "Response":
        """Wrap a requests.Response."""
        return cls(response.status_code, response.content, dict(response.headers))

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def raw_body(self) -> bytes | str:
        return self._raw_body

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return self._headers.get(name.lower())

    def is_success(self) -> bool:
        return 200 <= self._status_code < 300

    def is_error(self) -> bool:
        return not self.is_success()

    @property
    def content_type(self) -> str:
        return self._headers.get("content-type", "")

    def is_binary(self) -> bool:
        """True for document payloads (PDF, octet-stream, zip)."""
        content_type = self.content_type.lower()
        return any(marker in content_type for marker in BINARY_CONTENT_TYPES)

    @property
    def text(self) -> str:
        if isinstance(self._raw_body, bytes):
            return self._raw_body.decode("utf-8", errors="replace")
        return self._raw_body

    @cached_property
    def body(self) -> Any:
        """Parsed body: JSON value, text, or raw bytes for binary payloads."""
        if self.is_binary():
            return self._raw_body
        text = self.text
        if not text:
            return text
        try:
            return json.loads(text)
        except ValueError:
            return text

    @property
    def data(self) -> Any:
        """Body with one level of `{"data": ...}` envelope removed."""
        body = self.body
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    @property
    def errors(self) -> list[Any]:
        """Error records from an unsuccessful response ([] on success)."""
        if self.is_success():
            return []
        body = self.body
        if not isinstance(body, dict):
            return []
        return body.get("errors") or body.get("fields") or []

    @property
    def graphql_errors(self) -> list[Any]:
        """GraphQL `errors` array, regardless of HTTP status."""
        body = self.body
        if not isinstance(body, dict):
            return []
        errors = body.get("errors")
        return errors if isinstance(errors, list) else []

    @property
    def error_message(self) -> str | None:
        """Human-readable message for an error response."""
        if self.is_success():
            return None

        errors = self.errors
        if errors:
            return ", ".join(_message_of(e) for e in errors)

        body = self.body
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"HTTP {self._status_code} Error"

    # Rate limiting headers

    @property
    def rate_limit(self) -> int | None:
        return _int_header(self._headers.get("x-ratelimit-limit"))

    @property
    def rate_limit_remaining(self) -> int | None:
        return _int_header(self._headers.get("x-ratelimit-remaining"))

    @property
    def rate_limit_reset(self) -> datetime | None:
        reset = _int_header(self._headers.get("x-ratelimit-reset"))
        if reset is None:
            return None
        try:
            return datetime.fromtimestamp(reset, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    @property
    def retry_after(self) -> int | None:
        return _int_header(self._headers.get("retry-after"))

    def __repr__(self) -> str:
        return f"<Response [{self._status_code}] {self.content_type or 'no content-type'}>"


def _message_of(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


def _int_header(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(float(value))
    except (ValueError, OverflowError):
        return None
