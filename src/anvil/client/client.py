"""
Anvil REST + GraphQL transport.
"""

import json
import logging
from typing import Any, Optional

import requests

from .. import __version__
from ..config import Configuration, get_configuration
from ..errors import (
    APIError,
    AuthenticationError,
    GraphQLError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ValidationError,
)
from .rate_limiter import RETRYABLE_EXCEPTIONS, RateLimiter
from .response import Response

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")

AUTHENTICATION_GUIDANCE = "Invalid API key. Check your API key at https://app.useanvil.com"


class Client:
    """
    Client for the Anvil API.

    Features:
    - REST requests (GET/POST/PUT/DELETE) against base_url
    - GraphQL queries and mutations against graphql_url
    - HTTP Basic auth with the API key as username
    - Retry on 429 and transient network errors via RateLimiter

    Clients built with their own api_key share no mutable state and may be
    used for multi-tenant access.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[Configuration] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: API key overriding the configuration's key
            config: Configuration to copy (defaults to the process default)
            rate_limiter: Retry policy (defaults to one built from config)

        Raises:
            ConfigurationError: If no usable API key is available
        """
        self.config = (config or get_configuration()).copy()
        if api_key:
            self.config.api_key = api_key
            self.config.prefer_environment = False
        self.config.validate()

        self.rate_limiter = rate_limiter or RateLimiter(
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_base_delay,
        )
        self.session = requests.Session()

    @property
    def api_key(self) -> str:
        return self.config.get_api_key()

    def default_headers(self) -> dict[str, str]:
        return {
            "User-Agent": f"Anvil Python/{__version__}",
            "Accept": "application/json",
        }

    # REST

    def get(
        self,
        path: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        api_key: Optional[str] = None,
    ) -> Response:
        return self.request("GET", path, params=params, headers=headers, api_key=api_key)

    def post(
        self,
        path: str,
        data: Any = None,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
        api_key: Optional[str] = None,
    ) -> Response:
        return self.request("POST", path, params=params, data=data, headers=headers, api_key=api_key)

    def put(
        self,
        path: str,
        data: Any = None,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
        api_key: Optional[str] = None,
    ) -> Response:
        return self.request("PUT", path, params=params, data=data, headers=headers, api_key=api_key)

    def delete(
        self,
        path: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        api_key: Optional[str] = None,
    ) -> Response:
        return self.request("DELETE", path, params=params, headers=headers, api_key=api_key)

    # GraphQL

    def query(
        self,
        query: str,
        variables: Optional[dict] = None,
        graphql_url: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> Response:
        """
        Execute a GraphQL query.

        Args:
            query: GraphQL document
            variables: Query variables
            graphql_url: Endpoint override (defaults to config.graphql_url)
            api_key: Per-call API key override

        Returns:
            Response whose `data` is the unwrapped GraphQL data

        Raises:
            GraphQLError: If the response carries a non-empty errors array
        """
        payload = {"query": query, "variables": variables or {}}
        response = self.post(graphql_url or self.config.graphql_url, payload, api_key=api_key)

        errors = response.graphql_errors
        if errors:
            message = ", ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
            )
            logger.error(f"GraphQL errors: {message}")
            raise GraphQLError(message, response)

        return response

    def mutation(
        self,
        mutation: str,
        variables: Optional[dict] = None,
        graphql_url: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> Response:
        """Execute a GraphQL mutation. Same contract as query()."""
        return self.query(mutation, variables=variables, graphql_url=graphql_url, api_key=api_key)

    # Transport

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        data: Any = None,
        headers: Optional[dict] = None,
        api_key: Optional[str] = None,
    ) -> Response:
        """Make an API request through the rate limiter and classify the result."""
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        url = self._build_url(path)
        request_headers = {**self.default_headers(), **(headers or {})}

        body: Any = None
        if isinstance(data, (dict, list)):
            request_headers["Content-Type"] = "application/json"
            body = json.dumps(data)
        elif data is not None:
            body = data

        auth = (api_key or self.api_key, "")

        response = self.rate_limiter.with_retry(
            lambda: self._send(method, url, params, body, request_headers, auth)
        )
        return self._handle_response(response)

    def _build_url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _send(
        self,
        method: str,
        url: str,
        params: Optional[dict],
        body: Any,
        headers: dict[str, str],
        auth: tuple[str, str],
    ) -> Response:
        """One HTTP attempt. Retryable network errors propagate to the rate limiter."""
        logger.debug(f"API Request: {method} {url}")
        if self.config.is_development() and body is not None:
            logger.debug(f"Request body: {body}")

        try:
            raw = self.session.request(
                method=method,
                url=url,
                params=params or None,
                data=body,
                headers=headers,
                auth=auth,
                timeout=(self.config.open_timeout, self.config.timeout),
            )
        except RETRYABLE_EXCEPTIONS:
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error for {url}: {e}")
            raise NetworkError(f"Request failed: {e}") from e

        response = Response.from_requests(raw)
        logger.debug(f"Response status: {response.status_code}")
        if self.config.is_development() and not response.is_binary():
            logger.debug(f"Response body: {response.text}")

        return response

    def _handle_response(self, response: Response) -> Response:
        if response.is_success():
            return response

        code = response.status_code
        message = response.error_message
        logger.error(f"API Error {code}: {message}")

        if code == 400:
            raise ValidationError(message, response)
        if code == 401:
            if message and message != f"HTTP {code} Error":
                raise AuthenticationError(f"{AUTHENTICATION_GUIDANCE} ({message})", response)
            raise AuthenticationError(AUTHENTICATION_GUIDANCE, response)
        if code == 404:
            raise NotFoundError(message, response)
        if code == 429:
            # Normally absorbed by the rate limiter
            raise RateLimitError("Rate limit exceeded", response)
        if 500 <= code < 600:
            raise ServerError(f"Server error: {message}", response)
        raise APIError(message, response)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<Client {self.config.environment.value} {self.config.base_url}>"
