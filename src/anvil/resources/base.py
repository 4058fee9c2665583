"""
Resource model shared by all Anvil entities.

A Resource wraps a mapping of attributes decoded from the API plus the
Client used to fetch it. Keys are normalized to snake_case so `templateId`
and `template_id` address the same attribute. Known fields get typed
accessors on each subtype; everything else stays reachable through get()
and the `extras` bag.

Shared behavior is split into small traits:
- Identifiable: eid / id accessors
- Reloadable: reload() refreshes attributes in place via find()
- Mutable: one GraphQL mutation per call, returning the expected field
"""

import json
import re
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Mapping, Optional

from ..client import Client, Response
from ..errors import APIError

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS = re.compile(r"[\s\-]+")


def normalize_key(key: Any) -> str:
    """Canonical attribute key: `signerEid`, `signer_eid`, `SignerEid` -> `signer_eid`."""
    text = _CAMEL_BOUNDARY.sub("_", str(key).strip())
    return _SEPARATORS.sub("_", text).lower()


def normalize_keys(value: Any) -> Any:
    """Recursively normalize mapping keys, descending into lists."""
    if isinstance(value, Mapping):
        return {normalize_key(k): normalize_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [normalize_keys(v) for v in value]
    return value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (accepts a trailing Z). None if absent or invalid."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


class Resource:
    """
    Base class for Anvil resources.

    Subclasses list their modelled attribute names in FIELDS; attributes
    outside that list are exposed through `extras`. Reading an unknown
    attribute returns None.
    """

    FIELDS: tuple[str, ...] = ()

    def __init__(self, attributes: Optional[Mapping[str, Any]] = None, client: Optional[Client] = None):
        self._attributes: dict[str, Any] = (
            normalize_keys(attributes) if isinstance(attributes, Mapping) else {}
        )
        self._client = client

    # Attribute access

    @property
    def attributes(self) -> dict[str, Any]:
        return dict(self._attributes)

    def get(self, key: str, default: Any = None) -> Any:
        return self._attributes.get(normalize_key(key), default)

    def set(self, key: str, value: Any) -> None:
        """Store a value verbatim under the normalized key."""
        self._attributes[normalize_key(key)] = value

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __contains__(self, key: object) -> bool:
        return normalize_key(key) in self._attributes

    @property
    def extras(self) -> dict[str, Any]:
        """Attributes the subtype does not model explicitly."""
        return {k: v for k, v in self._attributes.items() if k not in self.FIELDS}

    def to_dict(self) -> dict[str, Any]:
        return dict(self._attributes)

    def to_json(self) -> str:
        return json.dumps(self._attributes, default=str)

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other._attributes == self._attributes

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._attributes!r}>"

    # Client handling

    @property
    def client(self) -> Client:
        return self._client or type(self).default_client()

    @classmethod
    def default_client(cls) -> Client:
        """Lazily created client shared by this resource type."""
        client = cls.__dict__.get("_default_client")
        if client is None:
            client = Client()
            cls._default_client = client
        return client

    @classmethod
    def set_default_client(cls, client: Optional[Client]) -> None:
        cls._default_client = client

    @classmethod
    @contextmanager
    def with_client(cls, api_key: Optional[str] = None, client: Optional[Client] = None) -> Iterator[Client]:
        """Temporarily swap this type's default client (e.g. for another tenant)."""
        original = cls.__dict__.get("_default_client")
        cls._default_client = client or Client(api_key=api_key)
        try:
            yield cls._default_client
        finally:
            cls._default_client = original

    @classmethod
    def _resolve_client(cls, client: Optional[Client] = None, api_key: Optional[str] = None) -> Client:
        if client is not None:
            return client
        if api_key:
            return Client(api_key=api_key)
        return cls.default_client()

    @classmethod
    def from_response(cls, response: Response, client: Optional[Client] = None):
        """Build one instance, or a list for list payloads, from response.data."""
        data = response.data
        if isinstance(data, list):
            return [cls(item, client=client) for item in data]
        return cls(data, client=client)

    # GraphQL helpers

    @staticmethod
    def _query_field(client: Client, document: str, variables: dict[str, Any], field: str) -> Any:
        """Run a query and return data[field], or None when absent."""
        response = client.query(document, variables)
        data = response.data
        if isinstance(data, dict):
            return data.get(field)
        return None


class Identifiable:
    """Trait: entities addressed by an Anvil EID."""

    @property
    def eid(self) -> Optional[str]:
        return self.get("eid")

    @property
    def id(self) -> Optional[str]:
        return self.get("eid") or self.get("id")


class Reloadable:
    """Trait: refresh attributes in place from the API."""

    def reload(self):
        """Re-fetch via find() and replace this instance's attributes."""
        refreshed = type(self).find(self.eid, client=self.client)
        self._attributes = refreshed.to_dict()
        return self


class Mutable:
    """Trait: operations that run exactly one GraphQL mutation."""

    @staticmethod
    def _run_mutation(
        client: Client,
        document: str,
        variables: dict[str, Any],
        field: str,
        action: str,
    ) -> Any:
        """
        Execute a mutation and return data[field].

        Raises:
            GraphQLError: The response carried GraphQL errors
            APIError: The expected field is missing from the response
        """
        response = client.mutation(document, variables)
        data = response.data
        payload = data.get(field) if isinstance(data, dict) else None
        if payload is None:
            raise APIError(f"Failed to {action}: {response.body}", response)
        return payload
