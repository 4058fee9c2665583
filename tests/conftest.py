"""Test fixtures and utilities."""

import pytest
import responses

from anvil import PDF, Client, RateLimiter, SignaturePacket, Signer, Webform, WebformSubmission, Workflow, WorkflowSubmission
from anvil.config import reset_configuration

API_KEY = "test_api_key_123"
BASE_URL = "https://app.useanvil.com/api/v1"
GRAPHQL_URL = "https://graphql.useanvil.com/"

ANVIL_ENV_VARS = (
    "ANVIL_API_KEY",
    "ANVIL_WEBHOOK_TOKEN",
    "ANVIL_ENV",
    "ANVIL_BASE_URL",
    "ANVIL_GRAPHQL_URL",
    "ANVIL_TIMEOUT",
    "ANVIL_RSA_PRIVATE_KEY_PATH",
)

RESOURCE_TYPES = (PDF, SignaturePacket, Signer, Workflow, WorkflowSubmission, Webform, WebformSubmission)


@pytest.fixture(autouse=True)
def clean_anvil_environment(monkeypatch):
    """Isolate every test from ANVIL_* variables and shared defaults."""
    for var in ANVIL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    reset_configuration()
    yield
    reset_configuration()
    for resource_type in RESOURCE_TYPES:
        resource_type.set_default_client(None)


@pytest.fixture
def no_sleep_limiter() -> RateLimiter:
    """Rate limiter that records delays instead of sleeping."""
    delays: list[float] = []
    limiter = RateLimiter(sleep=delays.append)
    limiter.delays = delays
    return limiter


@pytest.fixture
def client(no_sleep_limiter) -> Client:
    """Client with a test API key and no retry sleeps."""
    return Client(api_key=API_KEY, rate_limiter=no_sleep_limiter)


@pytest.fixture
def stub_graphql():
    """Register a GraphQL reply. Use inside @responses.activate tests."""

    def _stub(data=None, errors=None, status=200):
        body = {}
        if data is not None:
            body["data"] = data
        if errors is not None:
            body["errors"] = errors
        responses.add(responses.POST, GRAPHQL_URL, json=body, status=status)

    return _stub
