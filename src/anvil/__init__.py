"""
Anvil API client.

Python client for the Anvil document-automation API: PDF filling and
generation, Etch e-signature packets, workflows, webforms, and webhook
verification.
"""

__version__ = "0.1.0"

from typing import Any, Optional

from .client import Client, RateLimiter, Response
from .config import (
    Configuration,
    Environment,
    configure,
    get_configuration,
    load_config,
    reset_configuration,
)
from .errors import (
    AnvilError,
    APIError,
    AuthenticationError,
    ConfigurationError,
    FileError,
    GraphQLError,
    MissingContentError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ValidationError,
    WebhookError,
    WebhookVerificationError,
)
from .resources import (
    PDF,
    PacketStatus,
    Resource,
    SignaturePacket,
    Signer,
    Webform,
    WebformSubmission,
    Workflow,
    WorkflowSubmission,
)
from .webhook import Webhook, WebhookAction, secure_compare


def query(
    query: str,
    variables: Optional[dict[str, Any]] = None,
    api_key: Optional[str] = None,
    graphql_url: Optional[str] = None,
) -> Response:
    """Run a GraphQL query with a client built from the process-default configuration."""
    return Client(api_key=api_key).query(query, variables=variables, graphql_url=graphql_url)


def mutation(
    mutation: str,
    variables: Optional[dict[str, Any]] = None,
    api_key: Optional[str] = None,
    graphql_url: Optional[str] = None,
) -> Response:
    """Run a GraphQL mutation with a client built from the process-default configuration."""
    return Client(api_key=api_key).mutation(mutation, variables=variables, graphql_url=graphql_url)


__all__ = [
    "APIError",
    "AnvilError",
    "AuthenticationError",
    "Client",
    "Configuration",
    "ConfigurationError",
    "Environment",
    "FileError",
    "GraphQLError",
    "MissingContentError",
    "NetworkError",
    "NotFoundError",
    "PDF",
    "PacketStatus",
    "RateLimitError",
    "RateLimiter",
    "Resource",
    "Response",
    "ServerError",
    "SignaturePacket",
    "Signer",
    "ValidationError",
    "Webform",
    "WebformSubmission",
    "Webhook",
    "WebhookAction",
    "WebhookError",
    "WebhookVerificationError",
    "Workflow",
    "WorkflowSubmission",
    "__version__",
    "configure",
    "get_configuration",
    "load_config",
    "mutation",
    "query",
    "reset_configuration",
    "secure_compare",
]
