"""
API Layer - Netlify client, resource models and error taxonomy
"""

# Client
from sitedeploy.api.netlify_client import NetlifyClient

# Models
from sitedeploy.api.models import (
    Deploy,
    DeployState,
    DomainMutation,
    MutationKind,
    Site
)

# Exceptions
from sitedeploy.api.exceptions import (
    NetlifyServiceError,
    InvariantViolationError,
    PreconditionFailedError,
    NotFoundError,
    DeployFailedError,
    DeployTimeoutError,
    OperationCancelledError,
    RemoteCallError,
    AuthenticationError,
    BadRequestError,
    RateLimitError,
    NetworkError,
    ServerError
)

__all__ = [
    # Client
    "NetlifyClient",

    # Models
    "Deploy",
    "DeployState",
    "DomainMutation",
    "MutationKind",
    "Site",

    # Exceptions
    "NetlifyServiceError",
    "InvariantViolationError",
    "PreconditionFailedError",
    "NotFoundError",
    "DeployFailedError",
    "DeployTimeoutError",
    "OperationCancelledError",
    "RemoteCallError",
    "AuthenticationError",
    "BadRequestError",
    "RateLimitError",
    "NetworkError",
    "ServerError"
]
