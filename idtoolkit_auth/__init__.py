"""
Identity Toolkit Auth Python Client

Sign users in against the identity service's relyingparty REST endpoints
(password, anonymous, OAuth and custom-token sign-in, account linking,
password reset, linked provider lookup) with sync and async clients.
"""

from .client import AuthClient, AsyncAuthClient, create_auth_client, create_async_auth_client
from .types import (
    AuthConfig,
    AuthProviderKind,
    Credential,
    Profile,
    ProviderUserInfo,
    ProviderQueryResult,
)
from .errors import (
    NO_DATA,
    ErrorReason,
    IdentityToolkitError,
    ConfigurationError,
    ClientClosedError,
    AuthError,
    TransportError,
    ProtocolError,
    ClassifiedAuthError,
    MalformedResponseError,
    InvalidArgumentError,
    classify_error_reason,
    is_auth_error,
    is_retryable_error,
)

__version__ = "0.1.0"
__all__ = [
    # Clients
    "AuthClient",
    "AsyncAuthClient",
    "create_auth_client",
    "create_async_auth_client",
    # Types
    "AuthConfig",
    "AuthProviderKind",
    "Credential",
    "Profile",
    "ProviderUserInfo",
    "ProviderQueryResult",
    # Errors
    "NO_DATA",
    "ErrorReason",
    "IdentityToolkitError",
    "ConfigurationError",
    "ClientClosedError",
    "AuthError",
    "TransportError",
    "ProtocolError",
    "ClassifiedAuthError",
    "MalformedResponseError",
    "InvalidArgumentError",
    "classify_error_reason",
    "is_auth_error",
    "is_retryable_error",
]
