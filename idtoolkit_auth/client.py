"""
Identity Toolkit Auth Client

Client classes for the identity service's relyingparty endpoints.
Provides both synchronous and asynchronous clients. Every operation is a
single POST (two for custom-token sign-in and named sign-up) and never
retries; failures surface as AuthError subclasses.
"""

import dataclasses
import json
import logging
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import urlparse

import httpx

from .types import (
    AuthConfig,
    AuthProviderKind,
    Credential,
    Profile,
    ProviderQueryResult,
)
from .errors import (
    ClientClosedError,
    ConfigurationError,
    InvalidArgumentError,
    MalformedResponseError,
    TransportError,
    protocol_error,
)


logger = logging.getLogger("idtoolkit_auth")

# Endpoint operation names
VERIFY_CUSTOM_TOKEN = "verifyCustomToken"
GET_ACCOUNT_INFO = "getAccountInfo"
VERIFY_ASSERTION = "verifyAssertion"
SIGNUP_NEW_USER = "signupNewUser"
VERIFY_PASSWORD = "verifyPassword"
GET_OOB_CONFIRMATION_CODE = "getOobConfirmationCode"
SET_ACCOUNT_INFO = "setAccountInfo"
CREATE_AUTH_URI = "createAuthUri"

CONTINUE_URI = "http://localhost"

ProviderArg = Union[AuthProviderKind, str]


def oauth_post_body(provider: AuthProviderKind, access_token: str) -> str:
    """The form-encoded postBody of an OAuth assertion."""
    return f"access_token={access_token}&providerId={provider.provider_id}"


class _AuthClientBase:
    """Request shaping and response decoding shared by both clients."""

    def __init__(self, config: AuthConfig) -> None:
        self._validate_config(config)

        self._api_key = config.api_key
        self._base_url = config.base_url.rstrip("/")
        self._timeout = config.timeout
        self._request_uri = config.request_uri
        self._debug = config.debug
        self._custom_headers = config.headers or {}
        self._closed = False

    def _validate_config(self, config: AuthConfig) -> None:
        """Validate configuration."""
        if not config.api_key or not config.api_key.strip():
            raise ConfigurationError("api_key is required")
        if config.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        if urlparse(config.base_url).scheme not in ("http", "https"):
            raise ConfigurationError(
                f"Invalid base_url {config.base_url!r}. Expected an http(s) URL"
            )

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            logger.debug(f"[IdentityToolkit] {message}", *args)

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise ClientClosedError()

    def _endpoint(self, operation: str) -> str:
        return f"{self._base_url}/{operation}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            **self._custom_headers,
        }

    # =========================================================================
    # Request bodies
    # =========================================================================

    def _oauth_body(
        self,
        provider: ProviderArg,
        access_token: str,
        id_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Build a verifyAssertion body, rejecting the email/password kind."""
        try:
            kind = AuthProviderKind(provider)
        except ValueError as e:
            raise InvalidArgumentError(
                self._endpoint(VERIFY_ASSERTION),
                None,
                inner=e,
                message=f"Unknown provider {provider!r}",
            ) from e
        if kind is AuthProviderKind.EMAIL_AND_PASSWORD:
            raise InvalidArgumentError(
                self._endpoint(VERIFY_ASSERTION),
                None,
                message=(
                    "Email auth type cannot be used like this. Use methods "
                    "specific to email & password authentication."
                ),
            )

        body: Dict[str, Any] = {}
        if id_token is not None:
            body["idToken"] = id_token
        body.update({
            "postBody": oauth_post_body(kind, access_token),
            "requestUri": self._request_uri,
            "returnSecureToken": True,
        })
        return body

    # =========================================================================
    # Response handling
    # =========================================================================

    def _handle_response(
        self, endpoint: str, request_data: str, response: httpx.Response
    ) -> str:
        """Return the raw body of a 2xx response, raise ProtocolError otherwise."""
        response_data = response.text
        self._log(f"{endpoint} -> HTTP {response.status_code}")
        if not response.is_success:
            raise protocol_error(endpoint, request_data, response_data, response.status_code)
        return response_data

    def _decode_object(
        self, endpoint: str, request_data: str, response_data: str
    ) -> Dict[str, Any]:
        try:
            data = json.loads(response_data)
        except ValueError as e:
            raise MalformedResponseError(
                endpoint, request_data, response_data, inner=e,
                message=f"Response from {endpoint} is not JSON",
            ) from e
        if not isinstance(data, dict):
            raise MalformedResponseError(
                endpoint, request_data, response_data,
                message=f"Response from {endpoint} is not a JSON object",
            )
        return data

    def _decode_credential(
        self,
        endpoint: str,
        request_data: str,
        response_data: str,
        is_new_user: Optional[bool] = None,
    ) -> Credential:
        data = self._decode_object(endpoint, request_data, response_data)
        try:
            return Credential.from_dict(data, is_new_user=is_new_user)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(
                endpoint, request_data, response_data, inner=e,
                message=f"Response from {endpoint} is not a credential: {e!r}",
            ) from e

    def _decode_account_info(
        self, endpoint: str, request_data: str, response_data: str
    ) -> Profile:
        data = self._decode_object(endpoint, request_data, response_data)
        users = data.get("users")
        if not isinstance(users, list) or not users or not isinstance(users[0], dict):
            raise MalformedResponseError(
                endpoint, request_data, response_data,
                message=f"Response from {endpoint} has no users",
            )
        try:
            return Profile.from_dict(users[0])
        except (AttributeError, TypeError, ValueError) as e:
            raise MalformedResponseError(
                endpoint, request_data, response_data, inner=e,
            ) from e

    def _decode_provider_query(
        self, endpoint: str, request_data: str, response_data: str, email: str
    ) -> ProviderQueryResult:
        data = self._decode_object(endpoint, request_data, response_data)
        try:
            return ProviderQueryResult.from_dict(data, email)
        except (TypeError, ValueError) as e:
            raise MalformedResponseError(
                endpoint, request_data, response_data, inner=e,
            ) from e

    @staticmethod
    def _merge_profile(credential: Credential, profile: Profile) -> Credential:
        return dataclasses.replace(
            credential,
            profile=profile,
            local_id=credential.local_id or profile.local_id,
        )

    @staticmethod
    def _wants_display_name(display_name: Optional[str]) -> bool:
        return bool(display_name and display_name.strip())


class AuthClient(_AuthClientBase):
    """
    Identity Toolkit Auth Client - Synchronous entry point.

    Holds one pooled httpx.Client for its lifetime. Pass http_client to
    inject a preconfigured (or fake) transport; an injected client is not
    closed by close().
    """

    def __init__(
        self, config: AuthConfig, http_client: Optional[httpx.Client] = None
    ) -> None:
        """Initialize the auth client."""
        super().__init__(config)

        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.Client(timeout=self._timeout)

        self._log("AuthClient initialized")

    # =========================================================================
    # Sign-in Methods
    # =========================================================================

    def sign_in_with_custom_token(self, token: str) -> Credential:
        """
        Sign in with a custom token minted by your own auth server.

        The profile is fetched with a second call to getAccountInfo.

        Raises:
            AuthError: either call failed; endpoint tells which one
        """
        credential = self._post_credential(
            VERIFY_CUSTOM_TOKEN, {"token": token, "returnSecureToken": True}
        )
        profile = self.get_user(credential.id_token)
        return self._merge_profile(credential, profile)

    def sign_in_with_oauth(self, provider: ProviderArg, access_token: str) -> Credential:
        """
        Sign in with an access token from a third party provider.

        Raises:
            InvalidArgumentError: provider is EMAIL_AND_PASSWORD (no request is sent)
        """
        body = self._oauth_body(provider, access_token)
        return self._post_credential(VERIFY_ASSERTION, body)

    def sign_in_anonymously(self) -> Credential:
        """Sign in as a new anonymous user."""
        return self._post_credential(
            SIGNUP_NEW_USER, {"returnSecureToken": True}, is_new_user=True
        )

    def sign_in_with_email_and_password(self, email: str, password: str) -> Credential:
        """Sign in with email and password."""
        self._log("Password sign-in")
        return self._post_credential(
            VERIFY_PASSWORD,
            {"email": email, "password": password, "returnSecureToken": True},
        )

    def create_user_with_email_and_password(
        self, email: str, password: str, display_name: str = ""
    ) -> Credential:
        """
        Create a new user, optionally setting its display name.

        If the display name update fails the account has already been
        created; the error is raised and the caller may retry the update.
        """
        credential = self._post_credential(
            SIGNUP_NEW_USER,
            {"email": email, "password": password, "returnSecureToken": True},
            is_new_user=True,
        )

        if self._wants_display_name(display_name):
            self._post(
                SET_ACCOUNT_INFO,
                {
                    "displayName": display_name,
                    "idToken": credential.id_token,
                    "returnSecureToken": True,
                },
            )
            credential.profile.display_name = display_name

        return credential

    # =========================================================================
    # Account Methods
    # =========================================================================

    def send_password_reset_email(self, email: str) -> None:
        """Send the user a password reset email."""
        self._post(
            GET_OOB_CONFIRMATION_CODE,
            {"requestType": "PASSWORD_RESET", "email": email},
        )

    def link_with_email_and_password(
        self, credential: Credential, email: str, password: str
    ) -> Credential:
        """Link the signed-in account with an email and password."""
        return self._post_credential(
            SET_ACCOUNT_INFO,
            {
                "idToken": credential.id_token,
                "email": email,
                "password": password,
                "returnSecureToken": True,
            },
        )

    def link_with_oauth(
        self, credential: Credential, provider: ProviderArg, access_token: str
    ) -> Credential:
        """Link the signed-in account with a third party provider account."""
        body = self._oauth_body(provider, access_token, id_token=credential.id_token)
        return self._post_credential(VERIFY_ASSERTION, body)

    def get_linked_accounts(self, email: str) -> ProviderQueryResult:
        """Get the providers linked to an email address."""
        endpoint, request_data, response_data = self._post(
            CREATE_AUTH_URI, {"identifier": email, "continueUri": CONTINUE_URI}
        )
        return self._decode_provider_query(endpoint, request_data, response_data, email)

    def get_user(self, id_token: str) -> Profile:
        """Fetch the profile of the account owning a session token."""
        endpoint, request_data, response_data = self._post(
            GET_ACCOUNT_INFO, {"idToken": id_token}
        )
        return self._decode_account_info(endpoint, request_data, response_data)

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _post(self, operation: str, body: Dict[str, Any]) -> Tuple[str, str, str]:
        """POST a JSON body; returns (endpoint, request_data, response_data)."""
        self._ensure_open()
        endpoint = self._endpoint(operation)
        request_data = json.dumps(body)

        self._log(f"POST {operation}")
        try:
            response = self._http_client.post(
                endpoint,
                params={"key": self._api_key},
                content=request_data.encode("utf-8"),
                headers=self._headers(),
            )
        except httpx.TimeoutException as e:
            self._log(f"{operation} timed out after {self._timeout}s")
            raise TransportError(endpoint, request_data, e) from e
        except httpx.RequestError as e:
            raise TransportError(endpoint, request_data, e) from e

        response_data = self._handle_response(endpoint, request_data, response)
        return endpoint, request_data, response_data

    def _post_credential(
        self, operation: str, body: Dict[str, Any], is_new_user: Optional[bool] = None
    ) -> Credential:
        endpoint, request_data, response_data = self._post(operation, body)
        return self._decode_credential(endpoint, request_data, response_data, is_new_user)

    def close(self) -> None:
        """Release the HTTP client. Further calls raise ClientClosedError."""
        if self._closed:
            return
        self._closed = True
        if self._owns_http_client:
            self._http_client.close()

    def __enter__(self) -> "AuthClient":
        self._ensure_open()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


# =============================================================================
# Async Client
# =============================================================================

class AsyncAuthClient(_AuthClientBase):
    """
    Identity Toolkit Auth Async Client - Asynchronous entry point.

    Operations suspend only while awaiting the network. The pooled
    httpx.AsyncClient is safe to share between concurrent operations.
    """

    def __init__(
        self, config: AuthConfig, http_client: Optional[httpx.AsyncClient] = None
    ) -> None:
        """Initialize the async auth client."""
        super().__init__(config)

        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=self._timeout)

        self._log("AsyncAuthClient initialized")

    # =========================================================================
    # Sign-in Methods
    # =========================================================================

    async def sign_in_with_custom_token(self, token: str) -> Credential:
        """Sign in with a custom token, then fetch the user's profile."""
        credential = await self._post_credential(
            VERIFY_CUSTOM_TOKEN, {"token": token, "returnSecureToken": True}
        )
        profile = await self.get_user(credential.id_token)
        return self._merge_profile(credential, profile)

    async def sign_in_with_oauth(self, provider: ProviderArg, access_token: str) -> Credential:
        """Sign in with an access token from a third party provider."""
        body = self._oauth_body(provider, access_token)
        return await self._post_credential(VERIFY_ASSERTION, body)

    async def sign_in_anonymously(self) -> Credential:
        """Sign in as a new anonymous user."""
        return await self._post_credential(
            SIGNUP_NEW_USER, {"returnSecureToken": True}, is_new_user=True
        )

    async def sign_in_with_email_and_password(self, email: str, password: str) -> Credential:
        """Sign in with email and password."""
        self._log("Password sign-in")
        return await self._post_credential(
            VERIFY_PASSWORD,
            {"email": email, "password": password, "returnSecureToken": True},
        )

    async def create_user_with_email_and_password(
        self, email: str, password: str, display_name: str = ""
    ) -> Credential:
        """Create a new user, optionally setting its display name."""
        credential = await self._post_credential(
            SIGNUP_NEW_USER,
            {"email": email, "password": password, "returnSecureToken": True},
            is_new_user=True,
        )

        if self._wants_display_name(display_name):
            await self._post(
                SET_ACCOUNT_INFO,
                {
                    "displayName": display_name,
                    "idToken": credential.id_token,
                    "returnSecureToken": True,
                },
            )
            credential.profile.display_name = display_name

        return credential

    # =========================================================================
    # Account Methods
    # =========================================================================

    async def send_password_reset_email(self, email: str) -> None:
        """Send the user a password reset email."""
        await self._post(
            GET_OOB_CONFIRMATION_CODE,
            {"requestType": "PASSWORD_RESET", "email": email},
        )

    async def link_with_email_and_password(
        self, credential: Credential, email: str, password: str
    ) -> Credential:
        """Link the signed-in account with an email and password."""
        return await self._post_credential(
            SET_ACCOUNT_INFO,
            {
                "idToken": credential.id_token,
                "email": email,
                "password": password,
                "returnSecureToken": True,
            },
        )

    async def link_with_oauth(
        self, credential: Credential, provider: ProviderArg, access_token: str
    ) -> Credential:
        """Link the signed-in account with a third party provider account."""
        body = self._oauth_body(provider, access_token, id_token=credential.id_token)
        return await self._post_credential(VERIFY_ASSERTION, body)

    async def get_linked_accounts(self, email: str) -> ProviderQueryResult:
        """Get the providers linked to an email address."""
        endpoint, request_data, response_data = await self._post(
            CREATE_AUTH_URI, {"identifier": email, "continueUri": CONTINUE_URI}
        )
        return self._decode_provider_query(endpoint, request_data, response_data, email)

    async def get_user(self, id_token: str) -> Profile:
        """Fetch the profile of the account owning a session token."""
        endpoint, request_data, response_data = await self._post(
            GET_ACCOUNT_INFO, {"idToken": id_token}
        )
        return self._decode_account_info(endpoint, request_data, response_data)

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _post(self, operation: str, body: Dict[str, Any]) -> Tuple[str, str, str]:
        """POST a JSON body; returns (endpoint, request_data, response_data)."""
        self._ensure_open()
        endpoint = self._endpoint(operation)
        request_data = json.dumps(body)

        self._log(f"POST {operation}")
        try:
            response = await self._http_client.post(
                endpoint,
                params={"key": self._api_key},
                content=request_data.encode("utf-8"),
                headers=self._headers(),
            )
        except httpx.TimeoutException as e:
            self._log(f"{operation} timed out after {self._timeout}s")
            raise TransportError(endpoint, request_data, e) from e
        except httpx.RequestError as e:
            raise TransportError(endpoint, request_data, e) from e

        response_data = self._handle_response(endpoint, request_data, response)
        return endpoint, request_data, response_data

    async def _post_credential(
        self, operation: str, body: Dict[str, Any], is_new_user: Optional[bool] = None
    ) -> Credential:
        endpoint, request_data, response_data = await self._post(operation, body)
        return self._decode_credential(endpoint, request_data, response_data, is_new_user)

    async def close(self) -> None:
        """Release the HTTP client. Further calls raise ClientClosedError."""
        if self._closed:
            return
        self._closed = True
        if self._owns_http_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "AsyncAuthClient":
        self._ensure_open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


# =============================================================================
# Factory Functions
# =============================================================================

def create_auth_client(config: AuthConfig) -> AuthClient:
    """Create a new synchronous auth client."""
    return AuthClient(config)


def create_async_auth_client(config: AuthConfig) -> AsyncAuthClient:
    """Create a new asynchronous auth client."""
    return AsyncAuthClient(config)
