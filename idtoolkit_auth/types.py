"""
Identity Toolkit Auth Type Definitions

Results are decoded from the service's flat JSON responses; the field names
in from_dict/to_dict are the service's wire names.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


DEFAULT_BASE_URL = "https://www.googleapis.com/identitytoolkit/v3/relyingparty"
DEFAULT_REQUEST_URI = "http://localhost"


class AuthProviderKind(str, Enum):
    """Supported sign-in providers. The value is the service's provider id."""

    GOOGLE = "google.com"
    FACEBOOK = "facebook.com"
    GITHUB = "github.com"
    TWITTER = "twitter.com"
    # Only valid for the email/password operations
    EMAIL_AND_PASSWORD = "password"

    @property
    def provider_id(self) -> str:
        return self.value

    @classmethod
    def from_provider_id(cls, provider_id: str) -> Optional["AuthProviderKind"]:
        """Look up a kind by provider id, None if unknown."""
        for kind in cls:
            if kind.value == provider_id:
                return kind
        return None


@dataclass
class AuthConfig:
    """Client configuration."""

    # API key sent as the `key` query parameter
    api_key: str
    # Endpoint root, operation names are appended to it
    base_url: str = DEFAULT_BASE_URL
    # Request timeout in seconds (default: 30)
    timeout: float = 30.0
    # requestUri sent with OAuth assertions
    request_uri: str = DEFAULT_REQUEST_URI
    # Enable debug logging (default: False)
    debug: bool = False
    # Custom headers to include in requests
    headers: Optional[Dict[str, str]] = None


@dataclass
class ProviderUserInfo:
    """An identity from a provider linked to the account."""

    provider_id: str
    federated_id: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    raw_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderUserInfo":
        return cls(
            provider_id=data.get("providerId", ""),
            federated_id=data.get("federatedId"),
            email=data.get("email"),
            display_name=data.get("displayName"),
            photo_url=data.get("photoUrl"),
            raw_id=data.get("rawId"),
        )


@dataclass
class Profile:
    """
    User account data.

    Decoded either from the same response as the Credential or from the
    account info lookup. display_name is patched in place after sign-up.
    """

    local_id: str = ""
    email: Optional[str] = None
    display_name: Optional[str] = None
    email_verified: bool = False
    provider_user_info: List[ProviderUserInfo] = field(default_factory=list)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    photo_url: Optional[str] = None
    phone_number: Optional[str] = None
    federated_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        """Create from a response object."""
        return cls(
            local_id=data.get("localId") or "",
            email=data.get("email"),
            display_name=data.get("displayName"),
            email_verified=bool(data.get("emailVerified", False)),
            provider_user_info=[
                ProviderUserInfo.from_dict(p)
                for p in data.get("providerUserInfo") or []
                if isinstance(p, dict)
            ],
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            photo_url=data.get("photoUrl"),
            phone_number=data.get("phoneNumber"),
            federated_id=data.get("federatedId"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "localId": self.local_id,
            "emailVerified": self.email_verified,
        }
        optional = {
            "email": self.email,
            "displayName": self.display_name,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "photoUrl": self.photo_url,
            "phoneNumber": self.phone_number,
            "federatedId": self.federated_id,
        }
        result.update({k: v for k, v in optional.items() if v is not None})
        if self.provider_user_info:
            result["providerUserInfo"] = [
                {
                    k: v
                    for k, v in {
                        "providerId": p.provider_id,
                        "federatedId": p.federated_id,
                        "email": p.email,
                        "displayName": p.display_name,
                        "photoUrl": p.photo_url,
                        "rawId": p.raw_id,
                    }.items()
                    if v is not None
                }
                for p in self.provider_user_info
            ]
        return result


@dataclass(frozen=True)
class Credential:
    """Session credential returned by a successful auth exchange."""

    id_token: str
    refresh_token: str
    expires_in: int
    local_id: str
    is_new_user: bool
    profile: Profile
    created_at: float = field(default_factory=time.time)

    @property
    def expires_at(self) -> float:
        return self.created_at + self.expires_in

    def is_expired(self) -> bool:
        """Check if the session token has expired."""
        return time.time() >= self.expires_at

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        profile: Optional[Profile] = None,
        is_new_user: Optional[bool] = None,
    ) -> "Credential":
        """
        Create from a response object.

        The profile defaults to the one decoded from the same object, since
        the service flattens both into one response.

        Raises:
            KeyError: idToken is missing
            ValueError: expiresIn is not a number
        """
        if profile is None:
            profile = Profile.from_dict(data.get("user", data))
        if is_new_user is None:
            is_new_user = bool(data.get("isNewUser", False))
        kwargs: Dict[str, Any] = {}
        if "createdAt" in data:
            kwargs["created_at"] = float(data["createdAt"])
        return cls(
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken") or "",
            expires_in=int(data.get("expiresIn") or 0),
            local_id=data.get("localId") or profile.local_id,
            is_new_user=is_new_user,
            profile=profile,
            **kwargs,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the service's field names, for caller-side persistence."""
        return {
            "idToken": self.id_token,
            "refreshToken": self.refresh_token,
            "expiresIn": str(self.expires_in),
            "localId": self.local_id,
            "isNewUser": self.is_new_user,
            "createdAt": self.created_at,
            "user": self.profile.to_dict(),
        }


@dataclass
class ProviderQueryResult:
    """Providers already linked to an email address."""

    email: str
    all_providers: List[str] = field(default_factory=list)
    registered: bool = False
    auth_uri: Optional[str] = None

    @property
    def providers(self) -> List[AuthProviderKind]:
        """Linked providers that map to a known AuthProviderKind."""
        kinds = (AuthProviderKind.from_provider_id(p) for p in self.all_providers)
        return [k for k in kinds if k is not None]

    @classmethod
    def from_dict(cls, data: Dict[str, Any], email: str) -> "ProviderQueryResult":
        return cls(
            email=email,
            all_providers=list(data.get("allProviders") or []),
            registered=bool(data.get("registered", False)),
            auth_uri=data.get("authUri"),
        )
