"""
Identity Toolkit Auth Error Classes

Every failed call surfaces as a single error value carrying the endpoint,
the outgoing body, the raw response and, where the service reported one of
the known codes, a classified reason.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


logger = logging.getLogger("idtoolkit_auth")

# Marker stored as response_data when no response body could be read
NO_DATA = "N/A"


class ErrorReason(str, Enum):
    """Classified reason for a failed auth call."""

    UNDEFINED = "undefined"
    WRONG_PASSWORD = "wrong_password"
    UNKNOWN_EMAIL_ADDRESS = "unknown_email_address"
    INVALID_EMAIL_ADDRESS = "invalid_email_address"
    USER_DISABLED = "user_disabled"


# Service error message -> reason
ERROR_MESSAGE_REASONS: Dict[str, ErrorReason] = {
    "INVALID_PASSWORD": ErrorReason.WRONG_PASSWORD,
    "EMAIL_NOT_FOUND": ErrorReason.UNKNOWN_EMAIL_ADDRESS,
    "INVALID_EMAIL": ErrorReason.INVALID_EMAIL_ADDRESS,
    "USER_DISABLED": ErrorReason.USER_DISABLED,
}


@dataclass(frozen=True)
class ErrorEnvelope:
    """The service's error body: {"error": {"code": int, "message": str}}."""

    code: Optional[int] = None
    message: Optional[str] = None

    @classmethod
    def parse(cls, response_data: Optional[str]) -> Optional["ErrorEnvelope"]:
        """Decode a raw body, returning None when it is not an error envelope."""
        if not response_data or response_data == NO_DATA:
            return None
        try:
            data = json.loads(response_data)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        error = data.get("error")
        if not isinstance(error, dict):
            return None
        code = error.get("code")
        message = error.get("message")
        return cls(
            code=code if isinstance(code, int) and not isinstance(code, bool) else None,
            message=message if isinstance(message, str) else None,
        )


def _parse_envelope(response_data: Optional[str]) -> Optional[ErrorEnvelope]:
    try:
        return ErrorEnvelope.parse(response_data)
    except Exception as e:
        logger.debug("Unexpected error parsing error response: %r", e)
        return None


def classify_error_reason(response_data: Optional[str]) -> ErrorReason:
    """
    Classify a raw error body.

    Never raises: anything that is not a recognised error envelope
    classifies as UNDEFINED.
    """
    envelope = _parse_envelope(response_data)
    if envelope is None or envelope.message is None:
        return ErrorReason.UNDEFINED
    return ERROR_MESSAGE_REASONS.get(envelope.message, ErrorReason.UNDEFINED)


class IdentityToolkitError(Exception):
    """Base error class for the Identity Toolkit auth client."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message
        self.timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "name": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ConfigurationError(IdentityToolkitError):
    """Configuration error."""

    def __init__(self, message: str):
        super().__init__("CONFIGURATION_ERROR", message)


class ClientClosedError(IdentityToolkitError):
    """An operation was invoked after the client was closed."""

    def __init__(self, message: str = "Client has been closed"):
        super().__init__("CLIENT_CLOSED", message)


class AuthError(IdentityToolkitError):
    """
    A failed auth call.

    Attributes:
        endpoint: URL of the endpoint attempted (without the API key)
        request_data: JSON body that was sent
        response_data: raw response body, or NO_DATA if none was read
        inner: underlying transport/parse exception, if any
        reason: classified ErrorReason
        status_code: HTTP status of a non-2xx response, 0 otherwise
    """

    default_code = "AUTH_ERROR"

    def __init__(
        self,
        endpoint: str,
        request_data: Optional[str],
        response_data: str = NO_DATA,
        inner: Optional[BaseException] = None,
        reason: ErrorReason = ErrorReason.UNDEFINED,
        status_code: int = 0,
        message: Optional[str] = None,
    ):
        super().__init__(
            self.default_code,
            message or f"Auth request to {endpoint} failed (reason={reason.value})",
        )
        self.endpoint = endpoint
        self.request_data = request_data
        self.response_data = response_data
        self.inner = inner
        self.reason = reason
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({
            "endpoint": self.endpoint,
            "request_data": self.request_data,
            "response_data": self.response_data,
            "reason": self.reason.value,
            "status_code": self.status_code,
            "inner": repr(self.inner) if self.inner else None,
        })
        return result


class TransportError(AuthError):
    """Network failure (connection, DNS, timeout) before a response was read."""

    default_code = "TRANSPORT_ERROR"

    def __init__(self, endpoint: str, request_data: Optional[str], inner: BaseException):
        super().__init__(
            endpoint,
            request_data,
            NO_DATA,
            inner,
            message=f"Request to {endpoint} failed: {inner}",
        )


class ProtocolError(AuthError):
    """The service answered with a non-2xx status."""

    default_code = "PROTOCOL_ERROR"


class ClassifiedAuthError(ProtocolError):
    """A ProtocolError whose error message matched a known reason."""

    default_code = "CLASSIFIED_AUTH_ERROR"


class MalformedResponseError(AuthError):
    """2xx response whose body does not have the expected shape."""

    default_code = "MALFORMED_RESPONSE"


class InvalidArgumentError(AuthError):
    """The caller passed an argument the operation cannot use."""

    default_code = "INVALID_ARGUMENT"


def protocol_error(
    endpoint: str, request_data: Optional[str], response_data: str, status_code: int
) -> ProtocolError:
    """Build the ProtocolError (or ClassifiedAuthError) for a non-2xx response."""
    reason = classify_error_reason(response_data)
    envelope = _parse_envelope(response_data)
    detail = envelope.message if envelope and envelope.message else f"HTTP {status_code}"
    error_cls = ProtocolError if reason is ErrorReason.UNDEFINED else ClassifiedAuthError
    return error_cls(
        endpoint,
        request_data,
        response_data,
        reason=reason,
        status_code=status_code,
        message=f"{detail} ({endpoint})",
    )


def is_auth_error(error: Any) -> bool:
    """Check if error is an AuthError."""
    return isinstance(error, AuthError)


def is_retryable_error(error: Any) -> bool:
    """
    Check if error is worth retrying.

    Advisory only: the clients never retry on their own.
    """
    if isinstance(error, TransportError):
        return True
    if isinstance(error, ProtocolError):
        return 500 <= error.status_code < 600
    return False
