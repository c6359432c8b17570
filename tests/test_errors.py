"""
Tests for error classification and the error hierarchy.
"""

import json

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from idtoolkit_auth.errors import (
    NO_DATA,
    AuthError,
    ClassifiedAuthError,
    ClientClosedError,
    ConfigurationError,
    ErrorEnvelope,
    ErrorReason,
    IdentityToolkitError,
    InvalidArgumentError,
    MalformedResponseError,
    ProtocolError,
    TransportError,
    classify_error_reason,
    is_auth_error,
    is_retryable_error,
    protocol_error,
)


ENDPOINT = "https://idp.test/v3/relyingparty/verifyPassword"


def error_body(message, code=400) -> str:
    return json.dumps({"error": {"code": code, "message": message}})


class TestClassification:
    """Tests for classify_error_reason."""

    @pytest.mark.parametrize(
        "message,reason",
        [
            ("INVALID_PASSWORD", ErrorReason.WRONG_PASSWORD),
            ("EMAIL_NOT_FOUND", ErrorReason.UNKNOWN_EMAIL_ADDRESS),
            ("INVALID_EMAIL", ErrorReason.INVALID_EMAIL_ADDRESS),
            ("USER_DISABLED", ErrorReason.USER_DISABLED),
            ("SOMETHING_ELSE", ErrorReason.UNDEFINED),
            ("invalid_password", ErrorReason.UNDEFINED),
        ],
    )
    def test_known_messages(self, message, reason):
        assert classify_error_reason(error_body(message)) is reason

    @pytest.mark.parametrize(
        "body",
        [
            "",
            NO_DATA,
            None,
            "<html>oops</html>",
            "[]",
            "null",
            '{"error": "EMAIL_NOT_FOUND"}',
            '{"error": {"code": 400}}',
            '{"error": {"code": 400, "message": 12}}',
            '{"message": "EMAIL_NOT_FOUND"}',
            '{"error": {"code": 400, "message": "EMAIL_NOT_FOUND"',
        ],
    )
    def test_unparseable_bodies_are_undefined(self, body):
        assert classify_error_reason(body) is ErrorReason.UNDEFINED

    @given(st.text())
    @settings(max_examples=200)
    def test_never_raises(self, body):
        assert isinstance(classify_error_reason(body), ErrorReason)

    def test_envelope_keeps_code(self):
        envelope = ErrorEnvelope.parse(error_body("EMAIL_EXISTS", 409))
        assert envelope == ErrorEnvelope(code=409, message="EMAIL_EXISTS")


class TestProtocolError:
    """Tests for building errors from non-2xx responses."""

    def test_classified(self):
        error = protocol_error(ENDPOINT, "{}", error_body("USER_DISABLED"), 400)

        assert isinstance(error, ClassifiedAuthError)
        assert error.reason is ErrorReason.USER_DISABLED
        assert "USER_DISABLED" in error.message

    def test_unclassified(self):
        error = protocol_error(ENDPOINT, "{}", "Service Unavailable", 503)

        assert type(error) is ProtocolError
        assert error.reason is ErrorReason.UNDEFINED
        assert "HTTP 503" in error.message

    def test_to_dict(self):
        error = protocol_error(ENDPOINT, '{"email": "a@b.com"}', error_body("INVALID_EMAIL"), 400)

        error_dict = error.to_dict()

        assert error_dict["name"] == "ClassifiedAuthError"
        assert error_dict["code"] == "CLASSIFIED_AUTH_ERROR"
        assert error_dict["endpoint"] == ENDPOINT
        assert error_dict["reason"] == "invalid_email_address"
        assert error_dict["status_code"] == 400
        assert error_dict["inner"] is None


class TestHierarchy:
    """Tests for the error classes."""

    def test_transport_error(self):
        inner = httpx.ConnectError("refused")
        error = TransportError(ENDPOINT, "{}", inner)

        assert error.response_data == NO_DATA
        assert error.inner is inner
        assert error.status_code == 0
        assert error.code == "TRANSPORT_ERROR"

    def test_all_auth_errors_share_base(self):
        for cls in (ProtocolError, ClassifiedAuthError, MalformedResponseError, InvalidArgumentError):
            error = cls(ENDPOINT, None)
            assert isinstance(error, AuthError)
            assert isinstance(error, IdentityToolkitError)
            assert is_auth_error(error)

    def test_non_auth_errors(self):
        assert not is_auth_error(ConfigurationError("bad"))
        assert not is_auth_error(ClientClosedError())
        assert not is_auth_error(ValueError("x"))

    def test_retryable(self):
        assert is_retryable_error(TransportError(ENDPOINT, "{}", httpx.ReadTimeout("t")))
        assert is_retryable_error(protocol_error(ENDPOINT, "{}", "", 503))
        assert not is_retryable_error(protocol_error(ENDPOINT, "{}", error_body("INVALID_PASSWORD"), 400))
        assert not is_retryable_error(MalformedResponseError(ENDPOINT, "{}"))
        assert not is_retryable_error(RuntimeError("x"))

    def test_repr(self):
        error = ConfigurationError("api_key is required")
        assert repr(error) == "ConfigurationError(code='CONFIGURATION_ERROR', message='api_key is required')"
