"""Tests for provider error classification."""

import pytest
import requests

from prbridge.adapters.errors import classify
from prbridge.exceptions import ProviderError, SuppressedReason, TransportError


class TestClassify:
    """classify maps failures to suppressed categories."""

    @pytest.mark.parametrize(
        "message",
        [
            "request to https://gitlab.com failed, reason: ECONNRESET",
            "getaddrinfo ENOTFOUND gitlab.example.com",
            "socket hang up",
            "('Connection aborted.', ConnectionResetError(104, 'Connection reset by peer'))",
        ],
    )
    def test_network_messages(self, message: str) -> None:
        """Known network fragments are NETWORK_ERROR."""
        assert classify(ProviderError(message)) is SuppressedReason.NETWORK_ERROR

    def test_requests_timeout_cause(self) -> None:
        """A requests timeout as the cause is NETWORK_ERROR."""
        try:
            try:
                raise requests.Timeout("slow")
            except requests.Timeout as e:
                raise TransportError("request failed") from e
        except TransportError as err:
            assert classify(err) is SuppressedReason.NETWORK_ERROR

    def test_graphql_404(self) -> None:
        """A 404 GraphQL response is CONNECTION_ERROR."""
        assert classify(TransportError("GraphQL Error (Code: 404)", status_code=404)) is SuppressedReason.CONNECTION_ERROR

    def test_unauthorized(self) -> None:
        """401 is ACCESS_TOKEN_INVALID."""
        assert classify(TransportError("401: Unauthorized", status_code=401)) is SuppressedReason.ACCESS_TOKEN_INVALID

    def test_bad_credentials(self) -> None:
        """A "Bad credentials" body is ACCESS_TOKEN_INVALID."""
        err = TransportError("403", status_code=403, response={"message": "Bad credentials"})
        assert classify(err) is SuppressedReason.ACCESS_TOKEN_INVALID

    def test_forbidden_graphql_error(self) -> None:
        """A FORBIDDEN entry in the GraphQL errors is ACCESS_TOKEN_INVALID."""
        err = TransportError("GraphQL Error: nope", response={"errors": [{"type": "FORBIDDEN", "message": "nope"}]})
        assert classify(err) is SuppressedReason.ACCESS_TOKEN_INVALID

    def test_unexpected(self) -> None:
        """Anything else is not classified."""
        assert classify(ProviderError("totally unexpected")) is None
        assert classify(TransportError("500: boom", status_code=500, response={"message": "boom"})) is None


class TestProviderError:
    """ProviderError context."""

    def test_add_context_skips_none(self) -> None:
        """add_context merges non-None values and returns the error."""
        err = ProviderError("x", context={"a": 1})
        assert err.add_context(b=2, c=None) is err
        assert err.context == {"a": 1, "b": 2}
