"""Provider error hierarchy."""

from enum import Enum
from typing import Any, Dict


class ProviderError(Exception):
    """Raised when a provider operation fails."""

    def __init__(self, message: str, context: Dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def add_context(self, **context: Any) -> "ProviderError":
        """Attach operation context (ids, paths) for logging."""
        self.context.update({k: v for k, v in context.items() if v is not None})
        return self


class TransportError(ProviderError):
    """HTTP error status, GraphQL error list or network failure."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Any = None,
        context: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context)
        self.status_code = status_code
        self.response = response


class SuppressedReason(str, Enum):
    """Known failure classes that should not raise error-reporting alerts."""

    NETWORK_ERROR = "network_error"
    CONNECTION_ERROR = "connection_error"
    ACCESS_TOKEN_INVALID = "access_token_invalid"


class SuppressedProviderError(ProviderError):
    """A classified, expected failure (network blip, bad token, missing endpoint)."""

    def __init__(self, reason: SuppressedReason, error: BaseException | None = None) -> None:
        message = reason.value if error is None else f"{reason.value}: {error}"
        super().__init__(message)
        self.reason = reason
        self.error = error


class InvalidRequestError(ProviderError, ValueError):
    """Caller supplied an invalid or missing value; no network call was made."""

    pass


class InvalidPullRequestIdError(InvalidRequestError):
    """Pull request id token could not be decoded."""

    pass
