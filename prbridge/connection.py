"""Provider connection: the stored credential and its token-error state.

The adapter only reads the credential. When the provider rejects it, a
token-error record is stored here so the reconnection UI can prompt for a
new token.
"""

import logging
from datetime import UTC, datetime

from pydantic import BaseModel

LOG = logging.getLogger("prbridge.connection")


class TokenError(BaseModel):
    """Why the credential stopped working, and when."""

    error: str
    occurred_at: datetime
    is_connection_error: bool = False


class ProviderConnection:
    """Credential (bearer token + base URL) of one connected account."""

    def __init__(self, base_url: str, access_token: str | None, provider_id: str = "gitlab*com") -> None:
        self.base_url = base_url.rstrip("/")
        self.provider_id = provider_id
        self._access_token = access_token
        self.token_error: TokenError | None = None

    @property
    def access_token(self) -> str | None:
        return self._access_token

    def update_token(self, access_token: str) -> None:
        """Store a refreshed token; clears any recorded token error."""
        self._access_token = access_token
        self.token_error = None

    def set_token_error(self, error: BaseException, is_connection_error: bool) -> TokenError:
        self.token_error = TokenError(
            error=str(error),
            occurred_at=datetime.now(UTC),
            is_connection_error=is_connection_error,
        )
        LOG.info(
            "Token error recorded for %s (connection error: %s)",
            self.provider_id,
            is_connection_error,
        )
        return self.token_error

    def clear_token_error(self) -> None:
        self.token_error = None
