"""Account resolution against the hosted auth provider."""

from dataclasses import dataclass
from typing import Protocol

from memorial_studio.domain.errors import AuthenticationRequiredError
from memorial_studio.domain.memorials import Account


class AuthGateway(Protocol):
    """Interface for looking up the account behind an access token."""

    def get_account(self, access_token: str) -> Account | None:
        """Return the account for a valid token, or None."""


@dataclass
class AccountService:
    """Application service for session-based identity."""

    gateway: AuthGateway

    def require_account(self, access_token: str | None) -> Account:
        """Return the signed-in account or raise."""
        account = self.optional_account(access_token)
        if account is None:
            raise AuthenticationRequiredError
        return account

    def optional_account(self, access_token: str | None) -> Account | None:
        """Return the signed-in account when a valid token is present."""
        if not access_token or not access_token.strip():
            return None
        return self.gateway.get_account(access_token.strip())
