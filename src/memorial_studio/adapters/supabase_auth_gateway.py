"""Supabase Auth lookup for bearer tokens."""

import logging
from dataclasses import dataclass
from uuid import UUID

from supabase import AuthError, Client

from memorial_studio.domain.memorials import Account
from memorial_studio.services.accounts import AuthGateway

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseAuthGateway(AuthGateway):
    """Resolves access tokens through Supabase Auth."""

    client: Client

    def get_account(self, access_token: str) -> Account | None:
        """Return the account for a valid token, or None."""
        try:
            response = self.client.auth.get_user(access_token)
        except AuthError as exc:
            _logger.info("Access token rejected: %s", exc)
            return None
        user = getattr(response, "user", None)
        if user is None:
            return None
        return Account(id=UUID(str(user.id)), email=getattr(user, "email", None))
