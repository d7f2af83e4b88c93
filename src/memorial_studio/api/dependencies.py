"""Shared FastAPI dependencies."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from memorial_studio.containers import AppContainer
from memorial_studio.domain.memorials import Account

_bearer = HTTPBearer(auto_error=False)


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def _token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    return credentials.credentials if credentials is not None else None


async def current_account(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    container: AppContainer = Depends(get_container),
) -> Account:
    """Resolve the signed-in account or fail with 401."""
    return container.account_service.require_account(_token(credentials))


async def optional_account(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    container: AppContainer = Depends(get_container),
) -> Account | None:
    """Resolve the signed-in account when a token is present."""
    return container.account_service.optional_account(_token(credentials))
